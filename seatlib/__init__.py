'''Seatlib - an engine for apportioning legislative seats.

Given the aggregated valid votes of an election, Seatlib decides which
competing entities are eligible for seats and distributes the seats of each
electoral district among them:

-   The ``threshold`` module evaluates eligibility against the national and
    district vote share thresholds, with the statutory coalition rules.
-   The ``method`` module holds the calculation methods that distribute the
    seats of a district, assembled from the quota functions, remainder rules,
    tie-breakers and reserved-seat rules of the ``component`` subpackage.
-   The ``engine`` module runs them over single districts and whole elections,
    compares two methods on identical inputs and hands the results to a result
    sink from the ``sink`` module.

The inputs (elections, districts, coalitions, tallies) are defined in the
``model`` module and can be read from JSON documents by the ``io`` subpackage.
'''
