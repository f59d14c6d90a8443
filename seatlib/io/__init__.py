'''Input and output of election documents and apportionment reports.

The :mod:`seatlib.io.document` module reads the JSON election documents
(election setup, vote tallies and settings) and writes the result and method
comparison reports.
'''
