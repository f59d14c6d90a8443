'''Interchangeable parts of the calculation methods.

The quota, remainder, tie-breaking and reserved-seat rules are kept in
registers keyed by name so that a method can be configured by plain strings
(e.g. from a settings file) as well as by custom callables.
'''
