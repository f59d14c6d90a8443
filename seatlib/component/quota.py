'''Electoral quotients for largest-remainder apportionment.

A quota function takes the total number of votes cast for the eligible
entities of a district and the number of ordinary seats to fill and returns the
number of votes required for one guaranteed seat.

The statutory method uses the unrounded Hare quota, which is returned as an
exact fraction so that no rounding bias creeps into the seat computation.
Rounded variants exist for methods whose regulations prescribe them.

All quota functions are assembled in the `QUOTAS` dictionary keyed by their
name. `get()` retrieves from this dictionary by string key; `construct()` also
accepts callables and passes them through.
'''

import math
from fractions import Fraction
from numbers import Number

import seatlib.component.core


QUOTAS = {}


quota_mark, get, construct = seatlib.component.core.register_functions(
    QUOTAS, 'quota'
)


@quota_mark
def hare(votes: int, seats: int) -> Fraction:
    '''Hare quota (simple electoral quotient), unrounded.'''
    return Fraction(votes, seats)


@quota_mark
def hare_rounded(votes: int, seats: int) -> int:
    '''Hare quota rounded to the nearest integer, half up.'''
    return _round_half_up(Fraction(votes, seats))


@quota_mark
def hare_floor(votes: int, seats: int) -> int:
    '''Hare quota truncated to an integer.

    Can award more seats at the quotient than there are seats to fill; the
    methods detect this and refuse the result.
    '''
    return votes // seats


@quota_mark
def droop(votes: int, seats: int) -> int:
    '''Droop quota, the smallest integer quota that cannot overallocate.'''
    return votes // (seats + 1) + 1


def _round_half_up(value: Fraction) -> int:
    return int(math.floor(value + Fraction(1, 2)))


def seats_at_quota(votes: int, quota: Number) -> int:
    '''Return the number of whole quotas contained in the votes.

    Computed in exact arithmetic for integral and fractional quotas alike.
    '''
    return int(math.floor(Fraction(votes) / Fraction(quota)))
