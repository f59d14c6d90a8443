'''Rules for the vote remainders left after allocation at the quotient.

A remainder rule takes the number of votes of an entity, the number of seats
it obtained at the quotient and the quotient itself, and returns the votes
left over that compete for the seats still unallocated.

The statutory rule subtracts whole multiples of the integral part of the
quotient, which keeps the remainders integral and exactly reproducible.
The exact rule subtracts multiples of the unrounded quotient instead.
'''

import math
from fractions import Fraction
from numbers import Number

import seatlib.component.core


REMAINDERS = {}


remainder_mark, get, construct = seatlib.component.core.register_functions(
    REMAINDERS, 'remainder rule'
)


@remainder_mark
def floor_quotient(votes: int, seats: int, quotient: Number) -> int:
    '''Votes minus seats times the quotient rounded down.'''
    return votes - seats * int(math.floor(quotient))


@remainder_mark
def exact(votes: int, seats: int, quotient: Number) -> Fraction:
    '''Votes minus seats times the unrounded quotient.'''
    return votes - seats * Fraction(quotient)
