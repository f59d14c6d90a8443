import sys
import os
from fractions import Fraction

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
import seatlib.component.remainder as r
from seatlib.errors import InvalidConfiguration


@pytest.mark.parametrize(('n_votes', 'n_seats', 'remainder'), [
    (5000, 1, 1667),
    (3000, 0, 3000),
    (2000, 0, 2000),
    (10000, 3, 1),
])
def test_floor_quotient(n_votes, n_seats, remainder):
    result = r.floor_quotient(n_votes, n_seats, Fraction(10000, 3))
    assert result == remainder
    assert isinstance(result, int)


def test_exact():
    assert r.exact(5000, 1, Fraction(10000, 3)) == Fraction(5000, 3)
    assert r.exact(10000, 3, Fraction(10000, 3)) == 0


def test_integral_quotient_rules_agree():
    for n_votes, n_seats in [(500, 2), (999, 4), (250, 1)]:
        assert r.floor_quotient(n_votes, n_seats, 200) == r.exact(n_votes, n_seats, 200)


def test_get():
    assert r.get('floor_quotient') is r.floor_quotient
    with pytest.raises(InvalidConfiguration):
        r.get('ceil_quotient')
