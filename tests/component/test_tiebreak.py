import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
import seatlib.component.tiebreak as tb
from seatlib.errors import InvalidConfiguration

VOTES = {'C': 300, 'A': 100, 'B': 300}


def test_entity_id():
    assert sorted(VOTES, key=lambda ent: tb.entity_id(ent, VOTES)) == ['A', 'B', 'C']


def test_entity_id_numeric():
    votes = {10: 5, 2: 5, 33: 5}
    assert sorted(votes, key=lambda ent: tb.entity_id(ent, votes)) == [2, 10, 33]


def test_most_votes():
    assert sorted(VOTES, key=lambda ent: tb.most_votes(ent, VOTES)) == ['B', 'C', 'A']


def test_independent_of_insertion_order():
    reordered = dict(reversed(list(VOTES.items())))
    for breaker in tb.TIEBREAKERS.values():
        assert (
            sorted(VOTES, key=lambda ent: breaker(ent, VOTES))
            == sorted(reordered, key=lambda ent: breaker(ent, reordered))
        )


def test_get():
    assert tb.get('entity_id') is tb.entity_id
    with pytest.raises(InvalidConfiguration):
        tb.get('coin_toss')
