import sys
import os
import json
from fractions import Fraction

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import seatlib.component.tiebreak
import seatlib.persist
from seatlib.method import OfficialMethod, StandardMethod

METHODS = [
    StandardMethod(),
    StandardMethod(quota_function='droop', remainder_rule='exact'),
    StandardMethod(tiebreaker='most_votes', reserved_rule='winner_take_all'),
    OfficialMethod(),
    OfficialMethod(quota_function='hare_rounded'),
]


@pytest.mark.parametrize('method', METHODS)
def test_method_json(method):
    serialized = json.dumps(seatlib.persist.to_dict(method))
    restored = seatlib.persist.from_dict(json.loads(serialized))
    assert type(restored) == type(method)
    assert restored.to_dict() == method.to_dict()
    assert restored.quota_function is method.quota_function
    assert restored.tiebreaker is method.tiebreaker


@pytest.mark.parametrize('value', [
    Fraction(10000, 3),
    {1: Fraction(1, 2), 2: 0},
    {'A': [1, 2, 3]},
    [1, 'A', None, True],
    3,
])
def test_value_roundtrip(value):
    serialized = json.loads(json.dumps(seatlib.persist.serialize_value(value)))
    assert seatlib.persist.deserialize_value(serialized) == value


def test_fraction_encoding():
    assert seatlib.persist.serialize_value(Fraction(10000, 3)) == {
        'fraction': [10000, 3]
    }


def test_set_sorted():
    assert seatlib.persist.serialize_value(frozenset({'C', 'A', 'B'})) == [
        'A', 'B', 'C'
    ]


def test_callable():
    assert seatlib.persist.serialize_value(
        seatlib.component.tiebreak.entity_id
    ) == {'callable': 'seatlib.component.tiebreak.entity_id'}


def test_unserializable():
    with pytest.raises(ValueError):
        seatlib.persist.serialize_value(object())


@pytest.mark.parametrize('definition', [
    {'class': 'os.system'},
    {'class': 'builtins.eval'},
    {'class': 'seatlib'},
    {'class': 'seatlib.method.Nonexistent'},
    {'callable': 'seatlib.method.StandardMethod'},
    [],
])
def test_from_dict_invalid(definition):
    with pytest.raises(ValueError):
        seatlib.persist.from_dict(definition)


def test_records():
    records = [{'entity_id': 'A', 'quotient': Fraction(7, 2), 'seats': 1}]
    as_json = json.loads(json.dumps(seatlib.persist.records_to_json(records)))
    assert seatlib.persist.records_from_json(as_json) == records
