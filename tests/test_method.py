import sys
import os
import random
from fractions import Fraction

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import seatlib.method
from seatlib.errors import InconsistentTally, InvalidConfiguration
from seatlib.method import AllocationResult, OfficialMethod, StandardMethod
from seatlib.model import District, Election
from seatlib.settings import EngineSettings

DISTRICT = District(1, 3)

random.seed(1848)
RANDOM_CASES = []
for i in range(40):
    n_entities = random.randint(1, 12)
    votes = {
        f'E{j:02d}': random.randint(0, 100000) for j in range(n_entities)
    }
    RANDOM_CASES.append((votes, random.randint(0, 60)))


def test_basic_example():
    result = StandardMethod().allocate_seats(
        DISTRICT, {'A': 5000, 'B': 3000, 'C': 2000}, 3
    )
    assert result.quotient == Fraction(10000, 3)
    assert result.remainders_by_entity == {'A': 1667, 'B': 3000, 'C': 2000}
    assert result.seats_by_entity == {'A': 1, 'B': 1, 'C': 1}
    assert result.allocated_seats == 3
    assert result.tied == frozenset()


def test_zero_seats():
    result = StandardMethod().allocate_seats(
        District(1, 2, reserved_seats=2), {'A': 5000, 'B': 3000}, 0
    )
    assert result.seats_by_entity == {'A': 0, 'B': 0}
    assert result.quotient == 0
    assert result.allocated_seats == 0


def test_no_entities():
    result = StandardMethod().allocate_seats(DISTRICT, {}, 3)
    assert result == AllocationResult.empty({}, 3)
    assert result.seats_by_entity == {}


def test_no_votes():
    result = StandardMethod().allocate_seats(DISTRICT, {'A': 0, 'B': 0}, 3)
    assert result.seats_by_entity == {'A': 0, 'B': 0}
    assert result.quotient == 0


def test_negative_seats():
    with pytest.raises(InvalidConfiguration):
        StandardMethod().allocate_seats(DISTRICT, {'A': 5000}, -1)


def test_negative_votes():
    with pytest.raises(InconsistentTally):
        StandardMethod().allocate_seats(DISTRICT, {'A': 5000, 'B': -1}, 3)


def test_tie_by_entity_id():
    votes = {'C': 1000, 'B': 1000, 'A': 500}
    result = StandardMethod().allocate_seats(DISTRICT, votes, 1)
    assert result.seats_by_entity == {'C': 0, 'B': 1, 'A': 0}
    assert result.tied == frozenset({'B', 'C'})


def test_tie_by_most_votes():
    votes = {'A': 1001, 'B': 2000, 'C': 1000}
    method = StandardMethod(
        quota_function=lambda v, s: 1000, tiebreaker='most_votes'
    )
    result = method.allocate_seats(DISTRICT, votes, 5)
    # all remainders are 1 or 0 after the quotient
    assert result.seats_by_entity == {'A': 2, 'B': 2, 'C': 1}
    assert result.tied == frozenset()


def test_more_remaining_than_entities():
    method = StandardMethod(quota_function=lambda v, s: v)
    result = method.allocate_seats(DISTRICT, {'B': 1, 'A': 3}, 5)
    assert result.seats_by_entity == {'A': 3, 'B': 2}


def test_overallocating_quota():
    method = StandardMethod(quota_function=lambda v, s: 1)
    with pytest.raises(InvalidConfiguration):
        method.allocate_seats(DISTRICT, {'A': 5, 'B': 3}, 3)


def test_exact_remainder_rule():
    method = StandardMethod(remainder_rule='exact')
    result = method.allocate_seats(
        DISTRICT, {'A': 5000, 'B': 3000, 'C': 2000}, 3
    )
    assert result.remainders_by_entity['A'] == Fraction(5000, 3)
    assert result.seats_by_entity == {'A': 1, 'B': 1, 'C': 1}


@pytest.mark.parametrize(('votes', 'n_seats'), RANDOM_CASES)
def test_conservation(votes, n_seats):
    result = StandardMethod().allocate_seats(DISTRICT, votes, n_seats)
    if sum(votes.values()) > 0:
        assert result.allocated_seats == n_seats
    assert set(result.seats_by_entity) == set(votes)


@pytest.mark.parametrize(('votes', 'n_seats'), RANDOM_CASES)
def test_monotonicity(votes, n_seats):
    seats = StandardMethod().allocate_seats(
        DISTRICT, votes, n_seats
    ).seats_by_entity
    for ent1 in votes:
        for ent2 in votes:
            if votes[ent1] > votes[ent2]:
                assert seats[ent1] >= seats[ent2]


@pytest.mark.parametrize(('votes', 'n_seats'), RANDOM_CASES)
def test_determinism(votes, n_seats):
    method = StandardMethod()
    result = method.allocate_seats(DISTRICT, votes, n_seats)
    reordered = dict(reversed(list(votes.items())))
    assert method.allocate_seats(DISTRICT, votes, n_seats) == result
    assert (
        method.allocate_seats(DISTRICT, reordered, n_seats).seats_by_entity
        == result.seats_by_entity
    )


def test_reserved_pending():
    district = District(1, 5, reserved_seats=2)
    assert StandardMethod().allocate_reserved(district, {'A': 10, 'B': 5}) == {}


def test_reserved_winner_take_all():
    district = District(1, 5, reserved_seats=2)
    method = StandardMethod(reserved_rule='winner_take_all')
    assert method.allocate_reserved(district, {'A': 10, 'B': 50}) == {'B': 2}


def test_can_apply():
    legislative = Election('E', [DISTRICT], ['A'])
    local = Election('L', [DISTRICT], ['A'], is_legislative=False)
    enabled = EngineSettings(official_method_enabled=True)
    assert StandardMethod().can_apply(legislative)
    assert not StandardMethod().can_apply(local)
    assert 'not legislative' in StandardMethod().refusal_reason(local)
    assert not OfficialMethod().can_apply(legislative)
    assert not OfficialMethod().can_apply(legislative, EngineSettings())
    assert OfficialMethod().can_apply(legislative, enabled)
    assert not OfficialMethod().can_apply(local, enabled)
    assert OfficialMethod().refusal_reason(legislative) == (
        'official method not enabled in settings'
    )
    assert OfficialMethod().refusal_reason(legislative, enabled) is None


def test_official_matches_standard():
    votes = {'A': 5000, 'B': 3000, 'C': 2000, 'D': 1234}
    for n_seats in range(8):
        assert (
            OfficialMethod().allocate_seats(DISTRICT, votes, n_seats)
            == StandardMethod().allocate_seats(DISTRICT, votes, n_seats)
        )


def test_metadata():
    meta = OfficialMethod(tiebreaker='most_votes').metadata()
    assert meta['name'] == 'official'
    assert meta['version'] == '2.0.0'
    assert meta['definition']['class'] == 'seatlib.method.OfficialMethod'
    assert meta['definition']['tiebreaker'] == {
        'callable': 'seatlib.component.tiebreak.most_votes'
    }


def test_get():
    assert isinstance(seatlib.method.get('standard'), StandardMethod)
    assert isinstance(seatlib.method.get('official'), OfficialMethod)
    method = StandardMethod()
    assert seatlib.method.get(method) is method
    with pytest.raises(InvalidConfiguration):
        seatlib.method.get('dhondt')


def test_get_definition():
    definition = StandardMethod(
        quota_function='droop', reserved_rule='winner_take_all'
    ).to_dict()
    method = seatlib.method.get(definition)
    assert isinstance(method, StandardMethod)
    assert method.to_dict() == definition
    assert method.quota_function is seatlib.component.quota.droop


@pytest.mark.parametrize('definition', [
    {'class': 'seatlib.model.District', 'id': 1, 'total_seats': 3},
    {'class': 'os.system', 'command': 'true'},
    {'quota_function': 'hare'},
])
def test_get_invalid_definition(definition):
    with pytest.raises(InvalidConfiguration):
        seatlib.method.get(definition)
