import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
import seatlib.io.document
from seatlib.engine import ApportionmentEngine
from seatlib.method import StandardMethod
from seatlib.sink import MemoryResultSink

DATA_DIR = os.path.join(os.path.dirname(__file__), 'data')


@pytest.fixture(scope='module')
def leg_2024_data():
    fpath = os.path.join(DATA_DIR, 'legislative_2024.json')
    with open(fpath, encoding='utf8') as infile:
        return seatlib.io.document.load(infile)


def test_leg_2024_eligibility(leg_2024_data):
    engine = ApportionmentEngine(leg_2024_data.settings)
    result = engine.compute_election(
        leg_2024_data.election, leg_2024_data.tally, StandardMethod()
    )
    eligibility = result.eligibility
    assert eligibility['ALP'].eligible_districts == {1, 2, 3}
    assert eligibility['BLC'].eligible_districts == {1, 2, 3}
    # the union misses the district threshold in the south only
    assert eligibility['CNT'].eligible_districts == {1, 3}
    assert eligibility['DMR'].eligible_districts == {1, 3}
    assert not eligibility['EVR'].eligible
    assert eligibility['EVR'].reason == 'below national/district threshold'


def test_leg_2024_seats(leg_2024_data):
    engine = ApportionmentEngine(leg_2024_data.settings)
    result = engine.compute_election(
        leg_2024_data.election, leg_2024_data.tally, StandardMethod()
    )
    assert result.complete
    seats = {
        dist_id: dist_result.allocation.seats_by_entity
        for dist_id, dist_result in result.districts.items()
    }
    assert seats == {
        1: {'ALP': 3, 'BLC': 1, 'CNT': 1, 'DMR': 1},
        2: {'ALP': 3, 'BLC': 2},
        3: {'ALP': 1, 'BLC': 1, 'CNT': 1, 'DMR': 1},
    }
    assert result.districts[1].allocation.remainders_by_entity == {
        'ALP': 11334, 'BLC': 6667, 'CNT': 14000, 'DMR': 11000
    }
    assert {ent: total.ordinary_seats for ent, total in result.national.items()} == {
        'ALP': 7, 'BLC': 4, 'CNT': 2, 'DMR': 2, 'EVR': 0
    }
    assert result.total_seats == 15


def test_leg_2024_reserved(leg_2024_data):
    engine = ApportionmentEngine(leg_2024_data.settings)
    result = engine.compute_election(
        leg_2024_data.election, leg_2024_data.tally,
        StandardMethod(reserved_rule='winner_take_all'),
    )
    assert result.districts[1].reserved_seats == {'ALP': 1}
    assert result.national['ALP'].total_seats == 8
    assert result.total_seats == 16


def test_leg_2024_droop_comparison(leg_2024_data):
    engine = ApportionmentEngine(leg_2024_data.settings)
    comparisons = {
        dist.id: engine.compare_methods(
            leg_2024_data.election, dist, leg_2024_data.tally,
            StandardMethod(), StandardMethod(quota_function='droop'),
        )
        for dist in leg_2024_data.election.districts
    }
    assert comparisons[1].identical
    assert comparisons[2].identical
    assert [(diff.entity_id, diff.delta) for diff in comparisons[3].differences] == [
        ('ALP', 1), ('DMR', -1)
    ]


def test_leg_2024_persist(leg_2024_data):
    engine = ApportionmentEngine(leg_2024_data.settings)
    result = engine.compute_election(
        leg_2024_data.election, leg_2024_data.tally, StandardMethod()
    )
    sink = MemoryResultSink()
    engine.persist(result, sink)
    assert len(sink.fetch('leg-2024', 'district')) == 10
    assert len(sink.fetch('leg-2024', 'national')) == 5
