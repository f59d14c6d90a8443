import sys
import os
import json
from fractions import Fraction

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from seatlib.sink import JSONDirectoryResultSink, MemoryResultSink

RECORDS = [
    {'election_id': 'E', 'district_id': 1, 'entity_id': 'A',
     'ordinary_seats': 2, 'quotient': Fraction(10000, 3)},
    {'election_id': 'E', 'district_id': 1, 'entity_id': 'B',
     'ordinary_seats': 1, 'quotient': Fraction(10000, 3)},
]


@pytest.fixture(params=['memory', 'json'])
def sink(request, tmp_path):
    if request.param == 'memory':
        return MemoryResultSink()
    else:
        return JSONDirectoryResultSink(str(tmp_path / 'results'))


def test_empty(sink):
    assert sink.fetch('E', 'district') == []


def test_replace_fetch(sink):
    sink.replace('E', 'district', RECORDS)
    assert sink.fetch('E', 'district') == RECORDS
    assert sink.fetch('E', 'national') == []
    assert sink.fetch('F', 'district') == []


def test_replace_all(sink):
    sink.replace('E', 'district', RECORDS)
    sink.replace('E', 'district', RECORDS[:1])
    assert sink.fetch('E', 'district') == RECORDS[:1]
    sink.replace('E', 'district', [])
    assert sink.fetch('E', 'district') == []


def test_idempotent(sink):
    sink.replace('E', 'district', RECORDS)
    sink.replace('E', 'district', RECORDS)
    assert sink.fetch('E', 'district') == RECORDS


def test_unknown_level(sink):
    with pytest.raises(ValueError):
        sink.replace('E', 'regional', RECORDS)
    with pytest.raises(ValueError):
        sink.fetch('E', 'regional')


def test_memory_isolated():
    sink = MemoryResultSink()
    records = [dict(rec) for rec in RECORDS]
    sink.replace('E', 'district', records)
    records[0]['ordinary_seats'] = 99
    sink.fetch('E', 'district')[1]['ordinary_seats'] = 99
    assert sink.fetch('E', 'district') == RECORDS


def test_json_file(tmp_path):
    sink = JSONDirectoryResultSink(str(tmp_path))
    sink.replace('E', 'national', RECORDS)
    with open(sink.path('E', 'national'), encoding='utf8') as infile:
        stored = json.load(infile)
    assert stored[0]['quotient'] == {'fraction': [10000, 3]}
    assert sorted(os.listdir(tmp_path)) == ['E.national.json']


def test_json_failed_write_keeps_previous(tmp_path):
    sink = JSONDirectoryResultSink(str(tmp_path))
    sink.replace('E', 'district', RECORDS)
    with pytest.raises(ValueError):
        sink.replace('E', 'district', [{'entity_id': object()}])
    assert sink.fetch('E', 'district') == RECORDS
    assert sorted(os.listdir(tmp_path)) == ['E.district.json']


@pytest.mark.parametrize('election_id', ['', '.', '..', '../E', 'a/b', 'a\\b'])
def test_json_rejects_path_ids(tmp_path, election_id):
    sink = JSONDirectoryResultSink(str(tmp_path / 'results'))
    with pytest.raises(ValueError):
        sink.replace(election_id, 'district', RECORDS)
    with pytest.raises(ValueError):
        sink.fetch(election_id, 'district')
    assert os.listdir(tmp_path) == ['results']
    assert os.listdir(tmp_path / 'results') == []


def test_json_dotted_id(tmp_path):
    sink = JSONDirectoryResultSink(str(tmp_path))
    sink.replace('leg.2024', 'district', RECORDS)
    assert sink.fetch('leg.2024', 'district') == RECORDS
