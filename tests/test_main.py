import sys
import os
import io
import json

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import seatlib.__main__
from seatlib.errors import MethodNotApplicable
from seatlib.sink import JSONDirectoryResultSink

DOCUMENT = json.dumps({
    'election': {
        'id': 'E',
        'districts': [{'id': 1, 'total_seats': 3}, {'id': 2, 'total_seats': 3}],
        'entities': ['A', 'B', 'C'],
    },
    'tallies': {
        'per_district': {
            '1': {'A': 5000, 'B': 3000, 'C': 2000},
            '2': {'A': 5000, 'B': 3000, 'C': 2000},
        },
        'total_valid_per_district': {'1': 10000, '2': 10000},
        'total_valid_national': 20000,
    },
})


def test_election(capsys):
    seatlib.__main__.main(io.StringIO(DOCUMENT), quiet=True)
    report = json.loads(capsys.readouterr().out)
    assert report['national']['A']['ordinary_seats'] == 2


def test_output_dir(capsys, tmp_path):
    seatlib.__main__.main(
        io.StringIO(DOCUMENT), output_dir=str(tmp_path), quiet=True
    )
    records = JSONDirectoryResultSink(str(tmp_path)).fetch('E', 'district')
    assert len(records) == 6


def test_official_not_enabled():
    with pytest.raises(MethodNotApplicable):
        seatlib.__main__.main(
            io.StringIO(DOCUMENT), method='official', quiet=True
        )


def test_compare(capsys):
    seatlib.__main__.main(
        io.StringIO(DOCUMENT), enable_official=True, compare='official',
        quiet=True,
    )
    out = capsys.readouterr().out
    assert out.count('"identical": true') == 2


def test_compare_not_enabled(capsys):
    with pytest.warns(UserWarning):
        seatlib.__main__.main(
            io.StringIO(DOCUMENT), compare='official', quiet=True
        )
    assert '"identical": false' in capsys.readouterr().out


def test_settings_file(capsys):
    settings = io.StringIO('{"district_threshold": "40%"}')
    seatlib.__main__.main(io.StringIO(DOCUMENT), settings=settings, quiet=True)
    report = json.loads(capsys.readouterr().out)
    assert report['national']['A']['ordinary_seats'] == 6
    assert report['national']['B']['ordinary_seats'] == 0


def test_argparser():
    args = seatlib.__main__.argparser.parse_args(
        ['-I', '-m', 'official', '--enable-official', '-c', 'standard', '-q']
    )
    assert args.use_stdin
    assert args.method == 'official'
    assert args.enable_official
    assert args.compare == 'standard'
    assert args.input_file is None
