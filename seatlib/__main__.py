"""A commandline tool to apportion the seats of an election document.

Reads an election document (election setup, vote tallies and optionally
settings) in JSON, apportions the seats of all its districts and prints the
result report. Can instead compare two calculation methods district by
district, and store the results as JSON record files.
"""

import argparse
import io
import logging
import sys
import warnings
from typing import Optional

import seatlib.io.document
import seatlib.method
import seatlib.settings
from seatlib.engine import ApportionmentEngine
from seatlib.errors import ApportionmentError
from seatlib.io.core import ElectionData
from seatlib.sink import JSONDirectoryResultSink

argparser = argparse.ArgumentParser(
    prog='seatlib',
    description=__doc__,
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
argparser.add_argument(
    '-i', '--input-file',
    type=argparse.FileType('r', encoding='utf8'),
    help='election document to load',
)
argparser.add_argument(
    '-I', '--use-stdin',
    action='store_true',
    help='load the election document from standard input',
)
argparser.add_argument(
    '-m', '--method',
    help=(
        'calculation method to use (standard or official); default (None)'
        ' takes the method from the settings'
    ),
)
argparser.add_argument(
    '--enable-official',
    action='store_true',
    help='allow the official method to run',
)
argparser.add_argument(
    '-c', '--compare',
    metavar='METHOD',
    help=(
        'compare the method with this one in every district instead of'
        ' apportioning the election'
    ),
)
argparser.add_argument(
    '-s', '--settings',
    type=argparse.FileType('r', encoding='utf8'),
    help='JSON settings file overriding the settings of the document',
)
argparser.add_argument(
    '-o', '--output-dir',
    help='store the result records as JSON files in this directory',
)
argparser.add_argument(
    '-v', '--verbose',
    action='store_true',
    help='show all engine log messages and other info',
)
argparser.add_argument(
    '-q', '--quiet',
    action='store_true',
    help='do not show any engine log messages or other info',
)


def main(input_file: io.TextIOBase,
         use_stdin: bool = False,
         method: Optional[str] = None,
         enable_official: bool = False,
         compare: Optional[str] = None,
         settings: Optional[io.TextIOBase] = None,
         output_dir: Optional[str] = None,
         verbose: bool = False,
         quiet: bool = False,
         ) -> None:
    logging.basicConfig(
        level=(
            logging.DEBUG if verbose
            else (logging.WARNING if quiet else logging.INFO)
        ),
        format='%(levelname)-10s %(message)s'
    )
    if use_stdin:
        input_file = sys.stdin
    data = load_data(input_file, settings, enable_official)
    used_method = seatlib.method.get(
        method if method is not None else data.settings.method
    )
    engine = ApportionmentEngine(data.settings)
    if compare is not None:
        run_comparison(
            engine, data, used_method, seatlib.method.get(compare)
        )
    else:
        run_election(engine, data, used_method, output_dir)


def load_data(input_file: io.TextIOBase,
              settings_file: Optional[io.TextIOBase] = None,
              enable_official: bool = False,
              ) -> ElectionData:
    """Load the election document and settle the settings of the run."""
    settings = None
    if settings_file is not None:
        settings = seatlib.settings.load_settings(settings_file)
    data = seatlib.io.document.load(input_file, settings=settings)
    if enable_official:
        data.settings = data.settings.replace(official_method_enabled=True)
    return data


def run_election(engine: ApportionmentEngine,
                 data: ElectionData,
                 method: seatlib.method.ApportionmentMethod,
                 output_dir: Optional[str] = None,
                 ) -> None:
    result = engine.compute_election(data.election, data.tally, method)
    if not result.complete:
        warnings.warn(
            f'{len(result.errors)} districts could not be apportioned'
        )
    seatlib.io.document.dump(sys.stdout, result)
    if output_dir is not None:
        if result.complete:
            engine.persist(result, JSONDirectoryResultSink(output_dir))
        else:
            warnings.warn('incomplete result, not storing any records')


def run_comparison(engine: ApportionmentEngine,
                   data: ElectionData,
                   method_a: seatlib.method.ApportionmentMethod,
                   method_b: seatlib.method.ApportionmentMethod,
                   ) -> None:
    n_different = 0
    for district in data.election.districts:
        comparison = engine.compare_methods(
            data.election, district, data.tally, method_a, method_b
        )
        if not comparison.identical:
            n_different += 1
        seatlib.io.document.dump(sys.stdout, comparison)
    if n_different:
        warnings.warn(
            f'methods {method_a.name} and {method_b.name} differ or fail in '
            f'{n_different} districts'
        )


def run() -> None:
    args = argparser.parse_args()
    if not args.input_file and not args.use_stdin:
        argparser.print_usage()
        return
    try:
        main(**vars(args))
    except ApportionmentError as e:
        sys.exit(f'seatlib: {e}')


if __name__ == '__main__':
    run()
