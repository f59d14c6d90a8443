'''Engine configuration.

The settings are passed explicitly to the engine (and through it to the
methods' applicability checks); nothing is read from the environment. They can
be built in code, from a dictionary, or from a JSON file::

    {
        "national_threshold": "10%",
        "district_threshold": 0.2,
        "tally_tolerance": 0,
        "official_method_enabled": false,
        "method": "standard"
    }

Thresholds are kept as exact fractions of one; floats are converted through
their decimal representation and strings may be written as percentages.
'''

from __future__ import annotations

import dataclasses
import json
from fractions import Fraction
from typing import Any, Dict, Optional, TextIO, Union

import seatlib.util
from seatlib.errors import InvalidConfiguration


@dataclasses.dataclass(frozen=True)
class EngineSettings:
    '''Parameters of an apportionment run.

    :param national_threshold: Minimum share of national valid votes
        required of every coalition member (and of standalone entities when
        ``standalone_national_threshold`` is set).
    :param district_threshold: Minimum share of valid votes in a district
        required of a standalone entity (in every district it contests) or of
        a coalition's combined votes (per district).
    :param standalone_national_threshold: Whether standalone entities must
        also clear the national threshold.
    :param tally_tolerance: Number of votes by which the entity votes of a
        district may exceed its declared valid votes before the tally is
        refused as inconsistent.
    :param official_method_enabled: Explicit approval to run the official
        method variant.
    :param max_workers: Number of worker threads for district computations;
        None lets the executor decide.
    :param method: Name of the default method, or its serialized definition,
        used by the command-line tool.
    '''
    national_threshold: Fraction = Fraction(1, 10)
    district_threshold: Fraction = Fraction(1, 5)
    standalone_national_threshold: bool = True
    tally_tolerance: int = 0
    official_method_enabled: bool = False
    max_workers: Optional[int] = None
    method: Union[str, Dict[str, Any]] = 'standard'

    def __post_init__(self):
        for name in ('national_threshold', 'district_threshold'):
            try:
                value = seatlib.util.to_fraction(getattr(self, name))
            except (TypeError, ValueError, ZeroDivisionError) as e:
                raise InvalidConfiguration(
                    f'invalid {name}: {getattr(self, name)!r}'
                ) from e
            if not 0 <= value <= 1:
                raise InvalidConfiguration(
                    f'{name} must be between 0 and 1, got {value}'
                )
            # frozen dataclass, normalize through object.__setattr__
            object.__setattr__(self, name, value)
        if not isinstance(self.tally_tolerance, int) or self.tally_tolerance < 0:
            raise InvalidConfiguration(
                f'tally_tolerance must be a non-negative integer, '
                f'got {self.tally_tolerance!r}'
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidConfiguration(
                f'max_workers must be positive, got {self.max_workers}'
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EngineSettings:
        '''Build settings from a dictionary, rejecting unknown keys.'''
        known = {field.name for field in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfiguration(
                'unknown settings: ' + ', '.join(sorted(unknown))
            )
        return cls(**data)

    def replace(self, **changes) -> EngineSettings:
        '''Return a copy of the settings with the given fields changed.'''
        return dataclasses.replace(self, **changes)


def load_settings(file: TextIO) -> EngineSettings:
    '''Load settings from a JSON file.'''
    try:
        data = json.load(file)
    except json.JSONDecodeError as e:
        raise InvalidConfiguration(f'settings file is not valid JSON: {e}')
    if not isinstance(data, dict):
        raise InvalidConfiguration('settings file must contain an object')
    return EngineSettings.from_dict(data)
