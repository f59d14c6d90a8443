'''Various utility functions for other modules of Seatlib.

There should normally be no need to use these functions directly.
'''

from fractions import Fraction
from numbers import Number
from typing import Any, Dict


def add_dict_to_dict(dict1: Dict[Any, Number],
                     dict2: Dict[Any, Number],
                     ) -> None:
    for key, addition in dict2.items():
        dict1[key] = dict1.get(key, 0) + addition


def share(part: int, total: int) -> Fraction:
    '''Return part / total as an exact fraction, zero for an empty total.'''
    if total == 0:
        return Fraction(0)
    return Fraction(part, total)


def percent(part: int, total: int) -> Fraction:
    '''Return the exact percentage of part in total, zero for an empty total.'''
    return share(part, total) * 100


def to_fraction(value: Any) -> Fraction:
    '''Convert a number or a numeric string to an exact fraction.

    Floats are converted through their shortest decimal representation so that
    0.1 becomes 1/10 rather than its binary approximation. Strings may end
    with a percent sign, e.g. ``'20%'`` gives 1/5.
    '''
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('%'):
            return Fraction(text[:-1].strip()) / 100
        return Fraction(text)
    elif isinstance(value, float):
        return Fraction(repr(value))
    else:
        return Fraction(value)
