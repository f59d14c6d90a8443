'''Conversion of methods and results to and from JSON-ready structures.

Calculation methods are recorded alongside the results they produced so that
every published number can be traced to the exact method setup. Methods
decorated with :func:`simple_serialization` gain a ``to_dict()`` method; the
dictionaries can be turned back into equal objects by :func:`from_dict`,
which is how a method is read from a settings file.

Exact numbers survive the round trip: fractions are stored as a
numerator/denominator pair, never as floats.

Only objects defined in Seatlib modules are reconstructed; a definition naming
anything else is rejected.
'''

import importlib
import inspect
from fractions import Fraction
from typing import Any, Dict, List


PACKAGE = 'seatlib'

ATOMIC_TYPES = (str, int, float, bool, type(None))


def simple_serialization(class_: type) -> type:
    '''A decorator to provide a ``to_dict()`` method built from constructor
    parameters.

    Every constructor parameter must be stored as an attribute of the same
    name, in a form the constructor accepts again.

    :param class_: The class to add the method to.
    '''
    param_names = [
        name for name in inspect.signature(class_.__init__).parameters
        if name not in ('self', 'args', 'kwargs')
    ]

    def to_dict(self) -> Dict[str, Any]:
        out_dict = {'class': scoped_name(type(self))}
        for attr in param_names:
            out_dict[attr] = serialize_value(getattr(self, attr))
        return out_dict

    class_.to_dict = to_dict
    return class_


def serialize_value(value: Any) -> Any:
    '''Serialize a value into JSON-compatible structures.'''
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    elif isinstance(value, ATOMIC_TYPES):
        return value
    elif isinstance(value, Fraction):
        return {'fraction': [value.numerator, value.denominator]}
    elif isinstance(value, dict):
        if all(isinstance(key, str) for key in value):
            return {key: serialize_value(val) for key, val in value.items()}
        return {'items': [
            [serialize_value(key), serialize_value(val)]
            for key, val in value.items()
        ]}
    elif isinstance(value, (list, tuple, set, frozenset)):
        if isinstance(value, (set, frozenset)):
            value = sorted(value)
        return [serialize_value(val) for val in value]
    elif callable(value):
        return {'callable': scoped_name(value)}
    else:
        raise ValueError(f'cannot serialize {value!r}')


def deserialize_value(value: Any) -> Any:
    '''Reconstruct a value produced by :func:`serialize_value`.'''
    if isinstance(value, dict):
        if 'class' in value:
            return _deserialize_class(value)
        elif set(value) == {'callable'}:
            return get_object(value['callable'])
        elif set(value) == {'fraction'}:
            return Fraction(*value['fraction'])
        elif set(value) == {'items'}:
            return {
                _hashable(deserialize_value(key)): deserialize_value(val)
                for key, val in value['items']
            }
        return {key: deserialize_value(val) for key, val in value.items()}
    elif isinstance(value, list):
        return [deserialize_value(val) for val in value]
    elif isinstance(value, ATOMIC_TYPES):
        return value
    else:
        raise ValueError(f'cannot deserialize {value!r}')


def to_dict(obj: Any) -> Dict[str, Any]:
    '''Serialize a method or a similar object to a JSON-ready dictionary.'''
    return serialize_value(obj)


def from_dict(value: Dict[str, Any]) -> Any:
    '''Reconstruct a method or a similar object from its dictionary.

    :param value: A dictionary created by :func:`to_dict`.
    '''
    if not isinstance(value, dict) or 'class' not in value:
        raise ValueError(
            f'invalid object definition, dict with class key expected: '
            f'{value!r}'
        )
    return deserialize_value(value)


def get_object(identifier: str) -> Any:
    '''Return a Seatlib object by its dotted module path.'''
    if not _is_package_identifier(identifier):
        raise ValueError(f'refusing to load non-{PACKAGE} object {identifier}')
    module_name, name = identifier.rsplit('.', 1)
    module = importlib.import_module(module_name)
    try:
        return getattr(module, name)
    except AttributeError as e:
        raise ValueError(f'unknown object {identifier}') from e


def scoped_name(obj: Any) -> str:
    return '.'.join((obj.__module__, obj.__qualname__))


def _deserialize_class(clsdef: Dict[str, Any]) -> Any:
    cls = get_object(clsdef['class'])
    params = {
        key: deserialize_value(val)
        for key, val in clsdef.items() if key != 'class'
    }
    return cls(**params)


def _is_package_identifier(value: Any) -> bool:
    if not isinstance(value, str) or '.' not in value:
        return False
    chunks = value.split('.')
    return (
        chunks[0] == PACKAGE
        and all(chunk.isidentifier() for chunk in chunks)
    )


def _hashable(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_hashable(val) for val in value)
    return value


def records_to_json(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    '''Serialize a list of result records for a JSON store.'''
    return [serialize_value(record) for record in records]


def records_from_json(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    '''Reconstruct result records loaded from a JSON store.'''
    return [deserialize_value(record) for record in records]

