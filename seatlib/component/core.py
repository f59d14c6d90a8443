'''Registers of named components and the helpers to query them.

There should normally be no need to use these functions directly.
'''

from typing import Any, Callable, Dict, Tuple, Union

from seatlib.errors import InvalidConfiguration


def register_functions(register: Dict[str, Any],
                       name: str,
                       ) -> Tuple[Callable, Callable, Callable]:
    '''Create the marker, getter and constructer functions for a register.

    :param register: The dictionary to hold the registered components.
    :param name: Human-readable kind of the component, used in error messages.
    :returns: A triple of

        -   a decorator registering the decorated object under its
            ``__name__``,
        -   a getter returning the component for a name and raising
            :class:`InvalidConfiguration` for unknown names,
        -   a constructer that passes callables through unchanged and
            otherwise behaves like the getter.
    '''
    def mark(component):
        register[component.__name__] = component
        return component

    def get(component_name: str):
        try:
            return register[component_name]
        except (KeyError, TypeError):
            known = ', '.join(sorted(register))
            raise InvalidConfiguration(
                f'unknown {name}: {component_name!r}, known: {known}'
            )

    def construct(definition: Union[str, Callable]):
        if callable(definition):
            return definition
        return get(definition)

    return mark, get, construct
