'''Deterministic orderings for entities with equal standing.

When two entities have equal remainders (or equal vote counts for the
reserved seats), the one ranked first by the tie-breaker is served first.
A tie-breaker takes an entity identifier and the votes of the district and
returns a sort key; smaller keys come first. Tie-breakers must not depend on
dictionary or set iteration order so that repeated runs agree.

The statutory order is ascending entity identifier; it is a conformance
parameter of the method, not an incidental behaviour.
'''

from typing import Any, Dict, Tuple

import seatlib.component.core


TIEBREAKERS = {}


tiebreak_mark, get, construct = seatlib.component.core.register_functions(
    TIEBREAKERS, 'tie-breaker'
)


@tiebreak_mark
def entity_id(entity: Any, votes: Dict[Any, int]) -> Tuple:
    '''Ascending entity identifier.'''
    return (entity, )


@tiebreak_mark
def most_votes(entity: Any, votes: Dict[Any, int]) -> Tuple:
    '''More votes in the district first, then ascending entity identifier.'''
    return (-votes.get(entity, 0), entity)
