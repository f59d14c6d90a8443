'''Rules allocating the reserved seats of a district.

Reserved seats (such as the seats reserved for women) are set aside from the
ordinary quotient apportionment and handed out by a rule of their own. A rule
takes the votes of the eligible entities in the district, the number of
reserved seats and a tie-breaker, and returns the reserved seats per entity.

The statutory rule has not been finalized yet, so the standard method uses
the :func:`pending` placeholder, which allocates nothing. Results of that rule
must not be treated as authoritative for reserved seats.
'''

import logging
from typing import Any, Callable, Dict, Tuple

import seatlib.component.core


logger = logging.getLogger(__name__)

RESERVED_RULES = {}


reserved_mark, get, construct = seatlib.component.core.register_functions(
    RESERVED_RULES, 'reserved seat rule'
)


@reserved_mark
def pending(votes: Dict[Any, int],
            n_seats: int,
            tiebreaker: Callable[[Any, Dict[Any, int]], Tuple],
            ) -> Dict[Any, int]:
    '''Placeholder rule awaiting the finalized regulation; allocates nothing.'''
    if n_seats:
        logger.info('reserved seat rule pending, %d seats left unallocated',
                    n_seats)
    return {}


@reserved_mark
def winner_take_all(votes: Dict[Any, int],
                    n_seats: int,
                    tiebreaker: Callable[[Any, Dict[Any, int]], Tuple],
                    ) -> Dict[Any, int]:
    '''All reserved seats go to the entity with the most votes.

    Only the votes the rule is given count. Methods pass the votes of the
    entities eligible in the district, so an ineligible entity never wins a
    reserved seat even with the most votes in the district. Equal vote counts
    are ordered by the tie-breaker. Entities with no votes never win.
    '''
    if n_seats <= 0:
        return {}
    contenders = [ent for ent, n_votes in votes.items() if n_votes > 0]
    if not contenders:
        return {}
    winner = min(
        contenders,
        key=lambda ent: (-votes[ent], ) + tuple(tiebreaker(ent, votes))
    )
    logger.info('%s wins all %d reserved seats', winner, n_seats)
    return {winner: n_seats}
