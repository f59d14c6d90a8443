'''Seat apportionment methods for a single district.

A method is a stateless strategy object: it is configured at construction and
then only computes. It is passed explicitly to every engine call, so that
computations with different methods can run side by side.

The standard method is the statutory one:

1.  The electoral quotient is the total of the eligible votes divided by the
    number of ordinary seats (the Hare quota), kept as an exact fraction.
2.  Every entity gets as many seats as whole quotients its votes contain.
3.  Its remainder is its votes minus its seats times the integral part of
    the quotient.
4.  Seats left over are given one at a time to the entities with the largest
    remainders. Equal remainders are ordered by ascending entity identifier.
5.  Reserved seats are handled by a separate rule; the statutory one is not
    finalized, so the standard method allocates none of them.

The official method is the extension point for variants approved by the
electoral authority. It behaves exactly like the standard method unless
configured otherwise and only runs when explicitly enabled in the settings.
Both methods can be compared on identical inputs by
:meth:`seatlib.engine.ApportionmentEngine.compare_methods`.
'''

import abc
import dataclasses
import logging
from numbers import Number
from typing import Any, Callable, Dict, FrozenSet, Optional, Union

import seatlib.component.core
import seatlib.component.quota
import seatlib.component.remainder
import seatlib.component.reserved
import seatlib.component.tiebreak
import seatlib.persist
from seatlib.errors import InconsistentTally, InvalidConfiguration
from seatlib.model import District, Election
from seatlib.persist import simple_serialization
from seatlib.settings import EngineSettings


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class AllocationResult:
    '''Ordinary seats of one district, with the audit trail of the quotient.

    :param seats_by_entity: Seats per entity; every entity that took part is
        present, including those with no seats.
    :param quotient: The electoral quotient; zero when nothing was divided.
    :param remainders_by_entity: Remainders after the allocation at the
        quotient.
    :param ordinary_seats: Number of seats that were to be allocated.
    :param total_votes: Total of the votes taking part.
    :param tied: Entities with a remainder equal to that of the last entity
        served by remainder, which competed for a seat that only the
        tie-breaker decided.
    '''
    seats_by_entity: Dict[Any, int]
    quotient: Number = 0
    remainders_by_entity: Dict[Any, Number] = dataclasses.field(
        default_factory=dict
    )
    ordinary_seats: int = 0
    total_votes: int = 0
    tied: FrozenSet[Any] = frozenset()

    @classmethod
    def empty(cls,
              votes: Dict[Any, int],
              ordinary_seats: int = 0,
              ) -> 'AllocationResult':
        '''The degenerate result where nothing is divided.'''
        return cls(
            seats_by_entity={ent: 0 for ent in votes},
            quotient=0,
            remainders_by_entity={ent: 0 for ent in votes},
            ordinary_seats=ordinary_seats,
            total_votes=sum(votes.values()),
        )

    @property
    def allocated_seats(self) -> int:
        return sum(self.seats_by_entity.values())


class ApportionmentMethod(metaclass=abc.ABCMeta):
    '''Distribute the seats of a district among eligible entities.

    An abstract base class for all calculation methods.
    '''

    name: str = NotImplemented
    '''Short identifier of the method.'''

    version: str = NotImplemented
    '''Version of the method implementation, recorded with its results.'''

    def can_apply(self,
                  election: Election,
                  settings: Optional[EngineSettings] = None,
                  ) -> bool:
        '''Whether the method may be used for the election.

        :param election: The election to apportion.
        :param settings: Settings of the run; the defaults if not given.
        '''
        return True

    def refusal_reason(self,
                       election: Election,
                       settings: Optional[EngineSettings] = None,
                       ) -> Optional[str]:
        '''Explain why :meth:`can_apply` is false, None if it is true.'''
        if self.can_apply(election, settings):
            return None
        return 'not applicable to this election'

    @abc.abstractmethod
    def allocate_seats(self,
                       district: District,
                       votes: Dict[Any, int],
                       ordinary_seats: int,
                       ) -> AllocationResult:
        '''Distribute the ordinary seats of a district.

        :param district: The district concerned.
        :param votes: Votes of the eligible entities in the district.
        :param ordinary_seats: Number of seats to distribute.
        '''
        raise NotImplementedError

    def allocate_reserved(self,
                          district: District,
                          votes: Dict[Any, int],
                          ) -> Dict[Any, int]:
        '''Distribute the reserved seats of a district; none by default.'''
        return {}

    def metadata(self) -> Dict[str, Any]:
        '''Describe the method and its setup for the audit trail.'''
        meta = {'name': self.name, 'version': self.version}
        if hasattr(self, 'to_dict'):
            meta['definition'] = self.to_dict()
        return meta

    def __repr__(self) -> str:
        return f'<{type(self).__name__}({self.name} {self.version})>'


@simple_serialization
class StandardMethod(ApportionmentMethod):
    '''The statutory quotient and largest remainder method.

    :param quota_function: A callable producing the quotient from the total
        number of votes and seats. The common quota functions can be
        referenced by name from the :mod:`seatlib.component.quota` module.
    :param remainder_rule: A callable computing the remainder of an entity
        from its votes, seats at the quotient and the quotient, or the name of
        one from :mod:`seatlib.component.remainder`.
    :param tiebreaker: Ordering of entities with equal remainders, or the name
        of one from :mod:`seatlib.component.tiebreak`.
    :param reserved_rule: Rule for the reserved seats, or the name of one
        from :mod:`seatlib.component.reserved`.
    '''
    name = 'standard'
    version = '1.0.0'

    def __init__(self,
                 quota_function: Union[str, Callable] = 'hare',
                 remainder_rule: Union[str, Callable] = 'floor_quotient',
                 tiebreaker: Union[str, Callable] = 'entity_id',
                 reserved_rule: Union[str, Callable] = 'pending',
                 ):
        self.quota_function = seatlib.component.quota.construct(
            quota_function
        )
        self.remainder_rule = seatlib.component.remainder.construct(
            remainder_rule
        )
        self.tiebreaker = seatlib.component.tiebreak.construct(tiebreaker)
        self.reserved_rule = seatlib.component.reserved.construct(
            reserved_rule
        )

    def can_apply(self,
                  election: Election,
                  settings: Optional[EngineSettings] = None,
                  ) -> bool:
        '''Applies to legislative elections only.'''
        return election.is_legislative

    def refusal_reason(self,
                       election: Election,
                       settings: Optional[EngineSettings] = None,
                       ) -> Optional[str]:
        if not election.is_legislative:
            return f'election {election.id} is not legislative'
        return None

    def allocate_seats(self,
                       district: District,
                       votes: Dict[Any, int],
                       ordinary_seats: int,
                       ) -> AllocationResult:
        '''Distribute seats by the quotient, then by largest remainder.

        :param district: The district concerned.
        :param votes: Votes of the eligible entities in the district.
        :param ordinary_seats: Number of seats to distribute.
        :raises InvalidConfiguration: If the number of seats is negative or
            the quota function awards more seats than available.
        '''
        if ordinary_seats < 0:
            raise InvalidConfiguration(
                f'district {district.id}: negative number of ordinary seats '
                f'{ordinary_seats}'
            )
        for entity, n_votes in votes.items():
            if n_votes < 0:
                raise InconsistentTally(
                    f'negative vote count {n_votes} for {entity}',
                    district_id=district.id,
                )
        total_votes = sum(votes.values())
        if ordinary_seats == 0 or not votes or total_votes == 0:
            logger.info('district %s: nothing to divide (%d seats, %d '
                        'entities, %d votes)', district.id, ordinary_seats,
                        len(votes), total_votes)
            return AllocationResult.empty(votes, ordinary_seats)
        quotient = self.quota_function(total_votes, ordinary_seats)
        logger.info('district %s: quotient %s for %d votes and %d seats',
                    district.id, quotient, total_votes, ordinary_seats)
        seats = {
            ent: seatlib.component.quota.seats_at_quota(n_votes, quotient)
            for ent, n_votes in votes.items()
        }
        remainders = {
            ent: self.remainder_rule(n_votes, seats[ent], quotient)
            for ent, n_votes in votes.items()
        }
        n_remaining = ordinary_seats - sum(seats.values())
        if n_remaining < 0:
            raise InvalidConfiguration(
                f'district {district.id}: quotient {quotient} awards '
                f'{sum(seats.values())} seats out of {ordinary_seats}'
            )
        logger.debug('district %s: seats at quotient %s, remainders %s',
                     district.id, seats, remainders)
        tied = self._distribute_remaining(
            seats, remainders, votes, n_remaining
        )
        if tied:
            logger.info('district %s: equal remainders of %s decided by '
                        'tie-breaker %s', district.id, sorted(tied),
                        getattr(self.tiebreaker, '__name__', self.tiebreaker))
        return AllocationResult(
            seats_by_entity=seats,
            quotient=quotient,
            remainders_by_entity=remainders,
            ordinary_seats=ordinary_seats,
            total_votes=total_votes,
            tied=frozenset(tied),
        )

    def allocate_reserved(self,
                          district: District,
                          votes: Dict[Any, int],
                          ) -> Dict[Any, int]:
        '''Distribute the reserved seats of a district by the reserved rule.'''
        return self.reserved_rule(
            votes, district.reserved_seats, self.tiebreaker
        )

    def _distribute_remaining(self,
                              seats: Dict[Any, int],
                              remainders: Dict[Any, Number],
                              votes: Dict[Any, int],
                              n_remaining: int,
                              ) -> FrozenSet[Any]:
        order = sorted(
            remainders,
            key=lambda ent: (
                (-remainders[ent], ) + tuple(self.tiebreaker(ent, votes))
            )
        )
        i = 0
        while i < n_remaining:
            seats[order[i % len(order)]] += 1
            i += 1
        return self._tied_at_cut(order, remainders, n_remaining)

    @staticmethod
    def _tied_at_cut(order, remainders, n_remaining) -> FrozenSet[Any]:
        if n_remaining == 0 or n_remaining % len(order) == 0:
            return frozenset()
        last_served = remainders[order[(n_remaining - 1) % len(order)]]
        first_unserved = remainders[order[n_remaining % len(order)]]
        if last_served != first_unserved:
            return frozenset()
        return frozenset(
            ent for ent in order if remainders[ent] == last_served
        )


@simple_serialization
class OfficialMethod(StandardMethod):
    '''The official variant approved by the electoral authority.

    Identical to :class:`StandardMethod` with the default parameters; the
    regulator-approved deviations (quotient rounding, tie-break order,
    reserved seat rule) are configured through the same parameters. It runs
    only when ``official_method_enabled`` is set in the engine settings.
    '''
    name = 'official'
    version = '2.0.0'

    def can_apply(self,
                  election: Election,
                  settings: Optional[EngineSettings] = None,
                  ) -> bool:
        '''Applies to legislative elections when explicitly enabled.'''
        if settings is None:
            settings = EngineSettings()
        return (
            super().can_apply(election, settings)
            and settings.official_method_enabled
        )

    def refusal_reason(self,
                       election: Election,
                       settings: Optional[EngineSettings] = None,
                       ) -> Optional[str]:
        reason = super().refusal_reason(election, settings)
        if reason is None and not self.can_apply(election, settings):
            reason = 'official method not enabled in settings'
        return reason


METHODS = {
    StandardMethod.name: StandardMethod,
    OfficialMethod.name: OfficialMethod,
}


_, _get_method_class, _ = seatlib.component.core.register_functions(
    METHODS, 'method'
)


def get(definition: Union[str, Dict[str, Any], ApportionmentMethod]
        ) -> ApportionmentMethod:
    '''Return a method from its name, its serialized definition or itself.

    :param definition: A registered method name (``'standard'`` or
        ``'official'``, built with default parameters), a dictionary produced
        by the method's ``to_dict()``, or a method object, which is returned
        unchanged.
    '''
    if isinstance(definition, ApportionmentMethod):
        return definition
    elif isinstance(definition, dict):
        try:
            method = seatlib.persist.from_dict(definition)
        except (ValueError, TypeError) as e:
            raise InvalidConfiguration(f'invalid method definition: {e}') from e
        if not isinstance(method, ApportionmentMethod):
            raise InvalidConfiguration(
                f'{definition["class"]} is not an apportionment method'
            )
        return method
    else:
        return _get_method_class(definition)()
