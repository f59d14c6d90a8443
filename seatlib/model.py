'''Elections, districts, coalitions and vote tallies.

These are the read-only inputs of the apportionment engine, supplied by the
surrounding results backend. Entities (the competing lists) are represented
by their identifiers only: any hashable value works, but all identifiers of
one election must be mutually orderable (all strings or all integers) because
the statutory tie-break orders them.

The constructors validate the structural invariants and raise
:class:`seatlib.errors.InvalidConfiguration` when they do not hold; vote
tallies are checked for consistency on demand since an orchestration layer
may want to inspect an inconsistent tally before refusing it.
'''

from __future__ import annotations

from numbers import Integral
from typing import Any, Dict, Iterable, List, Optional

from seatlib.errors import InconsistentTally, InvalidConfiguration


class District:
    '''An electoral district (circonscription) with a fixed number of seats.

    :param id: Identifier of the district.
    :param total_seats: Number of seats elected in the district.
    :param reserved_seats: Number of those seats reserved for a special rule
        (e.g. seats reserved for women) and excluded from the ordinary
        quotient apportionment.
    :param name: Optional human-readable name.
    '''
    def __init__(self,
                 id: Any,
                 total_seats: int,
                 reserved_seats: int = 0,
                 name: Optional[str] = None,
                 ):
        if total_seats <= 0:
            raise InvalidConfiguration(
                f'district {id}: total seats must be positive, '
                f'got {total_seats}'
            )
        if reserved_seats < 0 or reserved_seats > total_seats:
            raise InvalidConfiguration(
                f'district {id}: reserved seats must be between 0 and '
                f'{total_seats}, got {reserved_seats}'
            )
        self.id = id
        self.total_seats = total_seats
        self.reserved_seats = reserved_seats
        self.name = name

    @property
    def ordinary_seats(self) -> int:
        '''Seats apportioned by the quotient method.'''
        return self.total_seats - self.reserved_seats

    def __repr__(self) -> str:
        return (
            f'<District({self.id},{self.total_seats}'
            + (f'+{self.reserved_seats}R' if self.reserved_seats else '')
            + ')>'
        )


class Coalition:
    '''A declared grouping of entities evaluated jointly against thresholds.

    :param id: Identifier of the coalition.
    :param members: Identifiers of the member entities.
    :param name: Optional human-readable name.
    '''
    def __init__(self,
                 id: Any,
                 members: Iterable[Any],
                 name: Optional[str] = None,
                 ):
        self.id = id
        self.members = tuple(members)
        self.name = name
        if not self.members:
            raise InvalidConfiguration(f'coalition {id} has no members')
        if len(set(self.members)) != len(self.members):
            raise InvalidConfiguration(
                f'coalition {id} lists a member more than once'
            )

    def __repr__(self) -> str:
        return f'<Coalition({self.id}:{",".join(map(str, self.members))})>'


class Election:
    '''A ballot event with its districts and competing entities.

    :param id: Identifier of the election.
    :param districts: Districts of the election, in their official order.
    :param entities: Identifiers of all competing entities.
    :param coalitions: Coalitions declared for the election. Every entity
        belongs to at most one of them.
    :param is_legislative: Whether this is a legislative election. Only
        legislative elections are apportioned by the standard methods.
    :param name: Optional human-readable name.
    '''
    def __init__(self,
                 id: Any,
                 districts: Iterable[District],
                 entities: Iterable[Any],
                 coalitions: Iterable[Coalition] = (),
                 is_legislative: bool = True,
                 name: Optional[str] = None,
                 ):
        self.id = id
        self.districts = list(districts)
        self.entities = list(entities)
        self.coalitions = list(coalitions)
        self.is_legislative = is_legislative
        self.name = name
        self._districts_by_id = _index_unique(
            self.districts, lambda d: d.id, 'district'
        )
        _index_unique(self.entities, lambda e: e, 'entity')
        _index_unique(self.coalitions, lambda c: c.id, 'coalition')
        self._coalition_by_entity = {}
        known = set(self.entities)
        for coalition in self.coalitions:
            for member in coalition.members:
                if member not in known:
                    raise InvalidConfiguration(
                        f'coalition {coalition.id}: unknown entity {member}'
                    )
                if member in self._coalition_by_entity:
                    other = self._coalition_by_entity[member].id
                    raise InvalidConfiguration(
                        f'entity {member} belongs to coalitions {other} '
                        f'and {coalition.id}'
                    )
                self._coalition_by_entity[member] = coalition

    def get_district(self, district_id: Any) -> District:
        '''Return the district with the given identifier.'''
        try:
            return self._districts_by_id[district_id]
        except KeyError:
            raise InvalidConfiguration(
                f'election {self.id} has no district {district_id}'
            ) from None

    def has_district(self, district: District) -> bool:
        return self._districts_by_id.get(district.id) is district

    def coalition_of(self, entity: Any) -> Optional[Coalition]:
        '''Return the coalition the entity belongs to, if any.'''
        return self._coalition_by_entity.get(entity)

    def __repr__(self) -> str:
        return f'<Election({self.id},{len(self.districts)} districts)>'


class VoteTally:
    '''Aggregated valid votes of an election.

    The tally is immutable; all queries return fresh copies.

    :param per_district: Votes per entity for each district. An entity listed
        for a district (even with zero votes) contests that district.
    :param total_valid_per_district: Total valid votes cast in each district.
    :param total_valid_national: Total valid votes cast nationally.
    '''
    def __init__(self,
                 per_district: Dict[Any, Dict[Any, int]],
                 total_valid_per_district: Dict[Any, int],
                 total_valid_national: int,
                 ):
        self._per_district = {
            dist: dict(votes) for dist, votes in per_district.items()
        }
        self._district_totals = dict(total_valid_per_district)
        self.total_valid_national = total_valid_national

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VoteTally:
        '''Build a tally from its JSON-like representation.

        :param data: A dictionary with the ``per_district``,
            ``total_valid_per_district`` and ``total_valid_national`` keys.
        '''
        try:
            return cls(
                per_district=data['per_district'],
                total_valid_per_district=data['total_valid_per_district'],
                total_valid_national=data['total_valid_national'],
            )
        except KeyError as e:
            raise InvalidConfiguration(f'tally lacks {e}') from e

    @property
    def districts(self) -> List[Any]:
        '''Identifiers of all districts with entity votes.'''
        return list(self._per_district.keys())

    def has_district(self, district_id: Any) -> bool:
        return district_id in self._per_district

    def district_votes(self, district_id: Any) -> Dict[Any, int]:
        '''Votes per entity in the district; empty if none were reported.'''
        return dict(self._per_district.get(district_id, {}))

    def district_total(self, district_id: Any) -> int:
        '''Total valid votes in the district.

        If no total was declared, the sum of entity votes is used.
        '''
        if district_id in self._district_totals:
            return self._district_totals[district_id]
        return sum(self._per_district.get(district_id, {}).values())

    def national_votes(self, entity: Any) -> int:
        '''Votes of the entity summed over all districts.'''
        return sum(
            votes[entity] for votes in self._per_district.values()
            if entity in votes
        )

    def contested_districts(self, entity: Any) -> List[Any]:
        '''Districts where the entity appears in the tally.'''
        return [
            dist for dist, votes in self._per_district.items()
            if entity in votes
        ]

    def check_district(self, district_id: Any, tolerance: int = 0) -> None:
        '''Raise :class:`InconsistentTally` if the district counts are invalid.

        :param district_id: District to check.
        :param tolerance: How many votes the entity sum may exceed the
            declared valid total by.
        '''
        votes = self._per_district.get(district_id, {})
        for entity, n_votes in votes.items():
            if not is_count(n_votes):
                raise InconsistentTally(
                    f'vote count {n_votes!r} for {entity} is not an integer',
                    district_id=district_id,
                )
            if n_votes < 0:
                raise InconsistentTally(
                    f'negative vote count {n_votes} for {entity}',
                    district_id=district_id,
                )
        declared = self._district_totals.get(district_id)
        if declared is None:
            return
        if not is_count(declared):
            raise InconsistentTally(
                f'valid vote total {declared!r} is not an integer',
                district_id=district_id,
            )
        if declared < 0:
            raise InconsistentTally(
                f'negative valid vote total {declared}',
                district_id=district_id,
            )
        vote_sum = sum(votes.values())
        if vote_sum > declared + tolerance:
            raise InconsistentTally(
                f'entity votes sum to {vote_sum}, '
                f'exceeding {declared} valid votes',
                district_id=district_id,
            )

    def check(self, tolerance: int = 0) -> None:
        '''Check all districts and the national total.

        :raises InconsistentTally: If any structural invariant is violated.
        '''
        for district_id in self._per_district:
            self.check_district(district_id, tolerance)
        self.check_national(tolerance)

    def check_national(self, tolerance: int = 0) -> None:
        '''Raise :class:`InconsistentTally` if the national total is invalid.

        Malformed district counts are left to :meth:`check_district` and do
        not enter the national sum.
        '''
        if not is_count(self.total_valid_national):
            raise InconsistentTally(
                f'national valid vote total {self.total_valid_national!r} '
                f'is not an integer'
            )
        if self.total_valid_national < 0:
            raise InconsistentTally(
                f'negative national valid vote total '
                f'{self.total_valid_national}'
            )
        vote_sum = sum(
            n_votes
            for votes in self._per_district.values()
            for n_votes in votes.values()
            if is_count(n_votes)
        )
        if vote_sum > self.total_valid_national + tolerance:
            raise InconsistentTally(
                f'entity votes sum to {vote_sum} nationally, exceeding '
                f'{self.total_valid_national} valid votes'
            )


def is_count(value: Any) -> bool:
    '''Whether the value is a usable vote count (an integer, not a bool).'''
    return isinstance(value, Integral) and not isinstance(value, bool)


def _index_unique(items, key, what):
    index = {}
    for item in items:
        item_key = key(item)
        if item_key in index:
            raise InvalidConfiguration(f'duplicate {what} {item_key}')
        index[item_key] = item
    return index
