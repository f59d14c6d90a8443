'''Apportionment runs over districts and whole elections.

The engine ties the threshold evaluation to a calculation method:

-   :meth:`ApportionmentEngine.compute_district` apportions a single district,
-   :meth:`ApportionmentEngine.compute_election` apportions all districts of an
    election in parallel and rolls the seats up nationally,
-   :meth:`ApportionmentEngine.compare_methods` runs two methods over the same
    inputs to validate a new method before it is adopted,
-   :meth:`ApportionmentEngine.persist` hands the results of a run to a result
    sink.

The method is passed to every call and never stored in the engine, so one
engine can serve concurrent runs with different methods. District
computations share no mutable state; the national totals are summed only
after all of them finished.
'''

import concurrent.futures
import dataclasses
import logging
from numbers import Number
from typing import Any, Dict, List, Optional, Union

import seatlib.util
from seatlib.errors import (
    ApportionmentError, InvalidConfiguration, MethodNotApplicable
)
from seatlib.method import AllocationResult, ApportionmentMethod
from seatlib.model import District, Election, VoteTally
from seatlib.settings import EngineSettings
from seatlib.sink import ResultSink
from seatlib.threshold import EligibilityResult, ThresholdEvaluator


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class DistrictResult:
    '''Seats of a single district.

    :param district_id: The district concerned.
    :param method: Name of the method that computed the allocation.
    :param method_version: Version of that method.
    :param allocation: The ordinary seat allocation.
    :param reserved_seats: Reserved seats per entity.
    :param eligibility: Verdicts on the entities relevant to the district.
    :param votes: Votes of the entities that took part in the allocation.
    '''
    district_id: Any
    method: str
    method_version: str
    allocation: AllocationResult
    reserved_seats: Dict[Any, int]
    eligibility: Dict[Any, EligibilityResult]
    votes: Dict[Any, int]

    @property
    def quotient(self) -> Number:
        return self.allocation.quotient

    @property
    def has_eligible_entities(self) -> bool:
        '''False when no entity was eligible and nothing was allocated.'''
        return bool(self.votes)

    def records(self, election_id: Any) -> List[Dict[str, Any]]:
        '''Result records of the district, one per entity taking part.'''
        entities = list(self.allocation.seats_by_entity)
        for entity in self.reserved_seats:
            if entity not in entities:
                entities.append(entity)
        return [
            {
                'election_id': election_id,
                'district_id': self.district_id,
                'entity_id': entity,
                'votes': self.votes.get(entity, 0),
                'ordinary_seats': self.allocation.seats_by_entity.get(
                    entity, 0
                ),
                'reserved_seats': self.reserved_seats.get(entity, 0),
                'remainder': self.allocation.remainders_by_entity.get(
                    entity, 0
                ),
                'quotient': self.allocation.quotient,
                'method': self.method,
                'method_version': self.method_version,
            }
            for entity in entities
        ]


@dataclasses.dataclass
class NationalTotal:
    '''Seats of one entity summed over all districts.'''
    ordinary_seats: int = 0
    reserved_seats: int = 0

    @property
    def total_seats(self) -> int:
        return self.ordinary_seats + self.reserved_seats


@dataclasses.dataclass
class ElectionResult:
    '''Seats of all districts of an election.

    :param election_id: The election concerned.
    :param method: Metadata of the method used.
    :param districts: Results of the districts computed successfully.
    :param errors: Failures of the other districts. Besides
        :class:`ApportionmentError` these may be unexpected exceptions raised
        by a method.
    :param national: National seat totals per entity.
    :param eligibility: Verdicts on all entities, if they could be
        determined.
    '''
    election_id: Any
    method: Dict[str, Any]
    districts: Dict[Any, DistrictResult]
    errors: Dict[Any, Exception]
    national: Dict[Any, NationalTotal]
    eligibility: Dict[Any, EligibilityResult] = dataclasses.field(
        default_factory=dict
    )

    @property
    def complete(self) -> bool:
        '''Whether all districts were computed.'''
        return not self.errors

    @property
    def total_seats(self) -> int:
        return sum(total.total_seats for total in self.national.values())

    def district_records(self) -> List[Dict[str, Any]]:
        records = []
        for district_result in self.districts.values():
            records.extend(district_result.records(self.election_id))
        return records

    def national_records(self) -> List[Dict[str, Any]]:
        return [
            {
                'election_id': self.election_id,
                'entity_id': entity,
                'ordinary_seats': total.ordinary_seats,
                'reserved_seats': total.reserved_seats,
                'total_seats': total.total_seats,
                'method': self.method['name'],
                'method_version': self.method['version'],
            }
            for entity, total in self.national.items()
        ]


@dataclasses.dataclass
class SeatDifference:
    '''A per-entity difference between two allocations.

    :param entity_id: The entity concerned.
    :param kind: ``seats_different``, ``reserved_different``,
        ``absent_in_a`` or ``absent_in_b``.
    :param seats_a: Seats under the first method, None if absent.
    :param seats_b: Seats under the second method, None if absent.
    '''
    entity_id: Any
    kind: str
    seats_a: Optional[int] = None
    seats_b: Optional[int] = None

    @property
    def delta(self) -> int:
        '''Seats gained by the entity when moving from method a to b.'''
        return (self.seats_b or 0) - (self.seats_a or 0)


@dataclasses.dataclass
class MethodComparison:
    '''The outcome of running two methods over identical inputs.

    The allocations are only for inspection; they are never merged or
    persisted.

    :param district_id: The district concerned.
    :param method_a: Metadata of the first method.
    :param method_b: Metadata of the second method.
    :param allocation_a: Result of the first method, None if it failed.
    :param allocation_b: Result of the second method, None if it failed.
    :param differences: Per-entity differences between the allocations.
    :param errors: Failures keyed by ``a``, ``b``, or ``input`` when the
        common inputs could not be prepared.
    '''
    district_id: Any
    method_a: Dict[str, Any]
    method_b: Dict[str, Any]
    allocation_a: Optional[AllocationResult] = None
    allocation_b: Optional[AllocationResult] = None
    reserved_a: Dict[Any, int] = dataclasses.field(default_factory=dict)
    reserved_b: Dict[Any, int] = dataclasses.field(default_factory=dict)
    differences: List[SeatDifference] = dataclasses.field(
        default_factory=list
    )
    errors: Dict[str, str] = dataclasses.field(default_factory=dict)

    @property
    def identical(self) -> bool:
        '''Whether both methods ran and produced the same seats.'''
        return not self.errors and not self.differences


class ApportionmentEngine:
    '''Run the threshold evaluation and a calculation method over districts.

    :param settings: Settings of the runs; defaults if not given.
    :param evaluator: The threshold evaluator; built from the settings if not
        given.
    '''
    def __init__(self,
                 settings: Optional[EngineSettings] = None,
                 evaluator: Optional[ThresholdEvaluator] = None,
                 ):
        if settings is None:
            settings = EngineSettings()
        if evaluator is None:
            evaluator = ThresholdEvaluator.from_settings(settings)
        self.settings = settings
        self.evaluator = evaluator

    def check_eligibility(self,
                          election: Election,
                          tally: VoteTally,
                          entity: Any,
                          ) -> EligibilityResult:
        '''Return the eligibility verdict on a single entity.'''
        if entity not in election.entities:
            raise InvalidConfiguration(
                f'election {election.id} has no entity {entity}'
            )
        return self.evaluator.evaluate(election, tally, [entity])[entity]

    def compute_district(self,
                         election: Election,
                         district: Union[District, Any],
                         tally: VoteTally,
                         method: ApportionmentMethod,
                         eligibility: Optional[
                             Dict[Any, EligibilityResult]
                         ] = None,
                         ) -> DistrictResult:
        '''Apportion the seats of one district.

        :param election: The election the district belongs to.
        :param district: The district or its identifier.
        :param tally: Vote counts of the whole election.
        :param method: The calculation method to use.
        :param eligibility: Precomputed eligibility verdicts. Entities
            relevant to the district but missing from them are evaluated.
        :raises MethodNotApplicable: If the method refuses the election.
        :raises InvalidConfiguration: If the district or its entities are not
            part of the election, or the district has no tally.
        :raises InconsistentTally: If the vote counts are inconsistent.
        '''
        self._check_applicable(election, method)
        district = self._resolve_district(election, district)
        votes, eligibility = self._restricted_votes(
            election, district, tally, eligibility
        )
        logger.info('district %s: apportioning %d ordinary seats among %d '
                    'eligible entities by %s', district.id,
                    district.ordinary_seats, len(votes), method.name)
        allocation = method.allocate_seats(
            district, votes, district.ordinary_seats
        )
        reserved = method.allocate_reserved(district, votes)
        if not votes:
            logger.info('district %s: no eligible entities', district.id)
        return DistrictResult(
            district_id=district.id,
            method=method.name,
            method_version=method.version,
            allocation=allocation,
            reserved_seats=reserved,
            eligibility=eligibility,
            votes=votes,
        )

    def compute_election(self,
                         election: Election,
                         tally: VoteTally,
                         method: ApportionmentMethod,
                         ) -> ElectionResult:
        '''Apportion the seats of all districts of an election.

        Failures of single districts are collected in the result instead of
        aborting the run. Eligibility is evaluated per entity (per coalition
        for coalition members), so an inconsistent district only fails the
        districts whose entities contest it. An inconsistent national total
        fails every district.

        :param election: The election to apportion.
        :param tally: Vote counts of the election, fetched once for the run.
        :param method: The calculation method to use.
        :raises MethodNotApplicable: If the method refuses the election.
        '''
        self._check_applicable(election, method)
        metadata = method.metadata()
        logger.info('election %s: apportioning %d districts by %s %s',
                    election.id, len(election.districts), method.name,
                    method.version)
        eligibility = self._evaluate_separately(election, tally)
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self.settings.max_workers
        ) as executor:
            futures = {
                dist.id: executor.submit(
                    self.compute_district,
                    election, dist, tally, method, eligibility
                )
                for dist in election.districts
            }
            # all districts joined here before any national total is formed
            concurrent.futures.wait(futures.values())
        results = {}
        errors = {}
        for district_id, future in futures.items():
            try:
                results[district_id] = future.result()
            except ApportionmentError as e:
                logger.warning('district %s failed: %s', district_id, e)
                errors[district_id] = e
            except Exception as e:
                logger.exception('district %s: unexpected failure',
                                 district_id)
                errors[district_id] = e
        national = self._national_totals(election, results)
        logger.info('election %s: %d districts computed, %d failed',
                    election.id, len(results), len(errors))
        return ElectionResult(
            election_id=election.id,
            method=metadata,
            districts=results,
            errors=errors,
            national=national,
            eligibility=eligibility,
        )

    def compare_methods(self,
                        election: Election,
                        district: Union[District, Any],
                        tally: VoteTally,
                        method_a: ApportionmentMethod,
                        method_b: ApportionmentMethod,
                        ) -> MethodComparison:
        '''Run two methods over identical inputs and report the differences.

        Never raises for input or method failures; they are reported in the
        ``errors`` of the comparison.
        '''
        comparison = MethodComparison(
            district_id=getattr(district, 'id', district),
            method_a=method_a.metadata(),
            method_b=method_b.metadata(),
        )
        try:
            district = self._resolve_district(election, district)
            votes, _ = self._restricted_votes(election, district, tally)
        except ApportionmentError as e:
            comparison.errors['input'] = str(e)
            return comparison
        for key, method in (('a', method_a), ('b', method_b)):
            reason = method.refusal_reason(election, self.settings)
            if reason is not None:
                comparison.errors[key] = str(
                    MethodNotApplicable(method.name, reason)
                )
                continue
            try:
                allocation = method.allocate_seats(
                    district, dict(votes), district.ordinary_seats
                )
                reserved = method.allocate_reserved(district, dict(votes))
            except ApportionmentError as e:
                comparison.errors[key] = str(e)
                continue
            except Exception as e:
                logger.exception('district %s: method %s failed',
                                 comparison.district_id, method.name)
                comparison.errors[key] = f'{type(e).__name__}: {e}'
                continue
            setattr(comparison, f'allocation_{key}', allocation)
            setattr(comparison, f'reserved_{key}', reserved)
        if (comparison.allocation_a is not None
                and comparison.allocation_b is not None):
            comparison.differences = _diff_allocations(
                comparison.allocation_a.seats_by_entity,
                comparison.allocation_b.seats_by_entity,
            ) + _diff_reserved(comparison.reserved_a, comparison.reserved_b)
        logger.info('district %s: %s vs %s, %d differences, %d errors',
                    comparison.district_id, method_a.name, method_b.name,
                    len(comparison.differences), len(comparison.errors))
        return comparison

    def persist(self, result: ElectionResult, sink: ResultSink) -> None:
        '''Replace the stored results of the election by those of the run.

        All records are built before anything is written.
        '''
        district_records = result.district_records()
        national_records = result.national_records()
        sink.replace(result.election_id, 'district', district_records)
        sink.replace(result.election_id, 'national', national_records)
        logger.info('election %s: stored %d district and %d national '
                    'records', result.election_id, len(district_records),
                    len(national_records))

    def _evaluate_separately(self,
                             election: Election,
                             tally: VoteTally,
                             ) -> Dict[Any, EligibilityResult]:
        verdicts = {}
        for ent in election.entities:
            if ent in verdicts:
                continue
            coalition = election.coalition_of(ent)
            group = list(coalition.members) if coalition else [ent]
            try:
                verdicts.update(
                    self.evaluator.evaluate(election, tally, group)
                )
            except ApportionmentError as e:
                logger.warning('election %s: no verdict on %s: %s',
                               election.id, ', '.join(map(str, group)), e)
        return {
            ent: verdicts[ent] for ent in election.entities if ent in verdicts
        }

    def _check_applicable(self,
                          election: Election,
                          method: ApportionmentMethod,
                          ) -> None:
        reason = method.refusal_reason(election, self.settings)
        if reason is not None:
            raise MethodNotApplicable(method.name, reason)

    @staticmethod
    def _resolve_district(election: Election,
                          district: Union[District, Any],
                          ) -> District:
        if isinstance(district, District):
            if not election.has_district(district):
                raise InvalidConfiguration(
                    f'{district} is not a district of election {election.id}'
                )
            return district
        return election.get_district(district)

    def _restricted_votes(self,
                          election: Election,
                          district: District,
                          tally: VoteTally,
                          eligibility: Optional[
                              Dict[Any, EligibilityResult]
                          ] = None,
                          ):
        if not tally.has_district(district.id):
            raise InvalidConfiguration(
                f'no tally for district {district.id}'
            )
        tally.check_district(district.id, self.settings.tally_tolerance)
        votes = tally.district_votes(district.id)
        known = set(election.entities)
        unknown = [ent for ent in votes if ent not in known]
        if unknown:
            raise InvalidConfiguration(
                f'district {district.id}: votes for unknown entities '
                + ', '.join(map(str, unknown))
            )
        relevant = _relevant_entities(election, votes)
        if eligibility is None:
            eligibility = self.evaluator.evaluate(election, tally, relevant)
        else:
            missing = [ent for ent in relevant if ent not in eligibility]
            eligibility = {
                ent: eligibility[ent] for ent in relevant
                if ent in eligibility
            }
            if missing:
                # not precomputed, or their evaluation failed for the run
                eligibility.update(
                    self.evaluator.evaluate(election, tally, missing)
                )
        restricted = {
            ent: n_votes for ent, n_votes in votes.items()
            if ent in eligibility
            and eligibility[ent].is_eligible_in(district.id)
        }
        return restricted, eligibility

    @staticmethod
    def _national_totals(election: Election,
                         results: Dict[Any, DistrictResult],
                         ) -> Dict[Any, NationalTotal]:
        ordinary = {}
        reserved = {}
        for district_result in results.values():
            seatlib.util.add_dict_to_dict(
                ordinary, district_result.allocation.seats_by_entity
            )
            seatlib.util.add_dict_to_dict(
                reserved, district_result.reserved_seats
            )
        return {
            entity: NationalTotal(
                ordinary_seats=ordinary.get(entity, 0),
                reserved_seats=reserved.get(entity, 0),
            )
            for entity in election.entities
        }


def _relevant_entities(election: Election, votes: Dict[Any, int]) -> List[Any]:
    relevant = []
    for entity in votes:
        coalition = election.coalition_of(entity)
        members = coalition.members if coalition else (entity, )
        for member in (entity, ) + tuple(members):
            if member not in relevant:
                relevant.append(member)
    return relevant


def _diff_allocations(seats_a: Dict[Any, int],
                      seats_b: Dict[Any, int],
                      ) -> List[SeatDifference]:
    differences = []
    for entity, n_seats in seats_a.items():
        if entity not in seats_b:
            differences.append(SeatDifference(
                entity, 'absent_in_b', seats_a=n_seats
            ))
        elif seats_b[entity] != n_seats:
            differences.append(SeatDifference(
                entity, 'seats_different',
                seats_a=n_seats, seats_b=seats_b[entity],
            ))
    for entity, n_seats in seats_b.items():
        if entity not in seats_a:
            differences.append(SeatDifference(
                entity, 'absent_in_a', seats_b=n_seats
            ))
    return differences


def _diff_reserved(reserved_a: Dict[Any, int],
                   reserved_b: Dict[Any, int],
                   ) -> List[SeatDifference]:
    return [
        SeatDifference(
            entity, 'reserved_different',
            seats_a=reserved_a.get(entity, 0),
            seats_b=reserved_b.get(entity, 0),
        )
        for entity in sorted(set(reserved_a) | set(reserved_b))
        if reserved_a.get(entity, 0) != reserved_b.get(entity, 0)
    ]
