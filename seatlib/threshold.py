'''Legal eligibility of entities for seat apportionment.

The statutory rules distinguish standalone entities from coalition members:

-   A standalone entity must reach the district threshold (20 % by default)
    in every district it contests, and the national threshold (10 % by
    default) of all valid votes.
-   Every member of a coalition must reach the national threshold on its own,
    otherwise the whole coalition is out. If all members pass, the combined
    votes of the coalition are measured against the district threshold in
    each district separately, and the members take part in the apportionment
    of every district where the coalition clears it.

All shares are computed as exact fractions and compared inclusively, so an
entity with exactly 20 % passes.
'''

import dataclasses
import logging
from fractions import Fraction
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

import seatlib.util
from seatlib.model import Coalition, Election, VoteTally
from seatlib.settings import EngineSettings


logger = logging.getLogger(__name__)

REASON_NO_VALID_VOTES = 'no valid votes'
REASON_NO_VOTES = 'no votes'
REASON_BELOW_THRESHOLD = 'below national/district threshold'
REASON_MEMBER_BELOW_NATIONAL = 'member below national threshold'
REASON_COALITION_BELOW_DISTRICT = 'coalition below district threshold'


@dataclasses.dataclass(frozen=True)
class EligibilityResult:
    '''Verdict on a single entity.

    :param entity_id: The entity concerned.
    :param eligible: Whether the entity takes part in the apportionment of at
        least one district.
    :param national_share_pct: Its share of national valid votes, in percent.
    :param district_shares_pct: Its share of valid votes in every district it
        contests, in percent. For coalition members, this is the individual
        share; the combined coalition share is in ``coalition_shares_pct``.
    :param eligible_districts: Districts whose apportionment the entity takes
        part in.
    :param reason: Why the entity is not eligible; None if it is.
    :param coalition_id: The coalition the entity was evaluated with.
    :param coalition_shares_pct: Combined coalition shares per district.
    '''
    entity_id: Any
    eligible: bool
    national_share_pct: Fraction
    district_shares_pct: Dict[Any, Fraction]
    eligible_districts: FrozenSet[Any] = frozenset()
    reason: Optional[str] = None
    coalition_id: Any = None
    coalition_shares_pct: Dict[Any, Fraction] = dataclasses.field(
        default_factory=dict
    )

    def is_eligible_in(self, district_id: Any) -> bool:
        return district_id in self.eligible_districts


class ThresholdEvaluator:
    '''Evaluate the eligibility of entities against vote share thresholds.

    The evaluator is a pure function of its inputs; it holds only its
    configuration.

    :param national_threshold: Minimum share of national valid votes, as a
        fraction of one.
    :param district_threshold: Minimum share of district valid votes, as a
        fraction of one.
    :param standalone_national_threshold: Whether standalone entities must
        clear the national threshold as well as the district one.
    :param tally_tolerance: Tolerance for the tally consistency check.
    '''
    def __init__(self,
                 national_threshold: Fraction = Fraction(1, 10),
                 district_threshold: Fraction = Fraction(1, 5),
                 standalone_national_threshold: bool = True,
                 tally_tolerance: int = 0,
                 ):
        self.national_threshold = seatlib.util.to_fraction(national_threshold)
        self.district_threshold = seatlib.util.to_fraction(district_threshold)
        self.standalone_national_threshold = standalone_national_threshold
        self.tally_tolerance = tally_tolerance

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> 'ThresholdEvaluator':
        return cls(
            national_threshold=settings.national_threshold,
            district_threshold=settings.district_threshold,
            standalone_national_threshold=(
                settings.standalone_national_threshold
            ),
            tally_tolerance=settings.tally_tolerance,
        )

    def evaluate(self,
                 election: Election,
                 tally: VoteTally,
                 entities: Optional[Iterable[Any]] = None,
                 ) -> Dict[Any, EligibilityResult]:
        '''Determine the eligibility of entities.

        :param election: The election with its districts and coalitions.
        :param tally: Vote counts of the election.
        :param entities: Entities to return verdicts for; all entities of the
            election by default. The rules always consider all districts.
        :returns: Eligibility verdicts keyed by entity, in the order of
            the entities.
        :raises InconsistentTally: If the national total or a district
            contested by the entities or their coalition partners fails the
            consistency check. Other districts are not checked.
        '''
        if entities is None:
            entities = election.entities
        entities = list(entities)
        self._check_tally(election, tally, entities)
        national_total = tally.total_valid_national
        if national_total == 0:
            logger.warning('no valid votes in election %s', election.id)
            return {
                ent: EligibilityResult(
                    entity_id=ent,
                    eligible=False,
                    national_share_pct=Fraction(0),
                    district_shares_pct={},
                    reason=REASON_NO_VALID_VOTES,
                )
                for ent in entities
            }
        coalition_verdicts = {}
        results = {}
        for ent in entities:
            coalition = election.coalition_of(ent)
            if coalition is None:
                results[ent] = self._evaluate_standalone(ent, tally)
            else:
                if coalition.id not in coalition_verdicts:
                    coalition_verdicts[coalition.id] = (
                        self._evaluate_coalition(coalition, tally)
                    )
                results[ent] = coalition_verdicts[coalition.id][ent]
        n_eligible = sum(1 for res in results.values() if res.eligible)
        logger.debug('%d of %d entities eligible', n_eligible, len(results))
        return results

    def _check_tally(self,
                     election: Election,
                     tally: VoteTally,
                     entities: List[Any],
                     ) -> None:
        involved = []
        for ent in entities:
            coalition = election.coalition_of(ent)
            involved.extend(coalition.members if coalition else [ent])
        for dist in self._coalition_districts(involved, tally):
            tally.check_district(dist, self.tally_tolerance)
        tally.check_national(self.tally_tolerance)

    def _district_shares(self,
                         entity: Any,
                         tally: VoteTally,
                         ) -> Dict[Any, Fraction]:
        return {
            dist: seatlib.util.percent(
                tally.district_votes(dist).get(entity, 0),
                tally.district_total(dist),
            )
            for dist in tally.contested_districts(entity)
        }

    def _passes_national(self, entity: Any, tally: VoteTally) -> bool:
        return seatlib.util.share(
            tally.national_votes(entity), tally.total_valid_national
        ) >= self.national_threshold

    def _passes_district(self, votes: int, total: int) -> bool:
        return seatlib.util.share(votes, total) >= self.district_threshold

    def _evaluate_standalone(self,
                             entity: Any,
                             tally: VoteTally,
                             ) -> EligibilityResult:
        national_votes = tally.national_votes(entity)
        verdict = dict(
            entity_id=entity,
            national_share_pct=seatlib.util.percent(
                national_votes, tally.total_valid_national
            ),
            district_shares_pct=self._district_shares(entity, tally),
        )
        if national_votes == 0:
            logger.debug('%s has no votes', entity)
            return EligibilityResult(
                eligible=False, reason=REASON_NO_VOTES, **verdict
            )
        contested = tally.contested_districts(entity)
        passes = all(
            self._passes_district(
                tally.district_votes(dist)[entity],
                tally.district_total(dist),
            )
            for dist in contested
        )
        if self.standalone_national_threshold:
            passes = passes and self._passes_national(entity, tally)
        if not passes:
            logger.debug('%s below threshold', entity)
            return EligibilityResult(
                eligible=False, reason=REASON_BELOW_THRESHOLD, **verdict
            )
        return EligibilityResult(
            eligible=True, eligible_districts=frozenset(contested), **verdict
        )

    def _evaluate_coalition(self,
                            coalition: Coalition,
                            tally: VoteTally,
                            ) -> Dict[Any, EligibilityResult]:
        members = coalition.members
        below = [
            member for member in members
            if not self._passes_national(member, tally)
        ]
        combined_shares = {}
        cleared = []
        for dist in self._coalition_districts(members, tally):
            dist_votes = tally.district_votes(dist)
            combined = sum(dist_votes.get(member, 0) for member in members)
            total = tally.district_total(dist)
            combined_shares[dist] = seatlib.util.percent(combined, total)
            if self._passes_district(combined, total):
                cleared.append(dist)
        if below:
            logger.info('coalition %s out, members below national '
                        'threshold: %s', coalition.id, below)
            reason = REASON_MEMBER_BELOW_NATIONAL
            cleared = []
        elif not cleared:
            logger.info('coalition %s below district threshold everywhere',
                        coalition.id)
            reason = REASON_COALITION_BELOW_DISTRICT
        else:
            logger.debug('coalition %s eligible in %s', coalition.id, cleared)
            reason = None
        return {
            member: EligibilityResult(
                entity_id=member,
                eligible=bool(cleared),
                national_share_pct=seatlib.util.percent(
                    tally.national_votes(member), tally.total_valid_national
                ),
                district_shares_pct=self._district_shares(member, tally),
                eligible_districts=frozenset(cleared),
                reason=reason,
                coalition_id=coalition.id,
                coalition_shares_pct=combined_shares,
            )
            for member in members
        }

    @staticmethod
    def _coalition_districts(members: Iterable[Any],
                             tally: VoteTally,
                             ) -> List[Any]:
        districts = []
        for member in members:
            for dist in tally.contested_districts(member):
                if dist not in districts:
                    districts.append(dist)
        return districts
