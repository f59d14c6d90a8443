"""Read election documents and write apportionment reports as JSON.

An election document holds the election setup, its vote tallies and
optionally the engine settings::

    {
        "election": {
            "id": "leg-2024",
            "legislative": true,
            "districts": [{"id": 1, "total_seats": 5, "reserved_seats": 0}],
            "entities": ["A", "B", "C"],
            "coalitions": [{"id": "K", "members": ["B", "C"]}]
        },
        "tallies": {
            "per_district": {"1": {"A": 400, "B": 350, "C": 250}},
            "total_valid_per_district": {"1": 1000},
            "total_valid_national": 1000
        },
        "settings": {"official_method_enabled": false}
    }

JSON object keys are always strings; they are mapped back to the identifiers
declared in the election (so the district ``1`` above is keyed by the integer
1 in the tally). References to undeclared districts or entities are errors.

Reports render exact numbers (quotients, shares) as fraction strings such as
``"1000/3"`` so that nothing is lost to floating point.
"""

import json
from fractions import Fraction
from typing import Any, Dict, Iterable, Optional, Union

import seatlib.persist
from seatlib.engine import ElectionResult, MethodComparison
from seatlib.errors import ApportionmentError, InvalidConfiguration
from seatlib.io.core import ElectionData, ParseError, dumpers, loaders
from seatlib.model import Coalition, District, Election, VoteTally
from seatlib.settings import EngineSettings


def parse(document: Dict[str, Any],
          settings: Optional[EngineSettings] = None,
          ) -> ElectionData:
    """Build the election, tally and settings from a parsed document.

    :param document: The decoded JSON document.
    :param settings: Settings overriding those of the document.
    :raises ParseError: If a section is missing or malformed.
    :raises InvalidConfiguration: If the election setup is invalid.
    """
    if not isinstance(document, dict):
        raise ParseError('election document must be an object')
    try:
        election_def = document['election']
        tally_def = document['tallies']
    except KeyError as e:
        raise ParseError(f'election document lacks {e}') from e
    election = _parse_election(election_def)
    tally = _parse_tally(tally_def, election)
    if settings is None:
        settings = EngineSettings.from_dict(document.get('settings', {}))
    return ElectionData(election=election, tally=tally, settings=settings)


load, loads = loaders(parse)


def _parse_election(election_def: Dict[str, Any]) -> Election:
    try:
        districts = [
            District(
                id=dist_def['id'],
                total_seats=dist_def['total_seats'],
                reserved_seats=dist_def.get('reserved_seats', 0),
                name=dist_def.get('name'),
            )
            for dist_def in election_def['districts']
        ]
        coalitions = [
            Coalition(
                id=coal_def['id'],
                members=coal_def['members'],
                name=coal_def.get('name'),
            )
            for coal_def in election_def.get('coalitions', [])
        ]
        return Election(
            id=election_def['id'],
            districts=districts,
            entities=election_def['entities'],
            coalitions=coalitions,
            is_legislative=election_def.get('legislative', True),
            name=election_def.get('name'),
        )
    except KeyError as e:
        raise ParseError(f'election definition lacks {e}') from e
    except TypeError as e:
        raise ParseError(f'malformed election definition: {e}') from e


def _parse_tally(tally_def: Dict[str, Any], election: Election) -> VoteTally:
    district_ids = _key_map(dist.id for dist in election.districts)
    entity_ids = _key_map(election.entities)
    try:
        per_district = {
            _resolve(district_ids, dist_key, 'district'): {
                _resolve(entity_ids, ent_key, 'entity'): n_votes
                for ent_key, n_votes in votes.items()
            }
            for dist_key, votes in tally_def['per_district'].items()
        }
        totals = {
            _resolve(district_ids, dist_key, 'district'): total
            for dist_key, total in tally_def.get(
                'total_valid_per_district', {}
            ).items()
        }
        national = tally_def['total_valid_national']
    except KeyError as e:
        raise ParseError(f'tallies lack {e}') from e
    except AttributeError as e:
        raise ParseError(f'malformed tallies: {e}') from e
    return VoteTally(per_district, totals, national)


def _key_map(ids: Iterable[Any]) -> Dict[str, Any]:
    return {str(ident): ident for ident in ids}


def _resolve(ids: Dict[str, Any], key: str, what: str) -> Any:
    try:
        return ids[str(key)]
    except KeyError:
        raise InvalidConfiguration(f'tallies refer to unknown {what} {key}') \
            from None


def dump_lines(report: Union[ElectionResult, MethodComparison],
               indent: Optional[int] = 2,
               ) -> Iterable[str]:
    """Dump an election result or a method comparison as JSON lines.

    :param report: The result of
        :meth:`seatlib.engine.ApportionmentEngine.compute_election` or
        :meth:`seatlib.engine.ApportionmentEngine.compare_methods`.
    :param indent: JSON indentation; None gives a single line.
    """
    if isinstance(report, ElectionResult):
        content = election_report(report)
    elif isinstance(report, MethodComparison):
        content = comparison_report(report)
    else:
        raise TypeError(f'cannot dump {type(report).__name__}')
    yield from json.dumps(content, indent=indent, ensure_ascii=False).split('\n')


dump, dumps = dumpers(dump_lines)


def election_report(result: ElectionResult) -> Dict[str, Any]:
    """Render an election result as a JSON-ready dictionary."""
    return {
        'election': result.election_id,
        'method': _jsonable(result.method),
        'complete': result.complete,
        'districts': [
            {
                'id': dist_result.district_id,
                'quotient': _number(dist_result.quotient),
                'ordinary_seats': dist_result.allocation.ordinary_seats,
                'seats': _keyed(dist_result.allocation.seats_by_entity),
                'remainders': _keyed(
                    dist_result.allocation.remainders_by_entity
                ),
                'reserved_seats': _keyed(dist_result.reserved_seats),
                'votes': _keyed(dist_result.votes),
                'tied': sorted(dist_result.allocation.tied),
            }
            for dist_result in result.districts.values()
        ],
        'errors': {
            str(dist_id): _error_text(error)
            for dist_id, error in result.errors.items()
        },
        'eligibility': [
            {
                'entity': verdict.entity_id,
                'eligible': verdict.eligible,
                'national_share_pct': _number(verdict.national_share_pct),
                'district_shares_pct': _keyed(verdict.district_shares_pct),
                'eligible_districts': sorted(verdict.eligible_districts),
                'coalition': verdict.coalition_id,
                'reason': verdict.reason,
            }
            for verdict in result.eligibility.values()
        ],
        'national': {
            str(entity): {
                'ordinary_seats': total.ordinary_seats,
                'reserved_seats': total.reserved_seats,
                'total_seats': total.total_seats,
            }
            for entity, total in result.national.items()
        },
    }


def comparison_report(comparison: MethodComparison) -> Dict[str, Any]:
    """Render a method comparison as a JSON-ready dictionary."""
    return {
        'district': comparison.district_id,
        'method_a': _jsonable(comparison.method_a),
        'method_b': _jsonable(comparison.method_b),
        'identical': comparison.identical,
        'seats_a': _allocation_seats(comparison.allocation_a),
        'seats_b': _allocation_seats(comparison.allocation_b),
        'differences': [
            {
                'entity': diff.entity_id,
                'kind': diff.kind,
                'seats_a': diff.seats_a,
                'seats_b': diff.seats_b,
                'delta': diff.delta,
            }
            for diff in comparison.differences
        ],
        'errors': dict(comparison.errors),
    }


def _allocation_seats(allocation) -> Optional[Dict[str, int]]:
    if allocation is None:
        return None
    return _keyed(allocation.seats_by_entity)


def _error_text(error: Exception) -> str:
    if isinstance(error, ApportionmentError):
        return str(error)
    return f'{type(error).__name__}: {error}'


def _keyed(values: Dict[Any, Any]) -> Dict[str, Any]:
    return {str(key): _number(value) for key, value in values.items()}


def _number(value: Any) -> Any:
    if isinstance(value, Fraction):
        if value.denominator == 1:
            return value.numerator
        return str(value)
    return value


def _jsonable(value: Any) -> Any:
    return seatlib.persist.serialize_value(value)
