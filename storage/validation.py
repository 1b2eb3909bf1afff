"""
Match Snapshot Validation

Schema for the persisted MatchState blob and the two ways of reading it:

- decode_match_state(): strict decode, raises SnapshotValidationError
- repair_match_state(): field-by-field defaulting, never raises

validate_match_state() tries the first and falls back to the second; it is
what the store uses on load. Keys are camelCase on disk (currentInning,
ballHistory, isRunOut, ...); snake_case is accepted on input as well.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from scoring.ball_events import MAX_WICKETS, BallEvent, BallKind, DismissalType
from scoring.match_state import (
    DEFAULT_TOTAL_OVERS,
    BatterTally,
    BowlerTally,
    Extras,
    InningsAggregate,
    InningsPair,
    MatchState,
    initial_match_state,
)

logger = logging.getLogger(__name__)

RawSnapshot = Union[str, bytes, dict]


class SnapshotValidationError(ValueError):
    """A stored snapshot does not match the MatchState schema."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []


# =============================================================================
# Schema
# =============================================================================

class _SnapshotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BallEventSchema(_SnapshotModel):
    id: str
    # older snapshots stored the kind under "type"
    kind: BallKind = Field(
        validation_alias=AliasChoices('kind', 'type'),
    )
    runs: int = Field(ge=0)
    inning: Literal[1, 2]
    timestamp: int
    is_run_out: bool = False
    is_wicket: bool = False
    dismissal: Optional[DismissalType] = None
    striker_id: Optional[int] = None
    non_striker_id: Optional[int] = None
    bowler_id: Optional[int] = None
    fielder_id: Optional[int] = None
    batter_count: Optional[int] = Field(None, ge=0)


class ExtrasSchema(_SnapshotModel):
    wides: int = Field(0, ge=0)
    noballs: int = Field(0, ge=0)
    byes: int = Field(0, ge=0)
    legbyes: int = Field(0, ge=0)


class BatterSchema(_SnapshotModel):
    player_id: int
    batting_position: int = Field(ge=1)
    runs: int = Field(0, ge=0)
    balls: int = Field(0, ge=0)
    fours: int = Field(0, ge=0)
    sixes: int = Field(0, ge=0)
    is_out: bool = False
    dismissal: Optional[str] = None
    bowler_id: Optional[int] = None
    fielder_id: Optional[int] = None


class BowlerSchema(_SnapshotModel):
    player_id: int
    balls: int = Field(0, ge=0)
    runs: int = Field(0, ge=0)
    wickets: int = Field(0, ge=0, le=MAX_WICKETS)
    maidens: int = Field(0, ge=0)
    wides: int = Field(0, ge=0)
    noballs: int = Field(0, ge=0)


class InningsSchema(_SnapshotModel):
    runs: int = Field(0, ge=0)
    balls: int = Field(0, ge=0)
    wickets: int = Field(0, ge=0, le=MAX_WICKETS)
    extras: ExtrasSchema = Field(default_factory=ExtrasSchema)
    striker_id: Optional[int] = None
    non_striker_id: Optional[int] = None
    bowler_id: Optional[int] = None
    batters: list[BatterSchema] = Field(default_factory=list)
    bowlers: list[BowlerSchema] = Field(default_factory=list)
    current_over_balls: int = Field(0, ge=0)
    current_over_runs: int = Field(0, ge=0)


class InningsPairSchema(_SnapshotModel):
    first: InningsSchema
    second: InningsSchema


class MatchStateSchema(_SnapshotModel):
    current_inning: Literal[1, 2]
    innings: InningsPairSchema
    target: Optional[int] = Field(None, ge=1)
    ball_history: list[BallEventSchema]
    is_match_over: bool = False
    winner: Optional[Literal['batting', 'bowling']] = None
    total_overs: int = Field(DEFAULT_TOTAL_OVERS, ge=1)


# =============================================================================
# Conversion
# =============================================================================

def _plain(value: Any) -> Any:
    """NamedTuples to dicts and tuples to lists, recursively."""
    if hasattr(value, '_asdict'):
        return {key: _plain(item) for key, item in value._asdict().items()}
    if isinstance(value, (tuple, list)):
        return [_plain(item) for item in value]
    return value


def _to_innings(schema: InningsSchema) -> InningsAggregate:
    return InningsAggregate(
        runs=schema.runs,
        balls=schema.balls,
        wickets=schema.wickets,
        extras=Extras(**schema.extras.model_dump()),
        striker_id=schema.striker_id,
        non_striker_id=schema.non_striker_id,
        bowler_id=schema.bowler_id,
        batters=tuple(BatterTally(**b.model_dump()) for b in schema.batters),
        bowlers=tuple(BowlerTally(**b.model_dump()) for b in schema.bowlers),
        current_over_balls=schema.current_over_balls,
        current_over_runs=schema.current_over_runs,
    )


def _to_state(schema: MatchStateSchema) -> MatchState:
    return MatchState(
        current_inning=schema.current_inning,
        innings=InningsPair(
            first=_to_innings(schema.innings.first),
            second=_to_innings(schema.innings.second),
        ),
        target=schema.target,
        ball_history=tuple(BallEvent(**e.model_dump()) for e in schema.ball_history),
        is_match_over=schema.is_match_over,
        winner=schema.winner,
        total_overs=schema.total_overs,
    )


def serialize_match_state(state: MatchState) -> dict:
    """MatchState as a JSON-ready dict with camelCase keys."""
    schema = MatchStateSchema.model_validate(_plain(state))
    return schema.model_dump(by_alias=True, mode='json')


def dumps_match_state(state: MatchState) -> str:
    return json.dumps(serialize_match_state(state), ensure_ascii=False)


# =============================================================================
# Decode / Repair
# =============================================================================

def decode_match_state(raw: RawSnapshot) -> MatchState:
    """
    Strictly decode a stored snapshot.

    Args:
        raw: JSON text or an already parsed dict

    Returns:
        The decoded MatchState

    Raises:
        SnapshotValidationError: raw is not valid JSON or does not match the schema
    """
    try:
        if isinstance(raw, (str, bytes)):
            schema = MatchStateSchema.model_validate_json(raw, strict=True)
        else:
            schema = MatchStateSchema.model_validate(raw, strict=True)
    except ValidationError as e:
        raise SnapshotValidationError(
            f"Invalid match snapshot ({e.error_count()} errors)",
            e.errors(include_url=False, include_context=False, include_input=False),
        ) from e

    return _to_state(schema)


def _pick(data: dict, camel: str, snake: str) -> Any:
    return data[camel] if camel in data else data.get(snake)


def _int_or(value: Any, default: Optional[int], minimum: int = 0) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool) and value >= minimum:
        return value
    return default


def _repair_innings(raw: Any) -> InningsAggregate:
    """Innings counters with anything unusable reset to zero."""
    if not isinstance(raw, dict):
        return InningsAggregate()

    extras = raw.get('extras') if isinstance(raw.get('extras'), dict) else {}
    innings = InningsAggregate(
        runs=_int_or(raw.get('runs'), 0),
        balls=_int_or(raw.get('balls'), 0),
        wickets=min(_int_or(raw.get('wickets'), 0), MAX_WICKETS),
        extras=Extras(
            wides=_int_or(extras.get('wides'), 0),
            noballs=_int_or(extras.get('noballs'), 0),
            byes=_int_or(extras.get('byes'), 0),
            legbyes=_int_or(extras.get('legbyes'), 0),
        ),
        striker_id=_int_or(_pick(raw, 'strikerId', 'striker_id'), None),
        non_striker_id=_int_or(_pick(raw, 'nonStrikerId', 'non_striker_id'), None),
        bowler_id=_int_or(_pick(raw, 'bowlerId', 'bowler_id'), None),
        current_over_balls=_int_or(_pick(raw, 'currentOverBalls', 'current_over_balls'), 0),
        current_over_runs=_int_or(_pick(raw, 'currentOverRuns', 'current_over_runs'), 0),
    )

    try:
        tallies = InningsSchema.model_validate({
            'batters': raw.get('batters') or [],
            'bowlers': raw.get('bowlers') or [],
        })
    except ValidationError:
        logger.warning("Dropping unreadable player tallies from snapshot")
        return innings

    return innings._replace(
        batters=tuple(BatterTally(**b.model_dump()) for b in tallies.batters),
        bowlers=tuple(BowlerTally(**b.model_dump()) for b in tallies.bowlers),
    )


def _repair_history(raw: list) -> tuple[BallEvent, ...]:
    events = []
    for entry in raw:
        try:
            events.append(BallEvent(**BallEventSchema.model_validate(entry).model_dump()))
        except ValidationError:
            logger.warning(f"Dropping unreadable ball entry: {entry!r}")
    return tuple(events)


def repair_match_state(raw: Any) -> MatchState:
    """
    Best-effort recovery of a snapshot, filling defaults field by field.

    The top-level shape (currentInning, innings.first/second, ballHistory)
    must be present; without it a fresh match is returned. Never raises.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Snapshot is not valid JSON, starting a new match")
            return initial_match_state()

    if not isinstance(raw, dict):
        logger.warning("Snapshot is not an object, starting a new match")
        return initial_match_state()

    current_inning = _pick(raw, 'currentInning', 'current_inning')
    innings = raw.get('innings')
    history = _pick(raw, 'ballHistory', 'ball_history')

    if (current_inning not in (1, 2) or isinstance(current_inning, bool)
            or not isinstance(innings, dict)
            or 'first' not in innings or 'second' not in innings
            or not isinstance(history, list)):
        logger.warning("Snapshot is missing required fields, starting a new match")
        return initial_match_state()

    is_match_over = _pick(raw, 'isMatchOver', 'is_match_over')
    winner = raw.get('winner')

    return MatchState(
        current_inning=current_inning,
        innings=InningsPair(
            first=_repair_innings(innings['first']),
            second=_repair_innings(innings['second']),
        ),
        target=_int_or(raw.get('target'), None, minimum=1),
        ball_history=_repair_history(history),
        is_match_over=is_match_over if isinstance(is_match_over, bool) else False,
        winner=winner if winner in ('batting', 'bowling') else None,
        total_overs=_int_or(_pick(raw, 'totalOvers', 'total_overs'), DEFAULT_TOTAL_OVERS, minimum=1),
    )


def validate_match_state(raw: RawSnapshot) -> MatchState:
    """Decode a snapshot, repairing it if strict decoding fails."""
    try:
        return decode_match_state(raw)
    except SnapshotValidationError as e:
        logger.warning(f"{e}; repairing snapshot")
        return repair_match_state(raw)
