"""
Innings Aggregate and Match State

Immutable records for one match. Every counter on an InningsAggregate is a
fold over the ball history: replay_innings() rebuilds an innings from its
events and always agrees with the incremental apply_event_to_innings().

Changes are made by replacement (NamedTuple._replace), never in place, so a
MatchState handed to a UI or persistence consumer is a safe snapshot.
"""

from __future__ import annotations

from typing import Iterable, NamedTuple, Optional

from scoring.ball_events import (
    BALLS_PER_OVER,
    DEFAULT_WICKET_DISMISSAL,
    DEFAULT_WIDE_DISMISSAL,
    BallEvent,
    Effect,
    bat_runs,
    bowler_runs,
    counts_ball,
    credits_bowler_wicket,
    effect_of,
    inverse,
    is_dismissal,
    rotates_strike,
)

DEFAULT_TOTAL_OVERS = 20


# =============================================================================
# Records
# =============================================================================

class Extras(NamedTuple):
    """Running extras totals for an innings."""
    wides: int = 0
    noballs: int = 0
    byes: int = 0
    legbyes: int = 0

    @property
    def total(self) -> int:
        return self.wides + self.noballs + self.byes + self.legbyes


class BatterTally(NamedTuple):
    """Batting figures for one player in one innings."""
    player_id: int
    batting_position: int
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    is_out: bool = False
    dismissal: Optional[str] = None
    bowler_id: Optional[int] = None     # bowler credited with the wicket
    fielder_id: Optional[int] = None

    @property
    def strike_rate(self) -> float:
        return round(self.runs / self.balls * 100, 2) if self.balls > 0 else 0.0


class BowlerTally(NamedTuple):
    """Bowling figures for one player in one innings."""
    player_id: int
    balls: int = 0
    runs: int = 0
    wickets: int = 0
    maidens: int = 0
    wides: int = 0
    noballs: int = 0

    @property
    def economy(self) -> float:
        return round(self.runs / (self.balls / BALLS_PER_OVER), 2) if self.balls > 0 else 0.0


class InningsAggregate(NamedTuple):
    """Counters, lineup and player tallies for one innings."""
    runs: int = 0
    balls: int = 0
    wickets: int = 0
    extras: Extras = Extras()
    striker_id: Optional[int] = None
    non_striker_id: Optional[int] = None
    bowler_id: Optional[int] = None
    batters: tuple[BatterTally, ...] = ()    # in batting order
    bowlers: tuple[BowlerTally, ...] = ()    # in order of first use
    current_over_balls: int = 0
    current_over_runs: int = 0               # runs charged to the bowler this over


class InningsPair(NamedTuple):
    first: InningsAggregate = InningsAggregate()
    second: InningsAggregate = InningsAggregate()


class MatchState(NamedTuple):
    """The whole scorable match. ball_history is the source of truth."""
    current_inning: int = 1
    innings: InningsPair = InningsPair()
    target: Optional[int] = None
    ball_history: tuple[BallEvent, ...] = ()
    is_match_over: bool = False
    winner: Optional[str] = None        # 'batting' | 'bowling' | None
    total_overs: int = DEFAULT_TOTAL_OVERS

    @property
    def can_undo(self) -> bool:
        return len(self.ball_history) > 0


def initial_match_state(total_overs: int = DEFAULT_TOTAL_OVERS) -> MatchState:
    """Zeroed match at the start of the first innings."""
    return MatchState(total_overs=total_overs)


# =============================================================================
# Accessors
# =============================================================================

def innings_for(state: MatchState, inning: int) -> InningsAggregate:
    return state.innings.first if inning == 1 else state.innings.second


def current_innings(state: MatchState) -> InningsAggregate:
    return innings_for(state, state.current_inning)


def with_innings(state: MatchState, inning: int, aggregate: InningsAggregate) -> MatchState:
    """Copy of state with one innings replaced."""
    if inning == 1:
        pair = state.innings._replace(first=aggregate)
    else:
        pair = state.innings._replace(second=aggregate)
    return state._replace(innings=pair)


def events_for(history: Iterable[BallEvent], inning: int) -> tuple[BallEvent, ...]:
    return tuple(event for event in history if event.inning == inning)


def find_batter(innings: InningsAggregate, player_id: Optional[int]) -> Optional[BatterTally]:
    for tally in innings.batters:
        if tally.player_id == player_id:
            return tally
    return None


def find_bowler(innings: InningsAggregate, player_id: Optional[int]) -> Optional[BowlerTally]:
    for tally in innings.bowlers:
        if tally.player_id == player_id:
            return tally
    return None


def _put(tallies: tuple, tally) -> tuple:
    """Replace the tally for tally.player_id, or append it."""
    for i, existing in enumerate(tallies):
        if existing.player_id == tally.player_id:
            return tallies[:i] + (tally,) + tallies[i + 1:]
    return tallies + (tally,)


def add_batter(innings: InningsAggregate, player_id: int) -> InningsAggregate:
    """Register a batter at the next batting position (no-op if already in)."""
    if find_batter(innings, player_id) is not None:
        return innings
    tally = BatterTally(player_id=player_id, batting_position=len(innings.batters) + 1)
    return innings._replace(batters=innings.batters + (tally,))


def add_bowler(innings: InningsAggregate, player_id: int) -> InningsAggregate:
    if find_bowler(innings, player_id) is not None:
        return innings
    return innings._replace(bowlers=innings.bowlers + (BowlerTally(player_id=player_id),))


# =============================================================================
# Applying Events
# =============================================================================

def apply_effect(innings: InningsAggregate, effect: Effect) -> InningsAggregate:
    """Add counter deltas to the innings totals."""
    extras = innings.extras
    return innings._replace(
        runs=innings.runs + effect.runs,
        balls=innings.balls + effect.balls,
        wickets=innings.wickets + effect.wickets,
        extras=Extras(
            wides=extras.wides + effect.wides,
            noballs=extras.noballs + effect.noballs,
            byes=extras.byes + effect.byes,
            legbyes=extras.legbyes + effect.legbyes,
        ),
    )


def invert_event(innings: InningsAggregate, event: BallEvent) -> InningsAggregate:
    """
    Subtract an event's counter effect from the innings.

    Derived purely from the event's kind and runs. Player tallies and the
    lineup are not touched; replay_innings() is what undo relies on.
    """
    return apply_effect(innings, inverse(effect_of(event)))


def _batter_after(innings: InningsAggregate, event: BallEvent) -> InningsAggregate:
    if event.striker_id is None:
        return innings

    innings = add_batter(innings, event.striker_id)
    tally = find_batter(innings, event.striker_id)

    faced = 0
    if event.kind in ('run', 'wicket', 'bye', 'legbye'):
        faced = 1
    elif event.kind == 'noball' and event.is_run_out:
        faced = 1

    scored = bat_runs(event)
    boundary = scored if event.kind in ('run', 'noball') else 0
    tally = tally._replace(
        runs=tally.runs + scored,
        balls=tally.balls + faced,
        fours=tally.fours + (1 if boundary == 4 else 0),
        sixes=tally.sixes + (1 if boundary == 6 else 0),
    )

    if is_dismissal(event):
        default = DEFAULT_WIDE_DISMISSAL if event.kind == 'wide' else DEFAULT_WICKET_DISMISSAL
        tally = tally._replace(
            is_out=True,
            dismissal=event.dismissal or default,
            bowler_id=event.bowler_id if credits_bowler_wicket(event) else None,
            fielder_id=event.fielder_id,
        )

    return innings._replace(batters=_put(innings.batters, tally))


def _bowler_after(innings: InningsAggregate, event: BallEvent) -> InningsAggregate:
    if event.bowler_id is None:
        return innings

    innings = add_bowler(innings, event.bowler_id)
    tally = find_bowler(innings, event.bowler_id)
    tally = tally._replace(
        balls=tally.balls + (1 if counts_ball(event) else 0),
        runs=tally.runs + bowler_runs(event),
        wickets=tally.wickets + (1 if credits_bowler_wicket(event) else 0),
        wides=tally.wides + (1 if event.kind == 'wide' else 0),
        noballs=tally.noballs + (1 if event.kind == 'noball' else 0),
    )
    return innings._replace(bowlers=_put(innings.bowlers, tally))


def _close_over(innings: InningsAggregate, event: BallEvent) -> InningsAggregate:
    """Credit a maiden, swap ends and reset the per-over counters."""
    if (event.bowler_id is not None
            and innings.current_over_balls == BALLS_PER_OVER
            and innings.current_over_runs == 0):
        tally = find_bowler(innings, event.bowler_id)
        if tally is not None:
            innings = innings._replace(
                bowlers=_put(innings.bowlers, tally._replace(maidens=tally.maidens + 1))
            )

    return innings._replace(
        striker_id=innings.non_striker_id,
        non_striker_id=innings.striker_id,
        current_over_balls=0,
        current_over_runs=0,
    )


def apply_event_to_innings(innings: InningsAggregate, event: BallEvent) -> InningsAggregate:
    """
    Apply one event to the innings it belongs to.

    Updates the counters from the effect table, the striker and bowler
    tallies, strike rotation and the end-of-over bookkeeping. The lineup is
    taken from the event itself, so the result depends only on the prior
    counters and the event.
    """
    innings = apply_effect(innings, effect_of(event))
    innings = _batter_after(innings, event)
    innings = _bowler_after(innings, event)

    striker, non_striker = event.striker_id, event.non_striker_id
    if is_dismissal(event):
        striker = None
    elif rotates_strike(event):
        striker, non_striker = non_striker, striker

    counted = counts_ball(event)
    innings = innings._replace(
        striker_id=striker,
        non_striker_id=non_striker,
        bowler_id=event.bowler_id,
        current_over_balls=innings.current_over_balls + (1 if counted else 0),
        current_over_runs=innings.current_over_runs + bowler_runs(event),
    )

    if counted and innings.balls % BALLS_PER_OVER == 0:
        innings = _close_over(innings, event)

    return innings


def blank_innings(innings: InningsAggregate) -> InningsAggregate:
    """Zeroed counters that keep the lineup and the registered players."""
    return InningsAggregate(
        striker_id=innings.striker_id,
        non_striker_id=innings.non_striker_id,
        bowler_id=innings.bowler_id,
        batters=tuple(BatterTally(t.player_id, t.batting_position) for t in innings.batters),
        bowlers=tuple(BowlerTally(t.player_id) for t in innings.bowlers),
    )


def replay_innings(events: Iterable[BallEvent], template: InningsAggregate) -> InningsAggregate:
    """Left fold of events over blank_innings(template)."""
    innings = blank_innings(template)
    for event in events:
        innings = apply_event_to_innings(innings, event)
    return innings
