"""
Scoring Reducer and Undo Engine

A pure transition function `reduce(state, action) -> state` over immutable
MatchState snapshots. Each scoring action becomes one BallEvent appended to
the ball history; undo drops the last event and rebuilds the innings it
belonged to by replaying the events that remain.

Usage:
    from scoring.match_state import initial_match_state
    from scoring.reducer import AddRun, AddWide, Undo, reduce

    state = initial_match_state()
    state = reduce(state, AddRun(4))
    state = reduce(state, AddWide())
    state = reduce(state, Undo())
"""

from __future__ import annotations

import logging
from typing import Callable, NamedTuple, Optional, Union

from scoring.ball_events import (
    DEFAULT_WICKET_DISMISSAL,
    DEFAULT_WIDE_DISMISSAL,
    DISMISSAL_TYPES,
    MAX_RUNS_PER_BALL,
    NOBALL_PENALTY,
    WIDE_PENALTY,
    BallEvent,
    new_ball_event,
)
from scoring.lifecycle import (
    apply_rain_interruption,
    check_match_over,
    end_innings,
    is_innings_complete,
    revert_to_first_innings,
    revise_target,
)
from scoring.match_state import (
    DEFAULT_TOTAL_OVERS,
    InningsAggregate,
    MatchState,
    add_batter,
    add_bowler,
    apply_event_to_innings,
    current_innings,
    events_for,
    find_batter,
    initial_match_state,
    innings_for,
    replay_innings,
    with_innings,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Action Vocabulary
# =============================================================================

class AddRun(NamedTuple):
    runs: int
    action_type = 'ADD_RUN'


class AddWicket(NamedTuple):
    runs: int = 0
    dismissal: Optional[str] = None
    fielder_id: Optional[int] = None
    action_type = 'ADD_WICKET'


class AddWide(NamedTuple):
    action_type = 'ADD_WIDE'


class AddWideWicket(NamedTuple):
    dismissal: Optional[str] = None
    fielder_id: Optional[int] = None
    action_type = 'ADD_WIDE_WICKET'


class AddNoBall(NamedTuple):
    runs: int = 0               # off the bat, the penalty run is added here
    is_run_out: bool = False
    action_type = 'ADD_NOBALL'


class AddBye(NamedTuple):
    runs: int
    action_type = 'ADD_BYE'


class AddLegBye(NamedTuple):
    runs: int
    action_type = 'ADD_LEGBYE'


class Undo(NamedTuple):
    action_type = 'UNDO'


class EndInnings(NamedTuple):
    action_type = 'END_INNINGS'


class NewMatch(NamedTuple):
    total_overs: Optional[int] = None
    action_type = 'NEW_MATCH'


class SetTotalOvers(NamedTuple):
    total_overs: int
    action_type = 'SET_TOTAL_OVERS'


class LoadState(NamedTuple):
    state: MatchState
    action_type = 'LOAD_STATE'


class SetOpeningBatsmen(NamedTuple):
    striker_id: int
    non_striker_id: int
    action_type = 'SET_OPENING_BATSMEN'


class SetBowler(NamedTuple):
    bowler_id: int
    action_type = 'SET_BOWLER'


class NextBatsman(NamedTuple):
    batsman_id: int
    action_type = 'NEXT_BATSMAN'


class RotateStrike(NamedTuple):
    action_type = 'ROTATE_STRIKE'


class RainInterruption(NamedTuple):
    overs_lost: int
    action_type = 'RAIN_INTERRUPTION'


class ReviseTarget(NamedTuple):
    target: int
    total_overs: Optional[int] = None
    action_type = 'REVISE_TARGET'


Action = Union[
    AddRun, AddWicket, AddWide, AddWideWicket, AddNoBall, AddBye, AddLegBye,
    Undo, EndInnings, NewMatch, SetTotalOvers, LoadState,
    SetOpeningBatsmen, SetBowler, NextBatsman, RotateStrike,
    RainInterruption, ReviseTarget,
]

DELIVERY_ACTIONS = (AddRun, AddWicket, AddWide, AddWideWicket, AddNoBall, AddBye, AddLegBye)

# Still accepted once the match is over
TERMINAL_ALLOWED = (Undo, NewMatch, LoadState)


# =============================================================================
# Apply / Undo
# =============================================================================

def apply_event(state: MatchState, event: BallEvent) -> MatchState:
    """
    Append an event to the history and apply it to the innings it addresses.

    Match-over is re-derived afterwards.
    """
    innings = apply_event_to_innings(innings_for(state, event.inning), event)
    state = with_innings(state, event.inning, innings)
    state = state._replace(ball_history=state.ball_history + (event,))
    return check_match_over(state)


def _drop_unused_batters(
    innings: InningsAggregate,
    removed: BallEvent,
    events: tuple[BallEvent, ...],
) -> InningsAggregate:
    """
    Forget batters registered after the removed ball.

    Events from snapshots that predate batter_count fall back to keeping
    whoever is at the crease or appears in the remaining events.
    """
    if removed.batter_count is not None:
        return innings._replace(batters=innings.batters[:removed.batter_count])

    seen = {innings.striker_id, innings.non_striker_id}
    for event in events:
        seen.add(event.striker_id)
        seen.add(event.non_striker_id)

    kept = tuple(t for t in innings.batters if t.player_id in seen)
    if len(kept) == len(innings.batters):
        return innings
    return innings._replace(batters=kept)


def undo(state: MatchState) -> MatchState:
    """
    Remove the last event and restore the innings to how it was before it.

    The addressed innings is rebuilt by replaying its remaining events; the
    lineup comes back from the snapshot stored on the removed event. If no
    second-innings events remain, the match drops back to the first innings.
    Match-over is always cleared. No-op on an empty history.
    """
    if not state.ball_history:
        logger.debug("Nothing to undo")
        return state

    last = state.ball_history[-1]
    history = state.ball_history[:-1]
    remaining = events_for(history, last.inning)

    rebuilt = replay_innings(remaining, innings_for(state, last.inning))
    rebuilt = rebuilt._replace(
        striker_id=last.striker_id,
        non_striker_id=last.non_striker_id,
        bowler_id=last.bowler_id,
    )
    rebuilt = _drop_unused_batters(rebuilt, last, remaining)

    state = with_innings(state, last.inning, rebuilt)
    state = state._replace(ball_history=history, is_match_over=False, winner=None)

    if state.current_inning == 2 and not events_for(history, 2):
        state = revert_to_first_innings(state)

    logger.debug(f"Undid {last.kind} ({last.runs}) in inning {last.inning}")
    return state


# =============================================================================
# Delivery Handlers
# =============================================================================

def _valid_runs(runs: int, minimum: int = 0) -> bool:
    return (isinstance(runs, int) and not isinstance(runs, bool)
            and minimum <= runs <= MAX_RUNS_PER_BALL)


def _valid_dismissal(dismissal: Optional[str]) -> bool:
    return dismissal is None or dismissal in DISMISSAL_TYPES


def _deliver(state: MatchState, kind: str, runs: int, **details) -> MatchState:
    """Stamp a new event with the current lineup and apply it."""
    innings = current_innings(state)
    event = new_ball_event(
        kind,
        runs,
        state.current_inning,
        striker_id=innings.striker_id,
        non_striker_id=innings.non_striker_id,
        bowler_id=innings.bowler_id,
        batter_count=len(innings.batters),
        **details,
    )
    return apply_event(state, event)


def _add_run(state: MatchState, action: AddRun) -> MatchState:
    if not _valid_runs(action.runs):
        return state
    return _deliver(state, 'run', action.runs)


def _add_wicket(state: MatchState, action: AddWicket) -> MatchState:
    if not _valid_runs(action.runs) or not _valid_dismissal(action.dismissal):
        return state
    return _deliver(state, 'wicket', action.runs, is_wicket=True,
                    dismissal=action.dismissal or DEFAULT_WICKET_DISMISSAL,
                    fielder_id=action.fielder_id)


def _add_wide(state: MatchState, action: AddWide) -> MatchState:
    return _deliver(state, 'wide', WIDE_PENALTY)


def _add_wide_wicket(state: MatchState, action: AddWideWicket) -> MatchState:
    if not _valid_dismissal(action.dismissal):
        return state
    return _deliver(state, 'wide', WIDE_PENALTY, is_wicket=True,
                    dismissal=action.dismissal or DEFAULT_WIDE_DISMISSAL,
                    fielder_id=action.fielder_id)


def _add_noball(state: MatchState, action: AddNoBall) -> MatchState:
    if not _valid_runs(action.runs):
        return state
    return _deliver(state, 'noball', NOBALL_PENALTY + action.runs,
                    is_run_out=bool(action.is_run_out))


def _add_bye(state: MatchState, action: AddBye) -> MatchState:
    if not _valid_runs(action.runs):
        return state
    return _deliver(state, 'bye', action.runs)


def _add_legbye(state: MatchState, action: AddLegBye) -> MatchState:
    if not _valid_runs(action.runs):
        return state
    return _deliver(state, 'legbye', action.runs)


# =============================================================================
# Match and Lineup Handlers
# =============================================================================

def _valid_overs(overs: Optional[int]) -> bool:
    return isinstance(overs, int) and not isinstance(overs, bool) and overs >= 1


def _new_match(state: MatchState, action: NewMatch) -> MatchState:
    overs = action.total_overs if _valid_overs(action.total_overs) else DEFAULT_TOTAL_OVERS
    logger.info(f"New {overs}-over match")
    return initial_match_state(overs)


def _set_total_overs(state: MatchState, action: SetTotalOvers) -> MatchState:
    if not _valid_overs(action.total_overs):
        return state
    return check_match_over(state._replace(total_overs=action.total_overs))


def _load_state(state: MatchState, action: LoadState) -> MatchState:
    return action.state


def _update_current(state: MatchState, innings: InningsAggregate) -> MatchState:
    return with_innings(state, state.current_inning, innings)


def _set_opening_batsmen(state: MatchState, action: SetOpeningBatsmen) -> MatchState:
    if action.striker_id == action.non_striker_id:
        return state
    innings = add_batter(current_innings(state), action.striker_id)
    innings = add_batter(innings, action.non_striker_id)
    innings = innings._replace(striker_id=action.striker_id,
                               non_striker_id=action.non_striker_id)
    return _update_current(state, innings)


def _set_bowler(state: MatchState, action: SetBowler) -> MatchState:
    innings = add_bowler(current_innings(state), action.bowler_id)
    return _update_current(state, innings._replace(bowler_id=action.bowler_id))


def _next_batsman(state: MatchState, action: NextBatsman) -> MatchState:
    """Send a new batter to whichever end is vacant."""
    innings = current_innings(state)
    if find_batter(innings, action.batsman_id) is not None:
        return state

    if innings.striker_id is None:
        innings = innings._replace(striker_id=action.batsman_id)
    elif innings.non_striker_id is None:
        innings = innings._replace(non_striker_id=action.batsman_id)
    else:
        return state

    return _update_current(state, add_batter(innings, action.batsman_id))


def _rotate_strike(state: MatchState, action: RotateStrike) -> MatchState:
    innings = current_innings(state)
    return _update_current(state, innings._replace(striker_id=innings.non_striker_id,
                                                   non_striker_id=innings.striker_id))


_HANDLERS: dict[type, Callable[[MatchState, Action], MatchState]] = {
    AddRun: _add_run,
    AddWicket: _add_wicket,
    AddWide: _add_wide,
    AddWideWicket: _add_wide_wicket,
    AddNoBall: _add_noball,
    AddBye: _add_bye,
    AddLegBye: _add_legbye,
    Undo: lambda state, action: undo(state),
    EndInnings: lambda state, action: end_innings(state),
    NewMatch: _new_match,
    SetTotalOvers: _set_total_overs,
    LoadState: _load_state,
    SetOpeningBatsmen: _set_opening_batsmen,
    SetBowler: _set_bowler,
    NextBatsman: _next_batsman,
    RotateStrike: _rotate_strike,
    RainInterruption: lambda state, action: apply_rain_interruption(state, action.overs_lost),
    ReviseTarget: lambda state, action: revise_target(state, action.target, action.total_overs),
}


# =============================================================================
# Main Entry Point
# =============================================================================

def reduce(state: MatchState, action: Action) -> MatchState:
    """
    Apply one action and return the next state.

    Actions the current state cannot accept (scoring after the match is
    over, scoring into a completed innings, out-of-range runs) return the
    state unchanged.

    Raises:
        TypeError: action is not one of the action types above
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown action {action!r}")

    if state.is_match_over and not isinstance(action, TERMINAL_ALLOWED):
        logger.debug(f"Match over, ignoring {action.action_type}")
        return state

    if isinstance(action, DELIVERY_ACTIONS) and is_innings_complete(state):
        logger.debug(f"Innings complete, ignoring {action.action_type}")
        return state

    next_state = handler(state, action)
    if next_state is state:
        logger.debug(f"Ignored {action.action_type}")
    else:
        logger.debug(f"Applied {action.action_type}")
    return next_state
