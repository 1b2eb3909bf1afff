"""
Rate Calculator

Read-only projections of a MatchState: run rates, the chase equation, the
live net run rate and the strings a scoreboard shows. Nothing here is
persisted.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Optional, TypedDict

from scoring.ball_events import BALLS_PER_OVER
from scoring.lifecycle import is_innings_complete, match_phase, max_balls
from scoring.match_state import InningsAggregate, MatchState, current_innings

INFINITE_RATE = math.inf    # no balls left to get the runs


# =============================================================================
# Run Rates
# =============================================================================

def current_run_rate(runs: int, balls: int) -> float:
    """Runs per over so far; 0.0 before the first legal ball."""
    if balls == 0:
        return 0.0
    return runs / (balls / BALLS_PER_OVER)


def required_run_rate(runs_required: int, balls_remaining: int) -> float:
    """Runs per over still needed; infinite once no balls remain."""
    if balls_remaining <= 0:
        return INFINITE_RATE
    return runs_required / (balls_remaining / BALLS_PER_OVER)


def runs_required(state: MatchState) -> Optional[int]:
    """Target minus the chasing side's runs, None until a target is set."""
    if state.target is None:
        return None
    return state.target - state.innings.second.runs


def balls_remaining(state: MatchState) -> int:
    return max(0, max_balls(state) - current_innings(state).balls)


# =============================================================================
# Net Run Rate
# =============================================================================

class StandingsTotals(NamedTuple):
    """Tournament aggregate a team brings into the current match."""
    runs_scored: int
    balls_faced: int
    runs_conceded: int
    balls_bowled: int
    nrr: float = 0.0


def live_net_run_rate(
    runs_scored: int,
    balls_faced: int,
    runs_conceded: int,
    balls_bowled: int,
    existing: Optional[StandingsTotals] = None,
) -> float:
    """
    Net run rate including the match in progress.

    Args:
        runs_scored/balls_faced: Batting figures in the current match
        runs_conceded/balls_bowled: Bowling figures in the current match
        existing: Totals from completed matches, if the team has any

    Returns:
        (runs scored per over) - (runs conceded per over). Without enough
        balls on either side this is 0.0, or the existing NRR unchanged.
    """
    fallback = 0.0
    if existing is not None:
        runs_scored += existing.runs_scored
        balls_faced += existing.balls_faced
        runs_conceded += existing.runs_conceded
        balls_bowled += existing.balls_bowled
        fallback = existing.nrr

    if balls_faced == 0 or balls_bowled == 0:
        return fallback

    return current_run_rate(runs_scored, balls_faced) - current_run_rate(runs_conceded, balls_bowled)


# =============================================================================
# Display Formatting
# =============================================================================

def format_overs(balls: int) -> str:
    """27 balls -> '4.3'."""
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"


def format_rate(rate: float) -> str:
    if not math.isfinite(rate):
        return '∞'
    return f"{rate:.2f}"


def format_score(innings: InningsAggregate) -> str:
    return f"{innings.runs}/{innings.wickets}"


def format_overs_for_display(overs: float) -> str:
    return f"{overs:g} {'over' if overs == 1 else 'overs'}"


def format_nrr(nrr: float) -> str:
    """Signed to three places: '+0.525', '-1.200', '0.000'."""
    formatted = f"{abs(nrr):.3f}"
    if nrr > 0:
        return f"+{formatted}"
    if nrr < 0:
        return f"-{formatted}"
    return formatted


# =============================================================================
# Scoreboard
# =============================================================================

class Scoreboard(TypedDict):
    """Everything a scoring screen needs, derived from one MatchState."""
    phase: str
    inning: int
    score: str
    overs: str
    runs: int
    balls: int
    wickets: int
    extras: int
    current_run_rate: float
    required_run_rate: Optional[float]
    runs_required: Optional[int]
    balls_remaining: int
    target: Optional[int]
    total_overs: int
    is_match_over: bool
    winner: Optional[str]
    is_innings_complete: bool
    can_undo: bool
    can_end_innings: bool
    can_score: bool


def scoreboard(state: MatchState) -> Scoreboard:
    """
    Project a MatchState into scoreboard figures.

    Chase figures (required rate, runs required) are None in the first
    innings. Runs required is clamped at 0 for display.
    """
    innings = current_innings(state)
    remaining = balls_remaining(state)

    required = None
    rrr = None
    if state.current_inning == 2 and state.target is not None:
        required = max(0, runs_required(state))
        rrr = required_run_rate(required, remaining)

    return Scoreboard(
        phase=match_phase(state),
        inning=state.current_inning,
        score=format_score(innings),
        overs=format_overs(innings.balls),
        runs=innings.runs,
        balls=innings.balls,
        wickets=innings.wickets,
        extras=innings.extras.total,
        current_run_rate=round(current_run_rate(innings.runs, innings.balls), 2),
        required_run_rate=rrr,
        runs_required=required,
        balls_remaining=remaining,
        target=state.target,
        total_overs=state.total_overs,
        is_match_over=state.is_match_over,
        winner=state.winner,
        is_innings_complete=is_innings_complete(state),
        can_undo=state.can_undo and not state.is_match_over,
        can_end_innings=(state.current_inning == 1 and not state.is_match_over
                         and len(state.ball_history) > 0),
        can_score=not state.is_match_over,
    )
