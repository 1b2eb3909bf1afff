"""
Innings Lifecycle Controller

Decides when an innings or the match ends, turns a finished first innings
into a chase target, and applies rain revisions to that target.

States: FIRST_INNINGS -> SECOND_INNINGS -> MATCH_OVER (terminal).
"""

from __future__ import annotations

import logging
from typing import Optional

from scoring.ball_events import BALLS_PER_OVER, MAX_WICKETS
from scoring.dls import calculate_dls_mid_innings, calculate_dls_target
from scoring.match_state import (
    InningsAggregate,
    MatchState,
    current_innings,
    events_for,
)

logger = logging.getLogger(__name__)

FIRST_INNINGS = 'FIRST_INNINGS'
SECOND_INNINGS = 'SECOND_INNINGS'
MATCH_OVER = 'MATCH_OVER'

MIN_OVERS_AFTER_INTERRUPTION = 1


def match_phase(state: MatchState) -> str:
    if state.is_match_over:
        return MATCH_OVER
    return SECOND_INNINGS if state.current_inning == 2 else FIRST_INNINGS


def max_balls(state: MatchState) -> int:
    return state.total_overs * BALLS_PER_OVER


def is_innings_complete(state: MatchState) -> bool:
    """All out, or the allotted overs have been bowled."""
    innings = current_innings(state)
    return innings.wickets >= MAX_WICKETS or innings.balls >= max_balls(state)


def check_match_over(state: MatchState) -> MatchState:
    """
    Re-derive match-over after a forward transition.

    Only the second innings can finish the match:
    - chasing side reaches the target: batting side wins
    - chasing side all out or out of overs one short of the target: tie
    - otherwise all out or out of overs: bowling side wins
    """
    if state.is_match_over or state.current_inning != 2 or state.target is None:
        return state

    chase = state.innings.second
    if chase.runs >= state.target:
        logger.info(f"Target {state.target} reached, batting side wins")
        return state._replace(is_match_over=True, winner='batting')

    if chase.wickets >= MAX_WICKETS or chase.balls >= max_balls(state):
        if chase.runs == state.target - 1:
            logger.info(f"Scores level on {chase.runs}, match tied")
            return state._replace(is_match_over=True, winner=None)
        logger.info(f"Chase ended on {chase.runs}/{chase.wickets}, bowling side wins")
        return state._replace(is_match_over=True, winner='bowling')

    return state


def end_innings(state: MatchState) -> MatchState:
    """
    First innings -> second innings with target = first innings runs + 1.

    Ignored outside the first innings and before its first ball.
    """
    if state.current_inning != 1 or not events_for(state.ball_history, 1):
        return state

    target = state.innings.first.runs + 1
    logger.info(f"First innings closed on {state.innings.first.runs}, target {target}")
    return state._replace(
        current_inning=2,
        target=target,
        innings=state.innings._replace(second=InningsAggregate()),
    )


def revert_to_first_innings(state: MatchState) -> MatchState:
    """Back to first-innings mode, used when undo empties the chase."""
    logger.info("No second-innings balls remain, reverting to first innings")
    return state._replace(
        current_inning=1,
        target=None,
        innings=state.innings._replace(second=InningsAggregate()),
        is_match_over=False,
        winner=None,
    )


def apply_rain_interruption(state: MatchState, overs_lost: int) -> MatchState:
    """
    Shorten the match by overs_lost and, during the chase, revise the target.

    Before the chase starts the revised target comes from the resource ratio
    between the two innings; once it has started the overs lost mid-innings
    are taken off the chasing side's resources instead.

    Returns the state unchanged if overs_lost is not positive or would leave
    fewer than MIN_OVERS_AFTER_INTERRUPTION overs.
    """
    reduced_overs = state.total_overs - overs_lost
    if overs_lost <= 0 or reduced_overs < MIN_OVERS_AFTER_INTERRUPTION:
        logger.debug(f"Ignoring interruption of {overs_lost} overs from {state.total_overs}")
        return state

    if state.current_inning == 1:
        logger.info(f"First innings reduced to {reduced_overs} overs")
        return state._replace(total_overs=reduced_overs)

    first = state.innings.first
    chase_started = len(events_for(state.ball_history, 2)) > 0

    if not chase_started:
        result = calculate_dls_target(
            team1_runs=first.runs,
            team1_overs=state.total_overs,
            team1_all_out=first.wickets >= MAX_WICKETS,
            team2_allocated_overs=state.total_overs,
            team2_overs_lost=overs_lost,
        )
        target = result.target
    else:
        second = state.innings.second
        result = calculate_dls_mid_innings(
            team1_runs=first.runs,
            team1_overs=state.total_overs,
            team2_current_score=second.runs,
            team2_wickets=second.wickets,
            team2_balls_faced=second.balls,
            team2_total_overs=state.total_overs,
            team2_reduced_overs=reduced_overs,
        )
        target = result.revised_target

    logger.info(f"Rain: {overs_lost} overs lost, target revised to {target} "
                f"in {reduced_overs} overs")
    return check_match_over(state._replace(total_overs=reduced_overs, target=target))


def revise_target(state: MatchState, target: int, total_overs: Optional[int] = None) -> MatchState:
    """Set an externally calculated target for the chase."""
    if state.current_inning != 2 or target < 1:
        return state
    if total_overs is not None and total_overs < MIN_OVERS_AFTER_INTERRUPTION:
        return state

    logger.info(f"Target revised to {target}")
    revised = state._replace(
        target=target,
        total_overs=total_overs if total_overs is not None else state.total_overs,
    )
    return check_match_over(revised)
