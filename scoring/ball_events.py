"""
Ball Event Model

The immutable vocabulary of delivery outcomes and the numeric effect each
outcome has on an innings. Everything else in the scorer is a fold over a
sequence of these events.

Usage:
    from scoring.ball_events import new_ball_event, effect_of

    event = new_ball_event('noball', runs=1 + 4, inning=1)
    effect = effect_of(event)   # Effect(runs=5, balls=0, ..., noballs=1)
"""

from __future__ import annotations

import time
import uuid
from typing import Literal, NamedTuple, Optional, get_args

# =============================================================================
# Type Definitions
# =============================================================================

BallKind = Literal['run', 'wicket', 'wide', 'noball', 'bye', 'legbye']

DismissalType = Literal[
    'bowled', 'caught', 'lbw', 'run_out', 'stumped',
    'hit_wicket', 'handled_ball', 'obstructing', 'timed_out',
]


class BallEvent(NamedTuple):
    """One delivery or extra. Never modified once appended to the history."""
    id: str
    kind: BallKind
    runs: int
    inning: int
    timestamp: int                 # ms since epoch, ordering aid only
    is_run_out: bool = False       # only meaningful on a no-ball
    is_wicket: bool = False
    dismissal: Optional[DismissalType] = None
    # Lineup at the moment the ball was bowled
    striker_id: Optional[int] = None
    non_striker_id: Optional[int] = None
    bowler_id: Optional[int] = None
    fielder_id: Optional[int] = None
    batter_count: Optional[int] = None  # batters registered before the ball


class Effect(NamedTuple):
    """Counter deltas a single event applies to an innings."""
    runs: int = 0
    balls: int = 0
    wickets: int = 0
    wides: int = 0
    noballs: int = 0
    byes: int = 0
    legbyes: int = 0


# =============================================================================
# Scoring Constants
# =============================================================================

BALLS_PER_OVER = 6
MAX_WICKETS = 10          # all out
WIDE_PENALTY = 1          # runs awarded for a wide, never off the bat
NOBALL_PENALTY = 1        # folded into event.runs together with bat runs
MAX_RUNS_PER_BALL = 6     # largest value a scorer can tap for one delivery

BALL_KINDS: tuple[str, ...] = get_args(BallKind)

DISMISSAL_TYPES: tuple[str, ...] = get_args(DismissalType)

# Dismissals the bowler does not get credit for
NON_BOWLER_DISMISSALS = frozenset({'run_out', 'handled_ball', 'obstructing', 'timed_out'})

DEFAULT_WICKET_DISMISSAL = 'bowled'
DEFAULT_WIDE_DISMISSAL = 'stumped'


# =============================================================================
# Event Construction
# =============================================================================

def new_event_id(timestamp: Optional[int] = None) -> str:
    """Unique id for a ball entry: creation time plus a random suffix."""
    stamp = timestamp if timestamp is not None else now_ms()
    return f"{stamp}-{uuid.uuid4().hex[:9]}"


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def new_ball_event(
    kind: str,
    runs: int,
    inning: int,
    *,
    is_run_out: bool = False,
    is_wicket: bool = False,
    dismissal: Optional[DismissalType] = None,
    striker_id: Optional[int] = None,
    non_striker_id: Optional[int] = None,
    bowler_id: Optional[int] = None,
    fielder_id: Optional[int] = None,
    batter_count: Optional[int] = None,
) -> BallEvent:
    """
    Build a fresh event stamped with an id and creation time.

    Args:
        kind: One of BALL_KINDS
        runs: Runs credited by the event (no-ball runs include the penalty)
        inning: 1 or 2
        is_run_out: Run-out on a no-ball, makes the delivery count
        is_wicket: Wicket fell on this delivery (implied for kind 'wicket')
        dismissal: How the batter was out
        striker_id/non_striker_id/bowler_id: Lineup before the ball
        fielder_id: Catcher or run-out fielder
        batter_count: Batters registered in the innings before the ball

    Returns:
        A BallEvent ready to append to the ball history
    """
    if kind not in BALL_KINDS:
        raise ValueError(f"Unknown ball kind '{kind}'")

    timestamp = now_ms()
    return BallEvent(
        id=new_event_id(timestamp),
        kind=kind,
        runs=runs,
        inning=inning,
        timestamp=timestamp,
        is_run_out=is_run_out,
        is_wicket=is_wicket or kind == 'wicket',
        dismissal=dismissal,
        striker_id=striker_id,
        non_striker_id=non_striker_id,
        bowler_id=bowler_id,
        fielder_id=fielder_id,
        batter_count=batter_count,
    )


# =============================================================================
# Effect Table
# =============================================================================

def is_dismissal(event: BallEvent) -> bool:
    """A wicket event, or a stumping/run-out off a wide."""
    return event.kind == 'wicket' or (event.kind == 'wide' and event.is_wicket)


def counts_ball(event: BallEvent) -> bool:
    """Whether the delivery counts towards the over."""
    if event.kind == 'wide':
        return False
    if event.kind == 'noball':
        return event.is_run_out
    return True


def effect_of(event: BallEvent) -> Effect:
    """
    Counter deltas for one event.

    | kind   | runs        | ball?            | extras            |
    |--------|-------------|------------------|-------------------|
    | run    | event.runs  | yes              | -                 |
    | wicket | event.runs  | yes              | - (wickets += 1)  |
    | wide   | 1           | no               | wides += 1        |
    | noball | event.runs  | only on run-out  | noballs += 1      |
    | bye    | event.runs  | yes              | byes += runs      |
    | legbye | event.runs  | yes              | legbyes += runs   |
    """
    kind = event.kind
    balls = 1 if counts_ball(event) else 0
    wickets = 1 if is_dismissal(event) else 0

    if kind == 'run':
        return Effect(runs=event.runs, balls=balls)
    if kind == 'wicket':
        return Effect(runs=event.runs, balls=balls, wickets=wickets)
    if kind == 'wide':
        return Effect(runs=WIDE_PENALTY, wickets=wickets, wides=1)
    if kind == 'noball':
        return Effect(runs=event.runs, balls=balls, noballs=1)
    if kind == 'bye':
        return Effect(runs=event.runs, balls=balls, byes=event.runs)
    if kind == 'legbye':
        return Effect(runs=event.runs, balls=balls, legbyes=event.runs)

    raise ValueError(f"Unknown ball kind '{kind}'")


def inverse(effect: Effect) -> Effect:
    """Negated deltas, so applying effect then inverse is a no-op."""
    return Effect(*(-value for value in effect))


# =============================================================================
# Attribution Helpers
# =============================================================================

def bat_runs(event: BallEvent) -> int:
    """Runs credited to the striker (never extras, no-ball penalty removed)."""
    if event.kind in ('run', 'wicket'):
        return event.runs
    if event.kind == 'noball':
        return max(0, event.runs - NOBALL_PENALTY)
    return 0


def bowler_runs(event: BallEvent) -> int:
    """Runs charged to the bowler. Byes and leg-byes are not."""
    if event.kind in ('bye', 'legbye'):
        return 0
    if event.kind == 'wide':
        return WIDE_PENALTY
    return event.runs


def credits_bowler_wicket(event: BallEvent) -> bool:
    if not is_dismissal(event):
        return False
    if event.kind == 'wide':
        return event.dismissal == 'stumped'
    return event.dismissal not in NON_BOWLER_DISMISSALS


def rotates_strike(event: BallEvent) -> bool:
    """Odd runs run between the wickets swap the batters' ends."""
    if event.kind in ('run', 'bye', 'legbye'):
        return event.runs % 2 == 1
    if event.kind == 'noball':
        return bat_runs(event) % 2 == 1
    return False


def ball_label(event: BallEvent) -> str:
    """Short label for a ball-history strip, e.g. '4', 'W', 'WD', 'NB', 'B2'."""
    if is_dismissal(event):
        return 'W'
    if event.kind == 'wide':
        return 'WD'
    if event.kind == 'noball':
        extra = bat_runs(event)
        return f"NB+{extra}" if extra else 'NB'
    if event.kind == 'bye':
        return f"B{event.runs}"
    if event.kind == 'legbye':
        return f"LB{event.runs}"
    return str(event.runs)
