"""
Tests for run rates, display formatting and the scoreboard projection.

Run with: pytest scoring/test_rates.py
"""

import math

import pytest

from scoring.ball_events import new_ball_event, ball_label
from scoring.match_state import InningsAggregate, initial_match_state, with_innings
from scoring.rates import (
    StandingsTotals,
    balls_remaining,
    current_run_rate,
    format_nrr,
    format_overs,
    format_overs_for_display,
    format_rate,
    format_score,
    live_net_run_rate,
    required_run_rate,
    runs_required,
    scoreboard,
)
from scoring.reducer import AddRun, EndInnings, apply_event, reduce


def chase_state(first_runs: int = 150, second_runs: int = 0, second_balls: int = 0, total_overs: int = 20):
    state = apply_event(initial_match_state(total_overs), new_ball_event('run', first_runs, 1))
    state = reduce(state, EndInnings())
    return with_innings(state, 2, InningsAggregate(runs=second_runs, balls=second_balls))


# =============================================================================
# Rates
# =============================================================================

def test_current_run_rate():
    assert current_run_rate(0, 0) == 0.0
    assert current_run_rate(45, 36) == pytest.approx(7.5)
    assert current_run_rate(10, 3) == pytest.approx(20.0)


def test_required_run_rate():
    assert required_run_rate(60, 60) == pytest.approx(6.0)
    assert math.isinf(required_run_rate(10, 0))
    assert math.isinf(required_run_rate(10, -6))


def test_runs_required_and_balls_remaining():
    assert runs_required(initial_match_state()) is None

    state = chase_state(150, second_runs=100, second_balls=90)
    assert runs_required(state) == 51
    assert balls_remaining(state) == 30


def test_runs_required_can_go_negative_but_scoreboard_clamps():
    state = chase_state(10, second_runs=20, second_balls=6)
    assert runs_required(state) == -9
    assert scoreboard(state)['runs_required'] == 0


# =============================================================================
# Net Run Rate
# =============================================================================

def test_live_nrr_current_match_only():
    nrr = live_net_run_rate(160, 120, 150, 120)
    assert nrr == pytest.approx(0.5)


def test_live_nrr_without_balls_is_zero():
    assert live_net_run_rate(20, 0, 0, 0) == 0.0


def test_live_nrr_combines_existing_standings():
    existing = StandingsTotals(runs_scored=300, balls_faced=240, runs_conceded=280, balls_bowled=240, nrr=0.5)
    nrr = live_net_run_rate(20, 12, 0, 0, existing)
    assert nrr == pytest.approx(320 / 42 - 280 / 40)


def test_live_nrr_keeps_existing_when_no_balls():
    existing = StandingsTotals(0, 0, 0, 0, nrr=-0.25)
    assert live_net_run_rate(0, 0, 0, 0, existing) == -0.25


# =============================================================================
# Formatting
# =============================================================================

@pytest.mark.parametrize("balls,expected", [(0, "0.0"), (5, "0.5"), (6, "1.0"), (27, "4.3"), (120, "20.0")])
def test_format_overs(balls, expected):
    assert format_overs(balls) == expected


def test_format_rate():
    assert format_rate(7.5) == "7.50"
    assert format_rate(0) == "0.00"
    assert format_rate(math.inf) == "∞"


def test_format_nrr():
    assert format_nrr(0.5254) == "+0.525"
    assert format_nrr(-1.2) == "-1.200"
    assert format_nrr(0) == "0.000"


def test_format_overs_for_display():
    assert format_overs_for_display(1) == "1 over"
    assert format_overs_for_display(20) == "20 overs"
    assert format_overs_for_display(15.0) == "15 overs"


def test_format_score():
    assert format_score(InningsAggregate(runs=123, wickets=4)) == "123/4"


@pytest.mark.parametrize("kind,runs,kwargs,label", [
    ('run', 4, {}, '4'),
    ('run', 0, {}, '0'),
    ('wicket', 0, {}, 'W'),
    ('wide', 1, {}, 'WD'),
    ('wide', 1, {'is_wicket': True}, 'W'),
    ('noball', 1, {}, 'NB'),
    ('noball', 5, {}, 'NB+4'),
    ('bye', 2, {}, 'B2'),
    ('legbye', 1, {}, 'LB1'),
])
def test_ball_label(kind, runs, kwargs, label):
    assert ball_label(new_ball_event(kind, runs, 1, **kwargs)) == label


# =============================================================================
# Scoreboard
# =============================================================================

def test_scoreboard_first_innings():
    state = reduce(reduce(initial_match_state(20), AddRun(4)), AddRun(2))
    board = scoreboard(state)

    assert board['phase'] == 'FIRST_INNINGS'
    assert board['score'] == "6/0"
    assert board['overs'] == "0.2"
    assert board['current_run_rate'] == 18.0
    assert board['required_run_rate'] is None
    assert board['runs_required'] is None
    assert board['balls_remaining'] == 118
    assert board['can_undo']
    assert board['can_end_innings']
    assert board['can_score']
    assert not board['is_innings_complete']


def test_scoreboard_fresh_match_cannot_end_innings_or_undo():
    board = scoreboard(initial_match_state())
    assert not board['can_undo']
    assert not board['can_end_innings']


def test_scoreboard_chase():
    state = chase_state(150, second_runs=100, second_balls=90)
    board = scoreboard(state)

    assert board['phase'] == 'SECOND_INNINGS'
    assert board['target'] == 151
    assert board['runs_required'] == 51
    assert board['balls_remaining'] == 30
    assert board['required_run_rate'] == pytest.approx(10.2)
    assert not board['can_end_innings']


def test_scoreboard_after_match_over():
    state = reduce(chase_state(0), AddRun(1))
    board = scoreboard(state)

    assert board['phase'] == 'MATCH_OVER'
    assert board['winner'] == 'batting'
    assert not board['can_undo']
    assert not board['can_score']
