"""
Tests for the scoring reducer, undo engine and innings lifecycle.

Run with: pytest scoring/test_reducer.py
"""

import random

import pytest

from scoring.ball_events import MAX_WICKETS, new_ball_event
from scoring.match_state import (
    InningsAggregate,
    find_batter,
    find_bowler,
    initial_match_state,
    invert_event,
    replay_innings,
)
from scoring.reducer import (
    AddBye,
    AddLegBye,
    AddNoBall,
    AddRun,
    AddWicket,
    AddWide,
    AddWideWicket,
    EndInnings,
    LoadState,
    NewMatch,
    NextBatsman,
    RainInterruption,
    ReviseTarget,
    RotateStrike,
    SetBowler,
    SetOpeningBatsmen,
    SetTotalOvers,
    Undo,
    apply_event,
    reduce,
    undo,
)


def play(state, *actions):
    for action in actions:
        state = reduce(state, action)
    return state


def chase(first_innings_runs: int, total_overs: int = 20):
    """Second innings ready to start, chasing first_innings_runs + 1."""
    state = apply_event(initial_match_state(total_overs), new_ball_event('run', first_innings_runs, 1))
    return reduce(state, EndInnings())


ONE_OF_EACH = [
    AddRun(0), AddRun(1), AddRun(4), AddRun(6),
    AddWicket(0), AddWicket(1, 'run_out'),
    AddWide(), AddWideWicket(),
    AddNoBall(0), AddNoBall(3), AddNoBall(1, True),
    AddBye(1), AddBye(4), AddLegBye(2),
]


# =============================================================================
# Concrete Scenarios
# =============================================================================

def test_runs_accumulate_in_first_innings():
    state = play(initial_match_state(), AddRun(4), AddRun(6))

    first = state.innings.first
    assert first.runs == 10
    assert first.balls == 2
    assert len(state.ball_history) == 2


def test_wide_then_undo_restores_zero():
    state = reduce(initial_match_state(), AddWide())
    first = state.innings.first
    assert (first.runs, first.balls, first.extras.wides) == (1, 0, 1)

    state = reduce(state, Undo())
    first = state.innings.first
    assert (first.runs, first.balls, first.extras.wides) == (0, 0, 0)
    assert state == initial_match_state()


def test_end_innings_sets_target():
    state = initial_match_state(20)
    state = play(state, *([AddRun(6)] * 25 + [AddRun(0)] * 95))
    assert state.innings.first.runs == 150
    assert state.innings.first.balls == 120

    state = reduce(state, EndInnings())
    assert state.target == 151
    assert state.current_inning == 2
    assert state.innings.second == InningsAggregate()


def test_reaching_target_wins_for_batting_side():
    state = chase(150)
    state = play(state, *([AddRun(6)] * 25))
    assert state.innings.second.runs == 150
    assert not state.is_match_over

    state = reduce(state, AddRun(1))
    assert state.innings.second.runs == 151
    assert state.is_match_over
    assert state.winner == 'batting'


# =============================================================================
# Ball Counting and Effects
# =============================================================================

@pytest.mark.parametrize("action,runs,balls", [
    (AddRun(3), 3, 1),
    (AddWicket(0), 0, 1),
    (AddWide(), 1, 0),
    (AddNoBall(0), 1, 0),
    (AddNoBall(4), 5, 0),
    (AddNoBall(1, True), 2, 1),
    (AddBye(2), 2, 1),
    (AddLegBye(1), 1, 1),
])
def test_ball_count_discipline(action, runs, balls):
    first = reduce(initial_match_state(), action).innings.first
    assert first.runs == runs
    assert first.balls == balls


def test_extras_buckets():
    state = play(initial_match_state(), AddWide(), AddNoBall(2), AddBye(3), AddLegBye(1))
    extras = state.innings.first.extras
    assert extras.wides == 1
    assert extras.noballs == 1
    assert extras.byes == 3
    assert extras.legbyes == 1
    assert extras.total == 6
    assert state.innings.first.runs == 1 + 3 + 3 + 1


def test_noball_stores_penalty_plus_bat_runs():
    state = reduce(initial_match_state(), AddNoBall(4))
    event = state.ball_history[-1]
    assert event.kind == 'noball'
    assert event.runs == 5


def test_invalid_runs_are_ignored():
    state = initial_match_state()
    assert reduce(state, AddRun(7)) is state
    assert reduce(state, AddRun(-1)) is state
    assert reduce(state, AddBye(9)) is state


def test_unknown_action_raises():
    with pytest.raises(TypeError):
        reduce(initial_match_state(), object())


# =============================================================================
# Undo
# =============================================================================

@pytest.mark.parametrize("action", ONE_OF_EACH)
def test_undo_inverts_apply_in_first_innings(action):
    before = play(
        initial_match_state(),
        SetOpeningBatsmen(1, 2), SetBowler(11),
        AddRun(2), AddWide(), AddRun(1),
    )
    after = reduce(before, action)
    assert after != before
    assert reduce(after, Undo()) == before


@pytest.mark.parametrize("action", ONE_OF_EACH)
def test_undo_inverts_apply_in_second_innings(action):
    before = play(chase(200), AddRun(4), AddBye(1))
    after = reduce(before, action)
    assert reduce(after, Undo()) == before


def test_undo_inverts_apply_across_over_boundary():
    before = play(
        initial_match_state(),
        SetOpeningBatsmen(1, 2), SetBowler(11),
        *([AddRun(0)] * 5),
    )
    after = reduce(before, AddRun(1))
    assert find_bowler(after.innings.first, 11).maidens == 0
    assert reduce(after, Undo()) == before

    after = reduce(before, AddRun(0))
    assert find_bowler(after.innings.first, 11).maidens == 1
    assert reduce(after, Undo()) == before


def test_undo_on_empty_history_is_noop():
    state = initial_match_state()
    assert reduce(state, Undo()) is state
    assert undo(state) is state


def test_undo_clears_match_over():
    state = play(chase(3, total_overs=1), AddRun(4))
    assert state.is_match_over

    state = reduce(state, Undo())
    assert not state.is_match_over
    assert state.winner is None
    assert state.innings.second.runs == 0


def test_undo_emptying_chase_reverts_to_first_innings():
    state = play(initial_match_state(), AddRun(4), EndInnings(), AddRun(1))
    assert state.current_inning == 2

    state = reduce(state, Undo())
    assert state.current_inning == 1
    assert state.target is None
    assert state.innings.first.runs == 4


def test_undo_after_wicket_restores_batter():
    state = play(initial_match_state(), SetOpeningBatsmen(1, 2), SetBowler(11))
    out = play(state, AddWicket(0, 'caught', 7), NextBatsman(3))
    assert find_batter(out.innings.first, 3) is not None

    back = reduce(out, Undo())
    assert back.innings.first.striker_id == 1
    assert find_batter(back.innings.first, 3) is None
    assert not find_batter(back.innings.first, 1).is_out


def test_undo_keeps_batters_registered_before_the_ball():
    before = play(
        initial_match_state(),
        SetOpeningBatsmen(1, 2), SetOpeningBatsmen(3, 4), SetBowler(11),
        AddRun(1),
    )
    assert [t.player_id for t in before.innings.first.batters] == [1, 2, 3, 4]

    after = reduce(before, AddRun(2))
    assert reduce(after, Undo()) == before


def test_undo_without_batter_count_drops_unused_batters():
    state = play(initial_match_state(), SetOpeningBatsmen(1, 2), SetBowler(11), AddWicket())
    state = reduce(state, NextBatsman(3))
    legacy = state._replace(ball_history=tuple(
        event._replace(batter_count=None) for event in state.ball_history
    ))

    back = undo(legacy)
    assert [t.player_id for t in back.innings.first.batters] == [1, 2]


def test_invert_event_agrees_with_replay():
    state = play(initial_match_state(), *ONE_OF_EACH[:6])
    for action in ONE_OF_EACH:
        after = reduce(state, action)
        event = after.ball_history[-1]
        inverted = invert_event(after.innings.first, event)
        assert inverted.runs == state.innings.first.runs
        assert inverted.balls == state.innings.first.balls
        assert inverted.wickets == state.innings.first.wickets
        assert inverted.extras == state.innings.first.extras


def test_replay_matches_incremental_state():
    state = play(
        initial_match_state(),
        SetOpeningBatsmen(1, 2), SetBowler(11),
        *ONE_OF_EACH,
    )
    replayed = replay_innings(state.ball_history, state.innings.first)
    assert replayed._replace(striker_id=state.innings.first.striker_id,
                             non_striker_id=state.innings.first.non_striker_id) == state.innings.first


# =============================================================================
# Bounds Under Random Play
# =============================================================================

RANDOM_ACTIONS = ONE_OF_EACH + [Undo(), Undo(), Undo(), EndInnings()]


@pytest.mark.parametrize("seed", range(20))
def test_random_sequences_stay_in_bounds(seed):
    rng = random.Random(seed)
    state = initial_match_state(5)

    for _ in range(200):
        state = reduce(state, rng.choice(RANDOM_ACTIONS))

        for innings in state.innings:
            assert 0 <= innings.wickets <= MAX_WICKETS
            assert innings.runs >= 0
            assert innings.balls >= 0
            assert all(value >= 0 for value in innings.extras)

        if state.target is not None:
            assert state.target == state.innings.first.runs + 1


@pytest.mark.parametrize("seed", range(5))
def test_random_sequences_replay_equivalent(seed):
    rng = random.Random(seed)
    state = play(initial_match_state(10), SetOpeningBatsmen(1, 2), SetBowler(11))

    for _ in range(60):
        state = reduce(state, rng.choice(ONE_OF_EACH + [Undo(), NextBatsman(rng.randint(3, 40))]))

    first = state.innings.first
    replayed = replay_innings(state.ball_history, first)
    assert (replayed.runs, replayed.balls, replayed.wickets, replayed.extras) == \
        (first.runs, first.balls, first.wickets, first.extras)


# =============================================================================
# Lifecycle
# =============================================================================

def test_target_fixed_through_chase():
    state = play(initial_match_state(), AddRun(4), AddRun(2), EndInnings())
    assert state.target == 7

    state = play(state, AddRun(1), AddWide(), AddNoBall(2), AddBye(1))
    assert state.target == 7
    assert state.target == state.innings.first.runs + 1


def test_end_innings_only_from_first_innings():
    state = chase(100)
    assert reduce(state, EndInnings()) is state


def test_end_innings_ignored_before_first_ball():
    state = play(initial_match_state(), SetOpeningBatsmen(1, 2), SetBowler(11))
    assert reduce(state, EndInnings()) is state
    assert reduce(initial_match_state(), EndInnings()).current_inning == 1


def test_scoring_ignored_after_match_over():
    state = play(chase(0), AddRun(1))
    assert state.is_match_over

    for action in ONE_OF_EACH + [EndInnings(), SetBowler(5), RainInterruption(2)]:
        assert reduce(state, action) is state


def test_new_match_and_load_allowed_after_match_over():
    state = play(chase(0), AddRun(1))
    assert reduce(state, NewMatch(10)) == initial_match_state(10)

    loaded = initial_match_state(7)
    assert reduce(state, LoadState(loaded)) is loaded


def test_new_match_defaults_to_twenty_overs():
    assert reduce(initial_match_state(5), NewMatch()).total_overs == 20


def test_chase_all_out_short_of_target_wins_for_bowling_side():
    state = play(chase(50), AddRun(4), *([AddWicket(0)] * 10))
    assert state.is_match_over
    assert state.winner == 'bowling'


def test_chase_one_short_at_end_of_overs_is_tie():
    state = play(chase(4, total_overs=1), AddRun(4), *([AddRun(0)] * 5))
    assert state.is_match_over
    assert state.winner is None


def test_completed_first_innings_rejects_more_balls():
    state = play(initial_match_state(1), *([AddRun(1)] * 6))
    assert state.innings.first.balls == 6
    assert reduce(state, AddRun(4)) is state
    assert reduce(state, AddWide()) is state


def test_set_total_overs_can_end_chase():
    state = play(chase(100, total_overs=20), *([AddRun(1)] * 12))
    state = reduce(state, SetTotalOvers(2))
    assert state.is_match_over
    assert state.winner == 'bowling'


# =============================================================================
# Players, Strike and Overs
# =============================================================================

def test_batter_and_bowler_tallies():
    state = play(
        initial_match_state(),
        SetOpeningBatsmen(1, 2), SetBowler(11),
        AddRun(1), AddRun(4), AddWicket(0, 'caught', 7), NextBatsman(3),
    )
    first = state.innings.first

    opener = find_batter(first, 1)
    assert (opener.runs, opener.balls) == (1, 1)

    dismissed = find_batter(first, 2)
    assert (dismissed.runs, dismissed.balls, dismissed.fours) == (4, 2, 1)
    assert dismissed.is_out
    assert dismissed.dismissal == 'caught'
    assert dismissed.bowler_id == 11
    assert dismissed.fielder_id == 7

    assert find_batter(first, 3).batting_position == 3
    assert first.striker_id == 3

    bowler = find_bowler(first, 11)
    assert (bowler.balls, bowler.runs, bowler.wickets) == (3, 5, 1)


def test_run_out_not_credited_to_bowler():
    state = play(initial_match_state(), SetOpeningBatsmen(1, 2), SetBowler(11),
                 AddWicket(1, 'run_out'))
    assert find_bowler(state.innings.first, 11).wickets == 0
    assert find_batter(state.innings.first, 1).bowler_id is None


def test_wide_wicket_defaults_to_stumped():
    state = play(initial_match_state(), SetOpeningBatsmen(1, 2), SetBowler(11), AddWideWicket())
    first = state.innings.first
    assert (first.runs, first.balls, first.wickets, first.extras.wides) == (1, 0, 1, 1)
    assert find_batter(first, 1).dismissal == 'stumped'
    assert find_bowler(first, 11).wickets == 1
    assert first.striker_id is None


def test_noball_bat_runs_and_strike():
    state = play(initial_match_state(), SetOpeningBatsmen(1, 2), SetBowler(11), AddNoBall(1))
    first = state.innings.first
    assert find_batter(first, 1).runs == 1
    assert find_batter(first, 1).balls == 0
    assert find_bowler(first, 11).runs == 2
    assert find_bowler(first, 11).noballs == 1
    assert first.striker_id == 2


def test_byes_rotate_strike_but_not_charged_to_bowler():
    state = play(initial_match_state(), SetOpeningBatsmen(1, 2), SetBowler(11), AddBye(1))
    first = state.innings.first
    assert first.striker_id == 2
    assert find_bowler(first, 11).runs == 0
    assert find_batter(first, 1).balls == 1


def test_end_of_over_swaps_ends_and_credits_maiden():
    state = play(
        initial_match_state(),
        SetOpeningBatsmen(1, 2), SetBowler(11),
        AddRun(0), AddRun(0), AddBye(2), AddRun(0), AddRun(0), AddRun(0),
    )
    first = state.innings.first
    assert first.striker_id == 2
    assert first.non_striker_id == 1
    assert first.current_over_balls == 0
    assert find_bowler(first, 11).maidens == 1


def test_wide_spoils_maiden():
    state = play(
        initial_match_state(),
        SetOpeningBatsmen(1, 2), SetBowler(11),
        AddWide(), *([AddRun(0)] * 6),
    )
    assert find_bowler(state.innings.first, 11).maidens == 0


def test_next_batsman_ignored_when_no_end_vacant():
    state = play(initial_match_state(), SetOpeningBatsmen(1, 2))
    assert reduce(state, NextBatsman(3)) is state


def test_rotate_strike_swaps_ends():
    state = play(initial_match_state(), SetOpeningBatsmen(1, 2), RotateStrike())
    assert state.innings.first.striker_id == 2
    assert state.innings.first.non_striker_id == 1
    assert state.ball_history == ()


def test_scoring_without_players():
    state = play(initial_match_state(), AddRun(2), AddWicket(0))
    assert state.innings.first.batters == ()
    assert state.innings.first.wickets == 1


# =============================================================================
# Rain Revision
# =============================================================================

def test_rain_before_chase_uses_resource_ratio():
    state = reduce(chase(180), RainInterruption(5))
    assert state.total_overs == 15
    assert state.target == 151


def test_rain_during_chase_uses_mid_innings_revision():
    state = play(chase(180), RainInterruption(5), AddRun(4), RainInterruption(5))
    assert state.total_overs == 10
    assert state.target == 61


def test_rain_in_first_innings_only_shortens_match():
    state = reduce(initial_match_state(20), RainInterruption(4))
    assert state.total_overs == 16
    assert state.target is None


def test_rain_that_leaves_no_overs_is_ignored():
    state = chase(100, total_overs=5)
    assert reduce(state, RainInterruption(5)) is state
    assert reduce(state, RainInterruption(0)) is state


def test_revise_target_in_chase():
    state = reduce(chase(120), ReviseTarget(98, 15))
    assert state.target == 98
    assert state.total_overs == 15

    assert reduce(initial_match_state(), ReviseTarget(50)) == initial_match_state()


def test_apply_event_tags_inning():
    state = chase(10)
    event = new_ball_event('run', 2, 2)
    state = apply_event(state, event)
    assert state.innings.second.runs == 2
    assert state.ball_history[-1] is event
