#!/usr/bin/env python3
"""
Command-line scorer - record balls against the stored match and print the
scoreboard.

Usage:
    cricket-score show
    cricket-score run 4
    cricket-score wicket --dismissal caught
    cricket-score noball 2 --run-out
    cricket-score undo
    cricket-score new --overs 10
    cricket-score dls --team1-runs 180 --team1-overs 20 --overs-lost 5
"""

import argparse
import json
import logging
import math
from typing import Optional, Sequence

from scoring import reducer
from scoring.ball_events import DISMISSAL_TYPES, ball_label
from scoring.dls import calculate_dls_target, minimum_overs
from scoring.rates import format_overs_for_display, format_rate
from scoring.session import MatchStore, ScoringSession
from storage import config
from storage.database import SqliteMatchStore

RECENT_BALLS = 12   # balls shown in the "recent" strip


def positive_int(value: str) -> int:
    """argparse type for overs counts."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='cricket-score',
        description='Score a cricket match ball by ball',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Boundary, then a wide, then take the wide back
  cricket-score run 4
  cricket-score wide
  cricket-score undo

  # No-ball hit for two, batter run out
  cricket-score noball 2 --run-out

  # Close the first innings and start the chase
  cricket-score end-innings
        """
    )
    parser.add_argument('--json', action='store_true',
                        help='Output as JSON')

    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('show', help='Print the scoreboard')

    run = commands.add_parser('run', help='Runs off the bat')
    run.add_argument('runs', type=int, choices=range(0, 7))

    wicket = commands.add_parser('wicket', help='Wicket, with runs completed before it')
    wicket.add_argument('runs', type=int, nargs='?', default=0, choices=range(0, 7))
    wicket.add_argument('--dismissal', choices=DISMISSAL_TYPES, default=None)
    wicket.add_argument('--fielder', type=int, default=None,
                        help='Fielder player id')

    wide = commands.add_parser('wide', help='Wide (1 run, ball not counted)')
    wide.add_argument('--stumped', action='store_true',
                      help='Batter stumped off the wide')

    noball = commands.add_parser('noball', help='No-ball plus runs off the bat')
    noball.add_argument('runs', type=int, nargs='?', default=0, choices=range(0, 7))
    noball.add_argument('--run-out', action='store_true',
                        help='Run-out on the no-ball (ball counts)')

    bye = commands.add_parser('bye', help='Byes')
    bye.add_argument('runs', type=int, choices=range(0, 7))

    legbye = commands.add_parser('legbye', help='Leg byes')
    legbye.add_argument('runs', type=int, choices=range(0, 7))

    commands.add_parser('undo', help='Remove the last ball')
    commands.add_parser('end-innings', help='Close the first innings and set the target')

    new = commands.add_parser('new', help='Start a new match')
    new.add_argument('--overs', type=positive_int, default=None,
                     help=f'Overs per side (default: {config.DEFAULT_OVERS})')

    rain = commands.add_parser('rain', help='Overs lost to rain in the current match')
    rain.add_argument('overs_lost', type=positive_int)

    dls = commands.add_parser('dls', help='Standalone revised-target calculation')
    dls.add_argument('--team1-runs', type=int, required=True)
    dls.add_argument('--team1-overs', type=float, required=True)
    dls.add_argument('--all-out', action='store_true',
                     help='Team 1 was bowled out')
    dls.add_argument('--team2-overs', type=float, default=None,
                     help='Overs originally allocated to team 2 (default: team 1 overs)')
    dls.add_argument('--overs-lost', type=float, required=True)
    dls.add_argument('--format', dest='match_format', default='custom',
                     choices=['t20', 'odi', 'custom'])

    return parser


def to_action(args: argparse.Namespace):
    """Map a parsed scoring command to a reducer action."""
    if args.command == 'run':
        return reducer.AddRun(args.runs)
    if args.command == 'wicket':
        return reducer.AddWicket(args.runs, args.dismissal, args.fielder)
    if args.command == 'wide':
        return reducer.AddWideWicket('stumped') if args.stumped else reducer.AddWide()
    if args.command == 'noball':
        return reducer.AddNoBall(args.runs, args.run_out)
    if args.command == 'bye':
        return reducer.AddBye(args.runs)
    if args.command == 'legbye':
        return reducer.AddLegBye(args.runs)
    if args.command == 'undo':
        return reducer.Undo()
    if args.command == 'end-innings':
        return reducer.EndInnings()
    if args.command == 'new':
        return reducer.NewMatch(args.overs)
    if args.command == 'rain':
        return reducer.RainInterruption(args.overs_lost)
    return None


def print_scoreboard(session: ScoringSession) -> None:
    board = session.scoreboard()
    state = session.state

    print("\n" + "=" * 40)
    print(f"INNINGS {board['inning']}  {board['score']}  ({board['overs']} ov)")
    print("=" * 40)
    print(f"  CRR:        {format_rate(board['current_run_rate'])}")
    print(f"  Extras:     {board['extras']}")
    if board['target'] is not None:
        print(f"  Target:     {board['target']}")
        print(f"  Need:       {board['runs_required']} off {board['balls_remaining']}")
        print(f"  RRR:        {format_rate(board['required_run_rate'])}")
    if state.current_inning == 2:
        first = state.innings.first
        print(f"  1st inns:   {first.runs}/{first.wickets}")

    recent = [ball_label(e) for e in state.ball_history if e.inning == state.current_inning]
    if recent:
        print(f"  Recent:     {' '.join(recent[-RECENT_BALLS:])}")

    if board['is_match_over']:
        outcome = {'batting': 'batting side wins', 'bowling': 'bowling side wins'}
        print(f"\n  → Match over: {outcome.get(board['winner'], 'match tied')}")
    elif board['is_innings_complete'] and board['inning'] == 1:
        print("\n  → Innings complete, run end-innings to start the chase")
    print("=" * 40 + "\n")


def print_dls(args: argparse.Namespace) -> None:
    team2_overs = args.team2_overs if args.team2_overs is not None else args.team1_overs
    result = calculate_dls_target(
        args.team1_runs, args.team1_overs, args.all_out, team2_overs, args.overs_lost,
    )
    revised_overs = max(0, team2_overs - args.overs_lost)
    minimum = minimum_overs(args.match_format)

    if args.json:
        print(json.dumps({
            **result._asdict(),
            'revised_overs': revised_overs,
            'minimum_overs': minimum,
            'is_valid_result': revised_overs >= minimum,
        }, indent=2))
        return

    print(f"\nTeam 1:       {args.team1_runs} "
          f"{'(all out)' if args.all_out else 'in ' + format_overs_for_display(args.team1_overs)}")
    print(f"Team 2 gets:  {format_overs_for_display(revised_overs)}")
    print(f"Resources:    {result.resources_team1}% vs {result.resources_team2}%")
    print(f"Par score:    {result.par_score}")
    print(f"Target:       {result.target}")
    if revised_overs < minimum:
        print(f"  → Below the {minimum}-over minimum, no result possible")
    print()


def main(argv: Optional[Sequence[str]] = None, store: Optional[MatchStore] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    if args.command == 'dls':
        print_dls(args)
        return 0

    if store is None:
        config.validate_config()
        store = SqliteMatchStore(config.DB_PATH, config.MATCH_KEY, config.STORAGE_DISABLED)
    session = ScoringSession(store, config.DEFAULT_OVERS)

    action = to_action(args)
    if action is not None:
        session.dispatch(action)

    if args.json:
        board = dict(session.scoreboard())
        rrr = board['required_run_rate']
        if rrr is not None and not math.isfinite(rrr):
            board['required_run_rate'] = None
        print(json.dumps(board, indent=2))
    else:
        print_scoreboard(session)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
