"""
Command line front end.

    tournament-engine generate --teams teams.yaml --format single_elimination \
        --config schedule.yaml --output schedule_out.yaml
    tournament-engine stats --format double_elimination --teams 12
"""
import argparse
import logging
import sys
from typing import Dict, List, Optional, Sequence

import yaml
from filelock import FileLock

from .allocation import SEGMENT_PRIORITY, TimeScheduler
from .config import load_schedule_config, load_teams
from .errors import SchedulingInfeasible, TournamentError
from .formats import calculate_format_stats, generate_bracket, parse_format, round_label
from .models import BYE, Match, TournamentFormat
from .progression import ProgressionEngine

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID_INPUT = 1
EXIT_INFEASIBLE = 2


def _slot_name(value, names: Dict) -> str:
    if value is None:
        return "TBD"
    if value is BYE:
        return "BYE"
    return names.get(value, str(value))


def match_to_dict(match: Match, matches: Sequence[Match], names: Dict) -> Dict:
    return {
        'match_id': match.match_id,
        'round': round_label(match, matches),
        'round_number': match.round_number,
        'game_number': match.game_number,
        'segment': match.segment.value,
        'group': match.group_id,
        'team1': _slot_name(match.team1_id, names),
        'team2': _slot_name(match.team2_id, names),
        'status': match.status.value,
        'court': match.court_number,
        'start_time': match.scheduled_time.strftime('%Y-%m-%d %H:%M') if match.scheduled_time else None,
        'winner': _slot_name(match.winner_team_id, names) if match.winner_team_id is not None else None,
    }


def print_bracket(matches: List[Match], names: Dict):
    current = None
    for match in sorted(matches, key=lambda m: (SEGMENT_PRIORITY[m.segment], m.round_number, m.game_number)):
        label = round_label(match, matches)
        if label != current:
            print(f"\n# {label}")
            current = label
        line = f"  M{match.match_id}: {_slot_name(match.team1_id, names)} vs {_slot_name(match.team2_id, names)}"
        if match.has_bye and match.is_completed:
            line += f"  (bye, {_slot_name(match.winner_team_id, names)} advances)"
        print(line)


def print_schedule(scheduler: TimeScheduler, matches: List[Match], names: Dict):
    by_id = {m.match_id: m for m in matches}
    output = scheduler.get_schedule_output(by_id)
    if not output:
        print("No matches scheduled.")
        return
    for day_number, day in enumerate(output, start=1):
        print(f"\n# Day {day_number} ({day['date']})")
        for court in day['courts']:
            print(f"Court {court['court_number']}:")
            for entry in court['matches']:
                match = by_id[entry['match_id']]
                team1, team2 = (_slot_name(t, names) for t in entry['teams'])
                print(f"  {entry['start_time']} - {entry['end_time']}: {team1} vs {team2}"
                      f"  [{round_label(match, matches)}]")


def write_export(path: str, tournament_format: TournamentFormat, matches: List[Match], names: Dict):
    data = {
        'format': tournament_format.value,
        'matches': [match_to_dict(m, matches, names) for m in matches],
    }
    lock = FileLock(path + '.lock', timeout=10)
    with lock:
        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    logger.info("Wrote %d matches to %s", len(matches), path)


def cmd_generate(args) -> int:
    fmt = parse_format(args.format)
    teams = load_teams(args.teams)
    names = {t.team_id: t.name for t in teams}
    options = {'number_of_groups': args.groups} if args.groups else None
    matches = generate_bracket(fmt, teams, options)

    scheduler = None
    if args.config:
        scheduler = TimeScheduler(load_schedule_config(args.config))
    engine = ProgressionEngine(matches, teams, fmt, scheduler, number_of_groups=args.groups)

    print(f"{fmt.value}: {len(teams)} teams, {len(engine.matches)} matches")
    if scheduler is not None:
        engine.schedule_ready_matches()
        print_schedule(scheduler, engine.matches, names)
        estimate = scheduler.estimate_tournament_duration(
            sum(1 for m in engine.matches if not m.has_bye))
        if estimate['warning']:
            print(f"WARNING: {estimate['warning']}")
    else:
        print_bracket(engine.matches, names)

    if args.output:
        write_export(args.output, fmt, engine.matches, names)
        print(f"\nSaved to {args.output}")
    return EXIT_OK


def cmd_stats(args) -> int:
    stats = calculate_format_stats(args.format, args.teams)
    for key, value in stats.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        print(f"{key}: {value}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tournament-engine',
        description='Generate, schedule and size tournament brackets'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    formats = [f.value for f in TournamentFormat]

    generate = subparsers.add_parser('generate', help='Generate a bracket and schedule its opening matches')
    generate.add_argument('--teams', required=True, help='YAML file with the team list (seed order)')
    generate.add_argument('--format', required=True, choices=formats, help='Tournament format')
    generate.add_argument('--config', help='YAML schedule configuration; omit to skip scheduling')
    generate.add_argument('--groups', type=int, help='Number of groups (group_stage only)')
    generate.add_argument('--output', help='Write the bracket as YAML to this path')
    generate.set_defaults(handler=cmd_generate)

    stats = subparsers.add_parser('stats', help='Print bracket size statistics')
    stats.add_argument('--format', required=True, choices=formats, help='Tournament format')
    stats.add_argument('--teams', required=True, type=int, help='Number of teams')
    stats.set_defaults(handler=cmd_stats)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        return args.handler(args)
    except SchedulingInfeasible as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_INFEASIBLE
    except TournamentError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    except (OSError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT


if __name__ == '__main__':
    sys.exit(main())
