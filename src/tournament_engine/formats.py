"""
Format dispatch and display helpers shared by every bracket type.
"""
from typing import Dict, List, Optional, Sequence, Union

from .double_elimination import (
    calculate_double_elimination_stats,
    generate_double_elimination,
    get_losers_round_name,
    get_winners_round_name,
)
from .elimination import calculate_bracket_stats, generate_single_elimination, get_round_name
from .errors import InvalidInput
from .group_stage import calculate_group_stage_stats, generate_group_stage
from .models import BracketSegment, Match, Team, TournamentFormat
from .round_robin import calculate_round_robin_stats, generate_round_robin


def parse_format(tournament_format: Union[TournamentFormat, str]) -> TournamentFormat:
    if isinstance(tournament_format, TournamentFormat):
        return tournament_format
    try:
        return TournamentFormat(str(tournament_format).strip().lower().replace('-', '_'))
    except ValueError:
        valid = ", ".join(f.value for f in TournamentFormat)
        raise InvalidInput(f"Unknown format '{tournament_format}' (expected one of: {valid})") from None


def generate_bracket(tournament_format: Union[TournamentFormat, str], teams: Sequence[Team],
                     options: Optional[Dict] = None) -> List[Match]:
    """
    Generate the initial match set for a format.

    Options: ``start_match_id`` for every format, ``number_of_groups`` for
    group stage.
    """
    fmt = parse_format(tournament_format)
    options = dict(options or {})
    start_match_id = options.pop('start_match_id', 1)
    number_of_groups = options.pop('number_of_groups', None)
    options.pop('advancing_per_group', None)
    if options:
        raise InvalidInput(f"Unknown bracket option(s): {', '.join(sorted(options))}")

    if fmt is TournamentFormat.SINGLE_ELIMINATION:
        return generate_single_elimination(teams, start_match_id=start_match_id)
    elif fmt is TournamentFormat.DOUBLE_ELIMINATION:
        return generate_double_elimination(teams, start_match_id=start_match_id)
    elif fmt is TournamentFormat.ROUND_ROBIN:
        return generate_round_robin(teams, start_match_id=start_match_id)
    else:
        return generate_group_stage(teams, number_of_groups, start_match_id=start_match_id)


def calculate_format_stats(tournament_format: Union[TournamentFormat, str], num_teams: int) -> Dict:
    fmt = parse_format(tournament_format)
    if num_teams < 4:
        raise InvalidInput(f"At least 4 teams are required, got {num_teams}")
    if fmt is TournamentFormat.SINGLE_ELIMINATION:
        return calculate_bracket_stats(num_teams)
    elif fmt is TournamentFormat.DOUBLE_ELIMINATION:
        return calculate_double_elimination_stats(num_teams)
    elif fmt is TournamentFormat.ROUND_ROBIN:
        return calculate_round_robin_stats(num_teams)
    else:
        return calculate_group_stage_stats(num_teams)


def round_label(match: Match, matches: Sequence[Match]) -> str:
    """Human readable round name for ``match`` within its bracket."""
    is_double = any(m.segment is BracketSegment.LOSERS for m in matches)
    if match.segment is BracketSegment.GROUP:
        if match.group_id is None:
            return f"Round {match.round_number}"
        return f"Group {match.group_id} Round {match.round_number}"
    if match.segment is BracketSegment.LOSERS:
        total = max(m.round_number for m in matches if m.segment is BracketSegment.LOSERS)
        return get_losers_round_name(match.round_number, total)
    if match.segment is BracketSegment.FINALS and is_double:
        return "Grand Final Reset" if match.is_bracket_reset else "Grand Final"

    same_round = [m for m in matches
                  if m.round_number == match.round_number and m.segment is match.segment]
    teams_in_round = 2 * len(same_round)
    if is_double:
        return get_winners_round_name(teams_in_round, teams_in_round)
    return get_round_name(teams_in_round, teams_in_round)
