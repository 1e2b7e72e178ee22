"""
Group stage + knockout generation.

Teams are snake-drafted into groups, each group plays a round robin, and the
top finishers of every group are re-seeded into a single elimination
knockout: all group winners first, then all runners-up, and so on.
"""
import logging
import math
from collections import Counter
from typing import Dict, List, Optional, Sequence

from .bracket import MatchGraph
from .elimination import build_single_elimination, calculate_bracket_size
from .errors import InvalidInput
from .models import BracketSegment, Match, RankedTeam, Team, TeamTournamentStats
from .round_robin import build_round_robin
from .seeding import check_teams, snake_draft, snake_positions
from .standings import rank, stats_from_matches

logger = logging.getLogger(__name__)


def _default_number_of_groups(num_teams: int) -> int:
    if num_teams <= 8:
        return 2
    elif num_teams <= 12:
        return 3
    elif num_teams <= 16:
        return 4
    elif num_teams <= 24:
        return math.ceil(num_teams / 5)
    else:
        return math.ceil(num_teams / 6)


def calculate_group_config(num_teams: int, number_of_groups: Optional[int] = None,
                           advancing_per_group: Optional[int] = None) -> Dict:
    """
    Work out group count, group sizes and how many teams advance per group.

    Sizes follow the snake draft, so they differ by at most one. The default
    advancing count is 2 (3 once groups reach six teams), never more than
    the smallest group.
    """
    groups = number_of_groups or _default_number_of_groups(num_teams)
    if groups < 1:
        raise InvalidInput("Need at least one group")
    counts = Counter(snake_positions(num_teams, groups))
    group_sizes = [counts.get(group_id, 0) for group_id in range(1, groups + 1)]
    if min(group_sizes) < 2:
        raise InvalidInput(f"{num_teams} teams cannot fill {groups} groups of at least 2")

    base_size = num_teams // groups
    advancing = advancing_per_group or (3 if base_size >= 6 else 2)
    advancing = min(advancing, min(group_sizes))
    knockout_teams = advancing * groups
    if knockout_teams < 2:
        raise InvalidInput("Knockout needs at least two qualifiers")
    return {
        'number_of_groups': groups,
        'group_sizes': group_sizes,
        'advancing_per_group': advancing,
        'knockout_teams': knockout_teams,
    }


def calculate_group_stage_stats(num_teams: int) -> Dict:
    config = calculate_group_config(num_teams)
    group_matches = sum(size * (size - 1) // 2 for size in config['group_sizes'])
    knockout_size = calculate_bracket_size(config['knockout_teams'])
    return {
        **config,
        'teams': num_teams,
        'group_matches': group_matches,
        'knockout_bracket_size': knockout_size,
        'knockout_matches': knockout_size - 1,
        'total_matches': group_matches + knockout_size - 1,
    }


def distribute_teams_into_groups(teams: Sequence[Team], number_of_groups: int) -> Dict[int, List[Team]]:
    return snake_draft(teams, number_of_groups)


def generate_group_stage(teams: Sequence[Team], number_of_groups: Optional[int] = None,
                         start_match_id: int = 1) -> List[Match]:
    """Round robin inside every group; ``group_id`` is set on each match."""
    check_teams(teams, 4, "Group stage")
    config = calculate_group_config(len(teams), number_of_groups)
    groups = distribute_teams_into_groups(teams, config['number_of_groups'])

    graph = MatchGraph(start_match_id=start_match_id)
    game_number = 1
    for group_id, members in groups.items():
        game_number = build_round_robin(graph, members, group_id=group_id, start_game_number=game_number)
    logger.info("Generated group stage: %d teams in %d groups, %d matches",
                len(teams), config['number_of_groups'], len(graph))
    return graph.matches()


def _group_matches(matches: Sequence[Match]) -> List[Match]:
    return [m for m in matches if m.segment is BracketSegment.GROUP and m.group_id is not None]


def is_group_stage_complete(matches: Sequence[Match]) -> bool:
    group = _group_matches(matches)
    return bool(group) and all(m.is_completed for m in group)


def group_standings(matches: Sequence[Match], teams: Sequence[Team], group_id: int) -> List[RankedTeam]:
    """Rank one group from its completed matches."""
    in_group = [m for m in _group_matches(matches) if m.group_id == group_id]
    members = {team_id for m in in_group for team_id in m.real_teams()}
    group_teams = [t for t in teams if t.team_id in members]
    stats = stats_from_matches(group_teams, in_group)
    return rank(stats, [m for m in in_group if m.is_completed])


def seed_knockout_teams(matches: Sequence[Match], teams: Sequence[Team], advancing_per_group: int) -> List[Team]:
    """
    Qualifiers with fresh knockout seeds.

    All group winners first, then runners-up, and so on. Teams sharing a
    finishing position are ordered by their group record: wins, point
    differential, points scored, then original seed.
    """
    by_id = {t.team_id: t for t in teams}
    group_ids = sorted({m.group_id for m in _group_matches(matches)})
    tables = {group_id: group_standings(matches, teams, group_id) for group_id in group_ids}

    seeded = []
    for position in range(1, advancing_per_group + 1):
        tier = [
            TeamTournamentStats(team_id=row.team_id, seed_number=row.seed_number, wins=row.wins,
                                losses=row.losses, points_scored=row.points_scored,
                                points_allowed=row.points_allowed)
            for row in (tables[group_id][position - 1] for group_id in group_ids
                        if len(tables[group_id]) >= position)
        ]
        # Qualifiers from different groups never met, so no head-to-head applies
        for entry in rank(tier):
            original = by_id[entry.team_id]
            seeded.append(Team(original.team_id, len(seeded) + 1, original.display_name))
    return seeded


def generate_knockout(matches: Sequence[Match], teams: Sequence[Team], advancing_per_group: int,
                      start_match_id: Optional[int] = None, start_game_number: Optional[int] = None) -> List[Match]:
    """
    Build the KNOCKOUT bracket once every group match is completed.

    Round numbers continue after the last group round and match ids and
    game numbers after the existing ones.
    """
    if not is_group_stage_complete(matches):
        raise InvalidInput("Group stage is not complete")
    qualifiers = seed_knockout_teams(matches, teams, advancing_per_group)
    if len(qualifiers) < 2:
        raise InvalidInput("Knockout needs at least two qualifiers")

    round_offset = max(m.round_number for m in matches)
    if start_match_id is None:
        start_match_id = max(m.match_id for m in matches) + 1
    if start_game_number is None:
        start_game_number = max(m.game_number for m in matches) + 1

    graph = build_single_elimination(qualifiers, BracketSegment.KNOCKOUT, start_match_id,
                                     round_offset, start_game_number)
    logger.info("Generated knockout: %d qualifiers, %d matches", len(qualifiers), len(graph))
    return graph.matches()
