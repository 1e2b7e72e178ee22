"""
Round robin schedule generation (circle method).
"""
import logging
from itertools import combinations
from typing import Dict, List, Optional, Sequence

from .bracket import MatchGraph
from .models import BracketSegment, Match, Team
from .seeding import check_teams, sort_by_seed

logger = logging.getLogger(__name__)


def calculate_round_robin_stats(num_teams: int) -> Dict:
    participants = num_teams + (num_teams % 2)
    return {
        'teams': num_teams,
        'rounds': max(participants - 1, 0),
        'matches_per_round': num_teams // 2,
        'byes_per_round': num_teams % 2,
        'matches_per_team': max(num_teams - 1, 0),
        'total_matches': num_teams * (num_teams - 1) // 2,
    }


def build_round_robin(graph: MatchGraph, teams: Sequence[Team], group_id: Optional[int] = None,
                      round_offset: int = 0, start_game_number: int = 1) -> int:
    """
    Add every pairing of ``teams`` to ``graph``; return the next game number.

    The top seed stays fixed while the others rotate one place per round.
    An odd field gets a phantom participant; whoever meets it sits out.
    """
    participants: List[Optional[Team]] = list(sort_by_seed(teams))
    if len(participants) % 2:
        participants.append(None)
    n = len(participants)
    fixed, rotating = participants[0], participants[1:]
    game_number = start_game_number

    for round_index in range(n - 1):
        current = [fixed] + rotating
        for i in range(n // 2):
            home, away = current[i], current[n - 1 - i]
            if home is None or away is None:
                continue
            graph.new_match(round_offset + round_index + 1, game_number, BracketSegment.GROUP,
                            home.team_id, away.team_id, group_id=group_id)
            game_number += 1
        rotating = [rotating[-1]] + rotating[:-1]
    return game_number


def generate_round_robin(teams: Sequence[Team], start_match_id: int = 1) -> List[Match]:
    """Every team meets every other team exactly once."""
    check_teams(teams, 4, "Round robin")
    graph = MatchGraph(start_match_id=start_match_id)
    build_round_robin(graph, teams)
    logger.info("Generated round robin: %d teams, %d matches in %d rounds",
                len(teams), len(graph), len(graph.round_numbers()))
    return graph.matches()


def validate_round_robin(matches: Sequence[Match], teams: Sequence[Team]) -> List[str]:
    """
    Check that a round robin schedule is complete and clash-free.
    Returns a list of problems (empty when valid).
    """
    errors = []
    seen = {}
    per_round = {}
    for match in matches:
        key = frozenset((match.team1_id, match.team2_id))
        if key in seen:
            errors.append(f"{match.team1_id} vs {match.team2_id} scheduled twice "
                          f"(matches {seen[key]} and {match.match_id})")
        seen[key] = match.match_id
        in_round = per_round.setdefault((match.group_id, match.round_number), set())
        for team_id in (match.team1_id, match.team2_id):
            if team_id in in_round:
                errors.append(f"Team {team_id} plays twice in round {match.round_number}")
            in_round.add(team_id)

    for team1, team2 in combinations(teams, 2):
        if frozenset((team1.team_id, team2.team_id)) not in seen:
            errors.append(f"{team1.team_id} vs {team2.team_id} is missing")
    return errors
