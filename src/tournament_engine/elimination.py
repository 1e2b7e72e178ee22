"""
Single elimination bracket generation.
"""
import logging
import math
from typing import Dict, List, Optional, Sequence

from .bracket import MatchGraph
from .models import BYE, BracketSegment, Match, Team
from .seeding import check_teams, next_power_of_two, pairings

logger = logging.getLogger(__name__)


def get_round_name(teams_in_round: int, total_teams: int) -> str:
    """Get the name of a round based on number of teams."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    return next_power_of_two(num_teams)


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_teams) - num_teams


def calculate_bracket_stats(num_teams: int) -> Dict:
    """
    Size a single elimination bracket without generating it.

    ``total_matches`` counts every match node, byes included;
    ``playable_matches`` only the ones two real teams contest.
    """
    bracket_size = calculate_bracket_size(num_teams)
    total_rounds = int(math.log2(bracket_size)) if bracket_size else 0
    round_names = []
    teams_in_round = bracket_size
    for _ in range(total_rounds):
        round_names.append(get_round_name(teams_in_round, bracket_size))
        teams_in_round //= 2
    return {
        'teams': num_teams,
        'bracket_size': bracket_size,
        'byes': calculate_byes(num_teams),
        'total_rounds': total_rounds,
        'total_matches': max(bracket_size - 1, 0),
        'playable_matches': max(num_teams - 1, 0),
        'round_names': round_names,
    }


def _slot(team: Optional[Team]):
    return team.team_id if team is not None else BYE


def build_elimination_rounds(graph: MatchGraph, teams: Sequence[Team], segment: BracketSegment,
                             round_offset: int = 0, start_game_number: int = 1) -> List[List[int]]:
    """
    Add a full elimination tree to ``graph`` and return its match ids per round.

    Match i of round r is fed by matches 2i and 2i+1 of round r-1. First-round
    slots without a team hold BYE; nothing is auto-completed here.
    """
    bracket_size = calculate_bracket_size(len(teams))
    total_rounds = int(math.log2(bracket_size))
    game_number = start_game_number

    first_round = []
    for team1, team2 in pairings(teams, bracket_size):
        match = graph.new_match(round_offset + 1, game_number, segment, _slot(team1), _slot(team2))
        first_round.append(match.match_id)
        game_number += 1
    rounds = [first_round]

    for round_num in range(2, total_rounds + 1):
        previous = rounds[-1]
        current = []
        for i in range(len(previous) // 2):
            match = graph.new_match(round_offset + round_num, game_number, segment)
            graph.link(previous[2 * i], match.match_id)
            graph.link(previous[2 * i + 1], match.match_id)
            current.append(match.match_id)
            game_number += 1
        rounds.append(current)
    return rounds


def build_single_elimination(teams: Sequence[Team], segment: BracketSegment = BracketSegment.WINNERS,
                             start_match_id: int = 1, round_offset: int = 0,
                             start_game_number: int = 1) -> MatchGraph:
    graph = MatchGraph(start_match_id=start_match_id)
    rounds = build_elimination_rounds(graph, teams, segment, round_offset, start_game_number)
    graph.get(rounds[-1][0]).segment = BracketSegment.FINALS
    byes = graph.auto_advance_byes()
    logger.info("Generated single elimination bracket: %d teams, %d matches, %d byes",
                len(teams), len(graph), len(byes))
    return graph


def generate_single_elimination(teams: Sequence[Team], segment: BracketSegment = BracketSegment.WINNERS,
                                start_match_id: int = 1, round_offset: int = 0,
                                start_game_number: int = 1) -> List[Match]:
    """
    Generate a single elimination bracket.

    Byes go to the top seeds and are completed immediately, so their winners
    already sit in round 2. The last round is tagged FINALS.
    """
    check_teams(teams, 4, "Single elimination")
    graph = build_single_elimination(teams, segment, start_match_id, round_offset, start_game_number)
    return graph.matches()
