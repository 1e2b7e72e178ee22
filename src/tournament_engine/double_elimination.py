"""
Double elimination bracket generation.

In double elimination:
- Teams must lose twice to be eliminated
- Winners Bracket: Teams that haven't lost yet
- Losers Bracket: Teams that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: If losers bracket winner wins Grand Final, a final match decides the champion
"""
import logging
import math
from typing import Dict, List, Sequence

from .bracket import MatchGraph
from .elimination import build_elimination_rounds, calculate_bracket_size, calculate_byes
from .models import BracketSegment, Match, Team
from .seeding import check_teams

logger = logging.getLogger(__name__)


def get_losers_round_name(round_number: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (1-indexed)."""
    rounds_from_end = total_losers_rounds - round_number
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_number}"


def get_winners_round_name(teams_in_round: int, bracket_size: int) -> str:
    """Get the name for a winners bracket round."""
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N teams in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds

    Pattern: minor, major, minor, major, ... ending with a major round
    """
    if bracket_size < 2:
        return 0
    winners_rounds = int(math.log2(bracket_size))
    return 2 * (winners_rounds - 1)


def calculate_double_elimination_stats(num_teams: int) -> Dict:
    bracket_size = calculate_bracket_size(num_teams)
    return {
        'teams': num_teams,
        'bracket_size': bracket_size,
        'byes': calculate_byes(num_teams),
        'winners_rounds': int(math.log2(bracket_size)) if bracket_size else 0,
        'losers_rounds': calculate_losers_bracket_rounds(bracket_size),
        'winners_matches': max(bracket_size - 1, 0),
        'losers_matches': max(bracket_size - 2, 0),
        'grand_final_matches': 2,
        'total_matches': max(2 * bracket_size - 1, 0),
    }


def _build_losers_bracket(graph: MatchGraph, winners_rounds: List[List[int]], start_game_number: int) -> int:
    """
    Wire the losers bracket onto an existing winners bracket.

    Round 1 pairs the losers of winners-round-1 matches 2i and 2i+1. Each
    later winners round k feeds a dropdown round whose placement is
    reversed when k is even, then a progression round halves the field.
    Returns the losers final id.
    """
    game_number = start_game_number
    total_winners_rounds = len(winners_rounds)
    losers_round = 1

    current = []
    first = winners_rounds[0]
    for i in range(len(first) // 2):
        match = graph.new_match(losers_round, game_number, BracketSegment.LOSERS)
        graph.link_loser(first[2 * i], match.match_id)
        graph.link_loser(first[2 * i + 1], match.match_id)
        current.append(match.match_id)
        game_number += 1

    for k in range(2, total_winners_rounds + 1):
        # Dropdown round: survivors meet the losers of winners round k
        losers_round += 1
        dropping = winners_rounds[k - 1]
        if k % 2 == 0:
            dropping = list(reversed(dropping))
        dropdown = []
        for i, survivor_match_id in enumerate(current):
            match = graph.new_match(losers_round, game_number, BracketSegment.LOSERS)
            graph.link(survivor_match_id, match.match_id)
            graph.link_loser(dropping[i], match.match_id)
            dropdown.append(match.match_id)
            game_number += 1
        current = dropdown

        if k == total_winners_rounds:
            break

        losers_round += 1
        progression = []
        for i in range(len(current) // 2):
            match = graph.new_match(losers_round, game_number, BracketSegment.LOSERS)
            graph.link(current[2 * i], match.match_id)
            graph.link(current[2 * i + 1], match.match_id)
            progression.append(match.match_id)
            game_number += 1
        current = progression

    return current[0]


def generate_double_elimination(teams: Sequence[Team], start_match_id: int = 1) -> List[Match]:
    """
    Generate a double elimination bracket.

    The winners final keeps the WINNERS segment; the grand final and the
    bracket reset are FINALS rounds 1 and 2. The reset is always present
    and only becomes playable if the losers bracket champion wins match 1.
    """
    check_teams(teams, 4, "Double elimination")
    graph = MatchGraph(start_match_id=start_match_id)
    winners_rounds = build_elimination_rounds(graph, teams, BracketSegment.WINNERS)
    winners_final_id = winners_rounds[-1][0]

    losers_final_id = _build_losers_bracket(graph, winners_rounds, len(graph) + 1)

    grand_final = graph.new_match(1, len(graph) + 1, BracketSegment.FINALS)
    graph.link(winners_final_id, grand_final.match_id)
    graph.link(losers_final_id, grand_final.match_id)

    reset = graph.new_match(2, len(graph) + 1, BracketSegment.FINALS)
    reset.is_bracket_reset = True
    reset.parent_match_ids.append(grand_final.match_id)

    byes = graph.auto_advance_byes()
    logger.info("Generated double elimination bracket: %d teams, %d matches, %d byes",
                len(teams), len(graph), len(byes))
    return graph.matches()
