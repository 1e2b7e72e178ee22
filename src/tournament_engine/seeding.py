"""
Seed ordering shared by every bracket generator.
"""
import math
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InvalidInput
from .models import Team


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (0 for n <= 0)."""
    if n <= 0:
        return 0
    return 2 ** math.ceil(math.log2(n))


def sort_by_seed(teams: Sequence[Team]) -> List[Team]:
    return sorted(teams, key=lambda t: t.seed_number)


def check_teams(teams: Sequence[Team], minimum: int = 4, label: str = "Bracket"):
    """Reject rosters that no generator can work with."""
    if len(teams) < minimum:
        raise InvalidInput(f"{label} requires at least {minimum} teams, got {len(teams)}")
    ids = [t.team_id for t in teams]
    if len(set(ids)) != len(ids):
        raise InvalidInput("Team ids must be unique")
    seeds = [t.seed_number for t in teams]
    if len(set(seeds)) != len(seeds):
        raise InvalidInput("Seed numbers must be unique")


def seed_order(bracket_size: int) -> List[int]:
    """
    Index sequence used to pair seeds: 0, size-1, 1, size-2, ...

    Consecutive entries form a first-round pairing, so for 8 slots the
    matchups are 1v8, 2v7, 3v6, 4v5.
    """
    order = []
    for i in range(bracket_size // 2):
        order.append(i)
        order.append(bracket_size - 1 - i)
    return order


def pairings(teams: Sequence[Team], bracket_size: Optional[int] = None) -> List[Tuple[Optional[Team], Optional[Team]]]:
    """
    First-round pairings for an elimination bracket.

    Slots beyond the number of teams are ``None`` (byes). Identical seed
    order always yields identical pairings.
    """
    ordered = sort_by_seed(teams)
    size = bracket_size or next_power_of_two(len(ordered))
    if size < len(ordered):
        raise InvalidInput(f"Bracket size {size} is smaller than {len(ordered)} teams")
    order = seed_order(size)
    result = []
    for i in range(0, len(order), 2):
        idx1, idx2 = order[i], order[i + 1]
        team1 = ordered[idx1] if idx1 < len(ordered) else None
        team2 = ordered[idx2] if idx2 < len(ordered) else None
        result.append((team1, team2))
    return result


def teams_with_byes(teams: Sequence[Team]) -> List[Team]:
    """Top seeds receive the byes."""
    byes = next_power_of_two(len(teams)) - len(teams)
    return sort_by_seed(teams)[:byes]


def snake_positions(count: int, number_of_groups: int) -> List[int]:
    """Group id (1-based) for each of ``count`` seeds, reversing direction at each end."""
    if number_of_groups < 1:
        raise InvalidInput("Need at least one group")
    positions = []
    current, direction = 1, 1
    for _ in range(count):
        positions.append(current)
        current += direction
        if current > number_of_groups:
            current, direction = number_of_groups, -1
        elif current < 1:
            current, direction = 1, 1
    return positions


def snake_draft(teams: Sequence[Team], number_of_groups: int) -> Dict[int, List[Team]]:
    """
    Distribute seeds over groups in snake order.

    With 4 groups: group 1 gets seeds 1, 8, 9, 16; group 2 gets 2, 7, 10, 15.
    """
    positions = snake_positions(len(teams), number_of_groups)
    groups = {group_id: [] for group_id in range(1, number_of_groups + 1)}
    for team, group_id in zip(sort_by_seed(teams), positions):
        groups[group_id].append(team)
    return groups
