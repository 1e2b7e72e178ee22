"""
Standings and tiebreakers.

One ranking function serves group tables, round robin tables and final
tournament positions:

1. Wins, descending.
2. Two teams level on wins: head-to-head record between them.
3. Otherwise (three or more level, or head-to-head even): point
   differential, then points scored, then the better (lower) seed.
"""
from itertools import groupby
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .models import Match, RankedTeam, Team, TeamId, TeamTournamentStats


def _counts(match: Match) -> bool:
    return match.is_completed and not match.has_bye and match.winner_team_id is not None


def head_to_head(team_a: TeamId, team_b: TeamId, matches: Iterable[Match]) -> Tuple[int, int]:
    """Wins of ``team_a`` and ``team_b`` in completed matches between the two."""
    wins_a = wins_b = 0
    for match in matches:
        if not _counts(match) or not (match.involves(team_a) and match.involves(team_b)):
            continue
        if match.winner_team_id == team_a:
            wins_a += 1
        elif match.winner_team_id == team_b:
            wins_b += 1
    return wins_a, wins_b


def winning_percentage(wins: int, losses: int) -> float:
    played = wins + losses
    return wins / played if played else 0.0


def stats_from_matches(teams: Sequence[Team], matches: Iterable[Match]) -> Dict[TeamId, TeamTournamentStats]:
    """
    Tabulate wins, losses and points for ``teams`` from completed matches.
    Byes are ignored; forfeits count as a win/loss with no points.
    """
    stats = {t.team_id: TeamTournamentStats(team_id=t.team_id, seed_number=t.seed_number) for t in teams}
    for match in matches:
        if not _counts(match):
            continue
        loser = match.loser_team_id
        winner = match.winner_team_id
        if winner in stats:
            stats[winner].wins += 1
        if loser in stats:
            stats[loser].losses += 1
        if match.is_forfeit:
            continue
        for team_id, scored, allowed in ((match.team1_id, match.team1_score, match.team2_score),
                                         (match.team2_id, match.team2_score, match.team1_score)):
            if team_id in stats:
                stats[team_id].points_scored += scored or 0
                stats[team_id].points_allowed += allowed or 0
    return stats


def _cascade_key(entry: TeamTournamentStats):
    return (-entry.point_differential, -entry.points_scored, entry.seed_number)


def rank(stats: Union[Mapping[TeamId, TeamTournamentStats], Iterable[TeamTournamentStats]],
         completed_matches: Iterable[Match] = ()) -> List[RankedTeam]:
    """Order teams by the tiebreaker cascade and number them 1..n."""
    if isinstance(stats, Mapping):
        stats = stats.values()
    completed_matches = list(completed_matches)
    by_wins = sorted(stats, key=lambda s: -s.wins)

    ordered: List[TeamTournamentStats] = []
    for _, tied in groupby(by_wins, key=lambda s: s.wins):
        tied = list(tied)
        if len(tied) == 2:
            first, second = tied
            wins_first, wins_second = head_to_head(first.team_id, second.team_id, completed_matches)
            if wins_first != wins_second:
                ordered.extend([first, second] if wins_first > wins_second else [second, first])
                continue
        ordered.extend(sorted(tied, key=_cascade_key))

    return [
        RankedTeam(
            position=position,
            team_id=entry.team_id,
            wins=entry.wins,
            losses=entry.losses,
            points_scored=entry.points_scored,
            points_allowed=entry.points_allowed,
            seed_number=entry.seed_number,
        )
        for position, entry in enumerate(ordered, start=1)
    ]


def format_standings(ranked: Sequence[RankedTeam], names: Optional[Mapping[TeamId, str]] = None) -> List[Dict]:
    """Display rows for a standings table."""
    names = names or {}
    rows = []
    for entry in ranked:
        rows.append({
            'position': entry.position,
            'team': names.get(entry.team_id, str(entry.team_id)),
            'wins': entry.wins,
            'losses': entry.losses,
            'points_for': entry.points_scored,
            'points_against': entry.points_allowed,
            'point_diff': entry.point_differential,
            'win_pct': round(winning_percentage(entry.wins, entry.losses), 3),
        })
    return rows
