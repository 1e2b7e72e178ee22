"""
Result progression: advancing winners and losers, keeping team statistics,
activating the bracket reset, appending the knockout after the group stage
and detecting tournament completion.
"""
import copy
import datetime
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .allocation import TimeScheduler, sort_for_scheduling
from .bracket import MatchGraph
from .errors import InvalidInput, InvalidTransition, TournamentError
from .formats import parse_format
from .group_stage import calculate_group_config, generate_knockout, group_standings, is_group_stage_complete
from .models import (
    BracketSegment,
    Match,
    MatchStatus,
    ProgressionOutcome,
    RankedTeam,
    ScheduledMatch,
    Team,
    TeamId,
    TeamTournamentStats,
    TournamentFormat,
)
from .standings import rank

logger = logging.getLogger(__name__)

_OPEN = (MatchStatus.PENDING, MatchStatus.SCHEDULED, MatchStatus.IN_PROGRESS)


@dataclass(frozen=True)
class BracketSnapshot:
    version: int
    matches: Tuple[Match, ...]
    stats: Tuple[TeamTournamentStats, ...]
    is_complete: bool


class ProgressionEngine:
    """
    Owns one tournament's mutable state.

    Every mutation is all-or-nothing: a result that fails validation changes
    nothing, and a failure after validation (for example the scheduler
    running out of days) rolls the tournament back to its prior state.
    """

    def __init__(self, matches: Sequence[Match], teams: Sequence[Team],
                 tournament_format: Union[TournamentFormat, str],
                 scheduler: Optional[TimeScheduler] = None,
                 number_of_groups: Optional[int] = None,
                 advancing_per_group: Optional[int] = None):
        self.format = parse_format(tournament_format)
        self.graph = MatchGraph(matches)
        self.teams: Dict[TeamId, Team] = {t.team_id: t for t in teams}
        self.stats: Dict[TeamId, TeamTournamentStats] = {
            t.team_id: TeamTournamentStats(team_id=t.team_id, seed_number=t.seed_number) for t in teams
        }
        self.scheduler = scheduler
        self.version = 0
        self.advancing_per_group = None
        if self.format is TournamentFormat.GROUP_STAGE:
            config = calculate_group_config(len(teams), number_of_groups, advancing_per_group)
            self.advancing_per_group = config['advancing_per_group']
        self._knockout_generated = any(m.segment is BracketSegment.KNOCKOUT for m in self.graph)
        self._complete = False

    # -- state management ------------------------------------------------

    def _checkpoint(self):
        return copy.deepcopy((self.graph, self.stats, self.scheduler, self._knockout_generated, self._complete))

    def _restore(self, checkpoint):
        self.graph, self.stats, self.scheduler, self._knockout_generated, self._complete = checkpoint

    def _reject(self, error_cls, message):
        logger.warning("Rejected: %s", message)
        raise error_cls(message)

    def snapshot(self) -> BracketSnapshot:
        return BracketSnapshot(
            version=self.version,
            matches=tuple(self.graph.snapshot()),
            stats=tuple(copy.deepcopy(self.stats[team_id]) for team_id in self.teams),
            is_complete=self._complete,
        )

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def matches(self) -> List[Match]:
        return self.graph.matches()

    def get_match(self, match_id: int) -> Match:
        return self.graph.get(match_id)

    # -- queries ---------------------------------------------------------

    def ready_matches(self) -> List[Match]:
        """Playable matches that still need a time slot."""
        return sort_for_scheduling(
            [m for m in self.graph if m.status is MatchStatus.PENDING and m.is_playable]
        )

    def team_schedule(self, team_id: TeamId) -> List[Match]:
        if team_id not in self.teams:
            raise InvalidInput(f"Unknown team {team_id!r}")
        far_future = datetime.datetime.max
        return sorted(
            (m for m in self.graph if m.involves(team_id) and not m.has_bye),
            key=lambda m: (m.scheduled_time or far_future, m.round_number, m.game_number),
        )

    def standings(self, group_id: Optional[int] = None) -> List[RankedTeam]:
        if group_id is not None:
            if not self.graph.matches(BracketSegment.GROUP, group_id=group_id):
                raise InvalidInput(f"Unknown group {group_id}")
            return group_standings(self.graph.matches(), list(self.teams.values()), group_id)
        ranked = rank(self.stats, [m for m in self.graph if m.is_completed])
        winner = self._finals_winner() if self._complete else None
        if winner is None or not ranked or ranked[0].team_id == winner:
            return ranked
        # The deciding final outranks the win count
        ordered = [r for r in ranked if r.team_id == winner] + [r for r in ranked if r.team_id != winner]
        return [replace(entry, position=position) for position, entry in enumerate(ordered, start=1)]

    def _finals_winner(self) -> Optional[TeamId]:
        finals = [m for m in self.graph.matches(BracketSegment.FINALS) if m.is_completed]
        if not finals:
            return None
        return max(finals, key=lambda m: m.round_number).winner_team_id

    @property
    def champion(self) -> Optional[TeamId]:
        """
        Winner of the deciding finals match, once the tournament is over.

        Formats without a final take the top of the standings. The champion
        is always ``final_position`` 1.
        """
        if not self._complete:
            return None
        winner = self._finals_winner()
        if winner is not None:
            return winner
        return self.standings()[0].team_id if self.stats else None

    # -- scheduling ------------------------------------------------------

    def schedule_ready_matches(self, match_ids: Optional[Sequence[int]] = None) -> List[ScheduledMatch]:
        if self.scheduler is None:
            raise InvalidInput("No scheduler attached to this tournament")
        if match_ids is None:
            batch = self.ready_matches()
        else:
            batch = sort_for_scheduling([self.graph.get(match_id) for match_id in match_ids])
        if not batch:
            return []
        scheduled = self.scheduler.schedule_matches(batch)
        self.version += 1
        return scheduled

    def reschedule(self, scheduler: TimeScheduler) -> List[ScheduledMatch]:
        """
        Replace the calendar and slot every unstarted ready match again.

        Completed matches keep their times. Scheduled matches go back to
        pending and are placed on the new calendar; if that fails nothing
        changes.
        """
        if any(m.status is MatchStatus.IN_PROGRESS for m in self.graph):
            self._reject(InvalidTransition, "Cannot reschedule while a match is in progress")
        checkpoint = self._checkpoint()
        try:
            for match in self.graph:
                if match.status is MatchStatus.SCHEDULED:
                    match.status = MatchStatus.PENDING
                    match.scheduled_time = None
                    match.court_number = None
            self.scheduler = scheduler
            batch = self.ready_matches()
            scheduled = self.scheduler.schedule_matches(batch) if batch else []
        except TournamentError:
            logger.warning("Rolling back reschedule")
            self._restore(checkpoint)
            raise
        self.version += 1
        logger.info("Rescheduled %d match(es) on a new calendar", len(scheduled))
        return scheduled

    def start_match(self, match_id: int) -> Match:
        match = self.graph.get(match_id)
        startable = match.status is MatchStatus.SCHEDULED or (
            self.scheduler is None and match.status is MatchStatus.PENDING and match.is_playable)
        if not startable:
            self._reject(InvalidTransition, f"Match {match_id} cannot start from {match.status.value}")
        match.status = MatchStatus.IN_PROGRESS
        self.version += 1
        logger.info("Match %s started", match_id)
        return match

    # -- results ---------------------------------------------------------

    def _validate_result(self, match: Match, team1_score, team2_score, winner_team_id, is_forfeit):
        if match.status is MatchStatus.COMPLETED:
            self._reject(InvalidTransition, f"Match {match.match_id} is already completed")
        if match.status is MatchStatus.CANCELLED:
            self._reject(InvalidTransition, f"Match {match.match_id} was cancelled")
        if match.team1_id is None or match.team2_id is None:
            self._reject(InvalidTransition, f"Match {match.match_id} does not have both teams yet")
        if match.has_bye:
            self._reject(InvalidTransition, f"Match {match.match_id} is a bye")
        if self.scheduler is not None and match.status is MatchStatus.PENDING:
            self._reject(InvalidTransition, f"Match {match.match_id} has not been scheduled")

        for score in (team1_score, team2_score):
            if not isinstance(score, int) or isinstance(score, bool) or score < 0:
                self._reject(InvalidInput, f"Match {match.match_id}: scores must be non-negative integers")

        if is_forfeit:
            if not match.involves(winner_team_id):
                self._reject(InvalidInput, f"Match {match.match_id}: forfeit winner {winner_team_id!r} is not playing")
            return winner_team_id

        if team1_score == team2_score:
            self._reject(InvalidInput, f"Match {match.match_id}: tied scores are not allowed")
        by_score = match.team1_id if team1_score > team2_score else match.team2_id
        if winner_team_id is not None and winner_team_id != by_score:
            self._reject(InvalidInput, f"Match {match.match_id}: winner {winner_team_id!r} contradicts the score")
        return by_score

    def report_result(self, match_id: int, team1_score: int, team2_score: int,
                      winner_team_id: Optional[TeamId] = None, is_forfeit: bool = False) -> ProgressionOutcome:
        """Record a result and push its consequences through the bracket."""
        match = self.graph.get(match_id)
        winner = self._validate_result(match, team1_score, team2_score, winner_team_id, is_forfeit)

        checkpoint = self._checkpoint()
        try:
            outcome = self._apply_result(match, team1_score, team2_score, winner, is_forfeit)
        except TournamentError:
            logger.warning("Rolling back result for match %s", match_id)
            self._restore(checkpoint)
            raise
        self.version += 1
        return outcome

    def forfeit_match(self, match_id: int, forfeiting_team_id: TeamId) -> ProgressionOutcome:
        match = self.graph.get(match_id)
        if not match.involves(forfeiting_team_id):
            self._reject(InvalidInput, f"Team {forfeiting_team_id!r} is not playing match {match_id}")
        winner = match.team2_id if forfeiting_team_id == match.team1_id else match.team1_id
        return self.report_result(match_id, 0, 0, winner_team_id=winner, is_forfeit=True)

    def _apply_result(self, match: Match, team1_score, team2_score, winner, is_forfeit) -> ProgressionOutcome:
        ready_before = {m.match_id for m in self.ready_matches()}

        if is_forfeit:
            team1_score = team2_score = 0
        match.team1_score = team1_score
        match.team2_score = team2_score
        match.winner_team_id = winner
        match.is_forfeit = is_forfeit
        match.status = MatchStatus.COMPLETED
        self._record_stats(match)
        logger.info("Match %s: %r beat %r %s-%s%s", match.match_id, winner, match.loser_team_id,
                    team1_score, team2_score, " (forfeit)" if is_forfeit else "")

        reset_activated = False
        if self._is_grand_final(match):
            reset_activated = self._resolve_bracket_reset(match)
        else:
            self.graph.advance_winner(match)
            self.graph.drop_loser(match)
        self.graph.auto_advance_byes()

        knockout_generated = self._maybe_generate_knockout()

        newly_ready = [m for m in self.ready_matches() if m.match_id not in ready_before]
        scheduled = []
        if self.scheduler is not None and newly_ready:
            scheduled = self.scheduler.schedule_matches(newly_ready)

        complete = self._check_completion()
        return ProgressionOutcome(
            match_id=match.match_id,
            winner_team_id=winner,
            next_match_generated=bool(newly_ready),
            tournament_complete=complete,
            ready_match_ids=tuple(m.match_id for m in newly_ready),
            scheduled=tuple(scheduled),
            bracket_reset_activated=reset_activated,
            knockout_generated=knockout_generated,
        )

    def _record_stats(self, match: Match):
        winner = self.stats.get(match.winner_team_id)
        loser = self.stats.get(match.loser_team_id)
        if winner is None or loser is None:
            raise InvalidInput(f"Match {match.match_id} involves a team outside this tournament")
        winner.wins += 1
        loser.losses += 1
        if match.is_forfeit:
            return
        for team_id, scored, allowed in ((match.team1_id, match.team1_score, match.team2_score),
                                         (match.team2_id, match.team2_score, match.team1_score)):
            self.stats[team_id].points_scored += scored
            self.stats[team_id].points_allowed += allowed

    # -- double elimination ----------------------------------------------

    def _is_grand_final(self, match: Match) -> bool:
        if match.segment is not BracketSegment.FINALS or match.is_bracket_reset:
            return False
        return any(self.graph.get(p).segment is BracketSegment.LOSERS for p in match.parent_match_ids)

    def _reset_match(self, grand_final: Match) -> Optional[Match]:
        for candidate in self.graph.matches(BracketSegment.FINALS):
            if candidate.is_bracket_reset and grand_final.match_id in candidate.parent_match_ids:
                return candidate
        return None

    def _resolve_bracket_reset(self, grand_final: Match) -> bool:
        """Play the reset only when the losers bracket champion won match 1."""
        reset = self._reset_match(grand_final)
        if reset is None:
            return False
        losers_final = next(self.graph.get(p) for p in grand_final.parent_match_ids
                            if self.graph.get(p).segment is BracketSegment.LOSERS)
        if grand_final.winner_team_id == losers_final.winner_team_id:
            reset.team1_id = grand_final.team1_id
            reset.team2_id = grand_final.team2_id
            logger.info("Bracket reset activated: match %s", reset.match_id)
            return True
        reset.status = MatchStatus.CANCELLED
        logger.info("Bracket reset match %s cancelled", reset.match_id)
        return False

    # -- group stage -----------------------------------------------------

    def _maybe_generate_knockout(self) -> bool:
        if self.format is not TournamentFormat.GROUP_STAGE or self._knockout_generated:
            return False
        matches = self.graph.matches()
        if not is_group_stage_complete(matches):
            return False
        knockout = generate_knockout(matches, list(self.teams.values()), self.advancing_per_group,
                                     start_match_id=self.graph.next_match_id)
        self.graph.extend(knockout)
        self._knockout_generated = True
        return True

    # -- completion ------------------------------------------------------

    def _check_completion(self) -> bool:
        playable = [m for m in self.graph if m.is_playable]
        finals = self.graph.matches(BracketSegment.FINALS)
        finals_decided = (any(m.is_completed for m in finals)
                          and not any(m.status in _OPEN for m in finals))
        if playable and not finals_decided:
            return False
        if not self._complete:
            self._complete = True
            for entry in self.standings():
                self.stats[entry.team_id].final_position = entry.position
            logger.info("Tournament complete, champion %r", self.champion)
        return True
