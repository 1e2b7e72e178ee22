"""
Time and court assignment for ready matches.
"""
import datetime
import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import ScheduleConfig
from .errors import InvalidInput, SchedulingInfeasible
from .models import BracketSegment, Match, MatchStatus, ScheduledMatch, TeamId

logger = logging.getLogger(__name__)

SEGMENT_PRIORITY = {
    BracketSegment.GROUP: 0,
    BracketSegment.WINNERS: 1,
    BracketSegment.KNOCKOUT: 1,
    BracketSegment.LOSERS: 2,
    BracketSegment.FINALS: 3,
}


def sort_for_scheduling(matches: Sequence[Match]) -> List[Match]:
    """Round, then segment (group, winners/knockout, losers, finals), then game number."""
    return sorted(matches, key=lambda m: (m.round_number, SEGMENT_PRIORITY[m.segment], m.game_number))


class TimeScheduler:
    """
    Stateful court/time allocator.

    Keeps a "next free" clock per court and per team plus each team's last
    match date, so batches submitted later continue where earlier ones left
    off.
    """

    def __init__(self, config: ScheduleConfig):
        config.validate()
        self.config = config
        self._days = self._build_day_windows()
        first_start = self._days[0][0]
        self._court_clocks: Dict[int, datetime.datetime] = {
            court: first_start for court in range(1, config.number_of_courts + 1)
        }
        self._team_clocks: Dict[TeamId, datetime.datetime] = {}
        self._team_last_dates: Dict[TeamId, datetime.date] = {}
        self._scheduled: List[ScheduledMatch] = []

    def _build_day_windows(self) -> List[Tuple[datetime.datetime, datetime.datetime]]:
        days = []
        current = self.config.tournament_start_date
        while len(days) < self.config.number_of_days:
            if self.config.include_weekends or current.weekday() < 5:
                days.append((
                    datetime.datetime.combine(current, self.config.start_time),
                    datetime.datetime.combine(current, self.config.end_time),
                ))
            current += datetime.timedelta(days=1)
        return days

    @property
    def day_windows(self) -> List[Tuple[datetime.datetime, datetime.datetime]]:
        return list(self._days)

    @property
    def scheduled(self) -> List[ScheduledMatch]:
        return list(self._scheduled)

    def court_availability(self) -> List[Tuple[int, datetime.datetime]]:
        """Courts ordered by when they are next free."""
        return sorted(self._court_clocks.items(), key=lambda item: (item[1], item[0]))

    def _rest_violated(self, team_ids, start: datetime.datetime, last_dates) -> bool:
        rest = self.config.rest_days_between_matches
        if rest <= 0:
            return False
        for team_id in team_ids:
            last = last_dates.get(team_id)
            if last is not None and (start.date() - last).days < rest:
                return True
        return False

    def _find_slot(self, match: Match, courts, team_clocks, last_dates) -> Tuple[datetime.datetime, int]:
        duration = self.config.game_duration
        team_ids = match.real_teams()
        first_start = self._days[0][0]
        earliest = max(team_clocks.get(team_id, first_start) for team_id in team_ids)

        attempts = 0
        for day_start, day_end in self._days:
            if day_end - duration < earliest:
                continue
            candidates = sorted(
                (max(clock, earliest, day_start), court) for court, clock in courts.items()
            )
            for start, court in candidates:
                if start + duration > day_end:
                    continue
                attempts += 1
                if attempts > self.config.max_scheduling_attempts:
                    raise SchedulingInfeasible(
                        f"Match {match.match_id}: no slot within {self.config.max_scheduling_attempts} attempts")
                if self._rest_violated(team_ids, start, last_dates):
                    logger.debug("Match %s: rest days refuse %s on court %s", match.match_id, start, court)
                    continue
                return start, court
        raise SchedulingInfeasible(
            f"Match {match.match_id}: no free court before the tournament ends "
            f"({self.config.number_of_days} day(s) from {self.config.tournament_start_date})")

    def schedule_matches(self, matches: Sequence[Match]) -> List[ScheduledMatch]:
        """
        Assign a start time and court to each match, in the given order.

        All-or-nothing: if any match cannot be placed, no clock and no match
        is changed.
        """
        for match in matches:
            if match.status is not MatchStatus.PENDING:
                raise InvalidInput(f"Match {match.match_id} is {match.status.value}, not pending")
            if not match.is_playable:
                raise InvalidInput(f"Match {match.match_id} does not have two resolved teams")

        courts = dict(self._court_clocks)
        team_clocks = dict(self._team_clocks)
        last_dates = dict(self._team_last_dates)
        step = self.config.game_duration + self.config.break_duration
        assignments = []

        for match in matches:
            start, court = self._find_slot(match, courts, team_clocks, last_dates)
            courts[court] = start + step
            for team_id in match.real_teams():
                team_clocks[team_id] = start + step
                last_dates[team_id] = start.date()
            assignments.append((match, ScheduledMatch(
                match_id=match.match_id,
                scheduled_time=start,
                court_number=court,
                estimated_end_time=start + self.config.game_duration,
            )))

        self._court_clocks = courts
        self._team_clocks = team_clocks
        self._team_last_dates = last_dates
        result = []
        for match, slot in assignments:
            match.status = MatchStatus.SCHEDULED
            match.scheduled_time = slot.scheduled_time
            match.court_number = slot.court_number
            self._scheduled.append(slot)
            result.append(slot)
            logger.info("Scheduled match %s on court %s at %s",
                        match.match_id, slot.court_number, slot.scheduled_time.strftime('%Y-%m-%d %H:%M'))
        return result

    def estimate_tournament_duration(self, number_of_matches: int) -> Dict:
        """
        Rough end time for ``number_of_matches`` back-to-back games,
        ignoring team rest constraints.
        """
        window = self._days[0][1] - self._days[0][0]
        step = self.config.game_duration + self.config.break_duration
        games_per_court = (window - self.config.game_duration) // step + 1
        matches_per_day = games_per_court * self.config.number_of_courts
        days_needed = math.ceil(number_of_matches / matches_per_day) if number_of_matches else 0
        days_available = len(self._days)

        end_time = None
        warning = None
        if days_needed > days_available:
            warning = (f"{number_of_matches} matches need {days_needed} day(s) "
                       f"but only {days_available} are configured")
        elif days_needed:
            remaining = number_of_matches - (days_needed - 1) * matches_per_day
            slots = math.ceil(remaining / self.config.number_of_courts)
            end_time = self._days[days_needed - 1][0] + (slots - 1) * step + self.config.game_duration
        return {
            'matches': number_of_matches,
            'matches_per_day': matches_per_day,
            'days_needed': days_needed,
            'days_available': days_available,
            'end_time': end_time,
            'warning': warning,
        }

    def get_schedule_output(self, matches: Optional[Mapping[int, Match]] = None) -> List[Dict]:
        """Scheduled matches grouped by day, then by court."""
        by_day: Dict[datetime.date, Dict[int, List[ScheduledMatch]]] = {}
        for slot in sorted(self._scheduled, key=lambda s: (s.scheduled_time, s.court_number)):
            by_day.setdefault(slot.scheduled_time.date(), {}).setdefault(slot.court_number, []).append(slot)

        output = []
        for day in sorted(by_day):
            day_info = {"date": day.isoformat(), "courts": []}
            for court in sorted(by_day[day]):
                court_info = {"court_number": court, "matches": []}
                for slot in by_day[day][court]:
                    entry = {
                        "match_id": slot.match_id,
                        "start_time": slot.scheduled_time.strftime('%H:%M'),
                        "end_time": slot.estimated_end_time.strftime('%H:%M'),
                    }
                    if matches is not None and slot.match_id in matches:
                        entry["teams"] = list(matches[slot.match_id].teams)
                    court_info["matches"].append(entry)
                day_info["courts"].append(court_info)
            output.append(day_info)
        return output
