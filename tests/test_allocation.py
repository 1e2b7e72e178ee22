"""
Tests for TimeScheduler court and time assignment.
"""
import datetime

import pytest

from tournament_engine.allocation import TimeScheduler, sort_for_scheduling
from tournament_engine.config import ScheduleConfig
from tournament_engine.errors import InvalidInput, SchedulingInfeasible
from tournament_engine.models import BracketSegment, Match, MatchStatus

from conftest import MONDAY


def at(day_offset, hour, minute=0):
    return datetime.datetime.combine(MONDAY + datetime.timedelta(days=day_offset), datetime.time(hour, minute))


def ready(match_id, team1, team2, round_number=1, segment=BracketSegment.WINNERS):
    return Match(match_id=match_id, round_number=round_number, game_number=match_id,
                 segment=segment, team1_id=team1, team2_id=team2)


def small_config(**overrides):
    """One court, 09:00-12:00, one-hour games, no break."""
    options = dict(number_of_courts=1, game_duration_minutes=60, break_duration_minutes=0,
                   tournament_start_date=MONDAY, number_of_days=1,
                   daily_start_time="09:00", daily_end_time="12:00")
    options.update(overrides)
    return ScheduleConfig(**options)


class TestBasicAssignment:
    """Tests for filling courts in order."""

    def test_two_courts(self, schedule_config):
        """Courts fill side by side, then after game plus break."""
        matches = [ready(1, 1, 2), ready(2, 3, 4), ready(3, 5, 6), ready(4, 7, 8)]
        slots = TimeScheduler(schedule_config).schedule_matches(matches)
        assert [(s.court_number, s.scheduled_time) for s in slots] == [
            (1, at(0, 9)), (2, at(0, 9)), (1, at(0, 10, 15)), (2, at(0, 10, 15)),
        ]
        assert slots[0].estimated_end_time == at(0, 10)

    def test_match_fields_updated(self, schedule_config):
        """Status, time and court are stamped on the match."""
        match = ready(1, 1, 2)
        TimeScheduler(schedule_config).schedule_matches([match])
        assert match.status is MatchStatus.SCHEDULED
        assert match.scheduled_time == at(0, 9)
        assert match.court_number == 1

    def test_team_cannot_double_book(self, schedule_config):
        """A team's second match waits for its first to end plus the break."""
        slots = TimeScheduler(schedule_config).schedule_matches([ready(1, 1, 2), ready(2, 1, 3)])
        assert slots[1].scheduled_time == at(0, 10, 15)

    def test_rolls_over_to_next_day(self):
        """A fourth one-hour game no longer fits the 3 hour window."""
        scheduler = TimeScheduler(small_config(number_of_days=2))
        matches = [ready(i, 2 * i, 2 * i + 1) for i in range(1, 5)]
        slots = scheduler.schedule_matches(matches)
        assert [s.scheduled_time for s in slots] == [at(0, 9), at(0, 10), at(0, 11), at(1, 9)]

    def test_incremental_batches(self, schedule_config):
        """A later batch continues from the clocks of the earlier one."""
        scheduler = TimeScheduler(schedule_config)
        scheduler.schedule_matches([ready(1, 1, 2), ready(2, 3, 4)])
        later = scheduler.schedule_matches([ready(3, 1, 3)])
        assert later[0].scheduled_time == at(0, 10, 15)
        assert len(scheduler.scheduled) == 3


class TestCalendar:
    """Tests for day windows, weekends and rest days."""

    def test_weekends_skipped(self):
        """Friday start without weekends continues on Monday."""
        friday = datetime.date(2025, 6, 6)
        scheduler = TimeScheduler(small_config(tournament_start_date=friday, number_of_days=2,
                                               include_weekends=False))
        assert [start.date() for start, _ in scheduler.day_windows] == [friday, datetime.date(2025, 6, 9)]

    def test_weekends_included(self):
        """By default Saturday is a playing day."""
        scheduler = TimeScheduler(small_config(tournament_start_date=datetime.date(2025, 6, 6), number_of_days=2))
        assert scheduler.day_windows[1][0].date() == datetime.date(2025, 6, 7)

    def test_rest_days(self):
        """A team that played today waits until tomorrow."""
        scheduler = TimeScheduler(small_config(number_of_courts=2, number_of_days=2, rest_days_between_matches=1))
        slots = scheduler.schedule_matches([ready(1, 1, 2), ready(2, 1, 3), ready(3, 4, 5)])
        assert slots[0].scheduled_time == at(0, 9)
        assert slots[1].scheduled_time == at(1, 9)
        assert slots[2].scheduled_time == at(0, 9)


class TestFailures:
    """Tests for rejected and infeasible batches."""

    def test_unresolved_slot(self, schedule_config):
        """A match waiting on a feeder cannot be scheduled."""
        with pytest.raises(InvalidInput):
            TimeScheduler(schedule_config).schedule_matches([ready(1, 1, None)])

    def test_already_scheduled(self, schedule_config):
        """A match is only scheduled once."""
        scheduler = TimeScheduler(schedule_config)
        match = ready(1, 1, 2)
        scheduler.schedule_matches([match])
        with pytest.raises(InvalidInput):
            scheduler.schedule_matches([match])

    def test_infeasible_batch_is_atomic(self):
        """Four games in a three-slot tournament: nothing is committed."""
        scheduler = TimeScheduler(small_config())
        before = scheduler.court_availability()
        matches = [ready(i, 2 * i, 2 * i + 1) for i in range(1, 5)]
        with pytest.raises(SchedulingInfeasible):
            scheduler.schedule_matches(matches)
        assert all(m.status is MatchStatus.PENDING and m.scheduled_time is None for m in matches)
        assert scheduler.scheduled == []
        assert scheduler.court_availability() == before

    def test_rest_days_beyond_calendar(self):
        """Rest requirement longer than the tournament is infeasible."""
        scheduler = TimeScheduler(small_config(number_of_days=3, rest_days_between_matches=5))
        with pytest.raises(SchedulingInfeasible):
            scheduler.schedule_matches([ready(1, 1, 2), ready(2, 1, 3)])

    def test_attempt_limit(self):
        """Refused candidates count against max_scheduling_attempts."""
        scheduler = TimeScheduler(small_config(number_of_courts=2, number_of_days=5,
                                               rest_days_between_matches=3, max_scheduling_attempts=2))
        with pytest.raises(SchedulingInfeasible):
            scheduler.schedule_matches([ready(1, 1, 2), ready(2, 1, 3)])


class TestHelpers:
    """Tests for ordering, estimates and availability."""

    def test_sort_for_scheduling(self):
        """Round, then segment priority, then game number."""
        matches = [
            ready(1, 1, 2, round_number=2, segment=BracketSegment.WINNERS),
            ready(2, 3, 4, round_number=1, segment=BracketSegment.LOSERS),
            ready(3, 5, 6, round_number=1, segment=BracketSegment.WINNERS),
            ready(4, 7, 8, round_number=1, segment=BracketSegment.FINALS),
            ready(5, 9, 10, round_number=1, segment=BracketSegment.GROUP),
        ]
        assert [m.match_id for m in sort_for_scheduling(matches)] == [5, 3, 2, 4, 1]

    def test_court_availability(self, schedule_config):
        """Courts ordered by next free time."""
        scheduler = TimeScheduler(schedule_config)
        scheduler.schedule_matches([ready(1, 1, 2)])
        assert scheduler.court_availability() == [(2, at(0, 9)), (1, at(0, 10, 15))]

    def test_estimate_fits(self):
        """Seven games at three per day end at 10:00 on day three."""
        estimate = TimeScheduler(small_config(number_of_days=3)).estimate_tournament_duration(7)
        assert estimate['matches_per_day'] == 3
        assert estimate['days_needed'] == 3
        assert estimate['end_time'] == at(2, 10)
        assert estimate['warning'] is None

    def test_estimate_warns(self):
        """Too few days produces a warning instead of an end time."""
        estimate = TimeScheduler(small_config(number_of_days=2)).estimate_tournament_duration(7)
        assert estimate['end_time'] is None
        assert "3 day(s)" in estimate['warning']

    def test_schedule_output(self, schedule_config):
        """Output is grouped by day and court."""
        scheduler = TimeScheduler(schedule_config)
        matches = [ready(1, 1, 2), ready(2, 3, 4)]
        scheduler.schedule_matches(matches)
        output = scheduler.get_schedule_output({m.match_id: m for m in matches})
        assert output[0]['date'] == '2025-06-02'
        assert [c['court_number'] for c in output[0]['courts']] == [1, 2]
        assert output[0]['courts'][0]['matches'][0] == {
            'match_id': 1, 'start_time': '09:00', 'end_time': '10:00', 'teams': [1, 2],
        }
