"""
Shared pytest fixtures for tournament engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset (skips the team-count sweeps)
"""
import datetime
import os
import sys

import pytest

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tournament_engine.config import ScheduleConfig
from tournament_engine.models import Team

MONDAY = datetime.date(2025, 6, 2)


def make_teams(count):
    """Teams 1..count; the team id doubles as the seed."""
    return [Team(team_id=i, seed_number=i, display_name=f"Team {i}") for i in range(1, count + 1)]


@pytest.fixture
def teams_factory():
    return make_teams


@pytest.fixture
def four_teams():
    return make_teams(4)


@pytest.fixture
def eight_teams():
    return make_teams(8)


@pytest.fixture
def schedule_config():
    """Two courts, one-hour games with a 15 minute break, three days from a Monday."""
    return ScheduleConfig(
        number_of_courts=2,
        game_duration_minutes=60,
        break_duration_minutes=15,
        tournament_start_date=MONDAY,
        number_of_days=3,
        daily_start_time="09:00",
        daily_end_time="18:00",
    )


@pytest.fixture
def report_win():
    """Report a 21-15 result in favour of ``winner``."""
    def _report(engine, match_id, winner):
        match = engine.get_match(match_id)
        if match.team1_id == winner:
            return engine.report_result(match_id, 21, 15)
        return engine.report_result(match_id, 15, 21)
    return _report


@pytest.fixture
def play_out(report_win):
    """Play every remaining match in start order; ``pick`` chooses the winner."""
    def _play(engine, pick=min):
        outcomes = []
        while not engine.is_complete:
            playable = sorted(
                (m for m in engine.matches if m.is_playable),
                key=lambda m: (m.scheduled_time or datetime.datetime.min, m.match_id),
            )
            if not playable:
                break
            match = playable[0]
            outcomes.append(report_win(engine, match.match_id, pick(match.real_teams())))
        return outcomes
    return _play
