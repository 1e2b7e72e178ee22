"""
Schedule configuration and YAML loading.
"""
import datetime
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import InvalidInput
from .models import Team

_CAMEL_CASE_KEYS = {
    'numberOfCourts': 'number_of_courts',
    'gameDurationMinutes': 'game_duration_minutes',
    'breakDurationMinutes': 'break_duration_minutes',
    'tournamentStartDate': 'tournament_start_date',
    'numberOfDays': 'number_of_days',
    'dailyStartTime': 'daily_start_time',
    'dailyEndTime': 'daily_end_time',
    'restDaysBetweenMatches': 'rest_days_between_matches',
    'includeWeekends': 'include_weekends',
    'maxSchedulingAttempts': 'max_scheduling_attempts',
}


def parse_time(time_str: Union[str, int]) -> datetime.time:
    # Unquoted 17:00 in YAML 1.1 is the sexagesimal integer 1020
    if isinstance(time_str, int) and not isinstance(time_str, bool):
        time_str = f"{time_str // 60:02d}:{time_str % 60:02d}"
    try:
        return datetime.datetime.strptime(str(time_str), '%H:%M').time()
    except ValueError:
        raise InvalidInput(f"Invalid time '{time_str}', expected HH:MM") from None


def parse_date(value: Union[str, datetime.date, datetime.datetime]) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value)[:10])
    except ValueError:
        raise InvalidInput(f"Invalid date '{value}', expected YYYY-MM-DD") from None


@dataclass
class ScheduleConfig:
    number_of_courts: int = 1
    game_duration_minutes: int = 60
    break_duration_minutes: int = 0
    tournament_start_date: Union[str, datetime.date] = None
    number_of_days: int = 1
    daily_start_time: str = "09:00"
    daily_end_time: str = "17:00"
    rest_days_between_matches: int = 0
    include_weekends: bool = True
    max_scheduling_attempts: int = 365

    def __post_init__(self):
        if self.tournament_start_date is None:
            self.tournament_start_date = datetime.date.today()
        self.tournament_start_date = parse_date(self.tournament_start_date)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ScheduleConfig':
        """Build from snake_case or camelCase keys; unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (data or {}).items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise InvalidInput(f"Unknown schedule option '{key}'")
            kwargs[name] = value
        config = cls(**kwargs)
        config.validate()
        return config

    @property
    def start_time(self) -> datetime.time:
        return parse_time(self.daily_start_time)

    @property
    def end_time(self) -> datetime.time:
        return parse_time(self.daily_end_time)

    @property
    def game_duration(self) -> datetime.timedelta:
        return datetime.timedelta(minutes=self.game_duration_minutes)

    @property
    def break_duration(self) -> datetime.timedelta:
        return datetime.timedelta(minutes=self.break_duration_minutes)

    def validate(self):
        if self.number_of_courts < 1:
            raise InvalidInput("number_of_courts must be at least 1")
        if self.game_duration_minutes <= 0:
            raise InvalidInput("game_duration_minutes must be positive")
        if self.break_duration_minutes < 0:
            raise InvalidInput("break_duration_minutes cannot be negative")
        if self.number_of_days < 1:
            raise InvalidInput("number_of_days must be at least 1")
        if self.rest_days_between_matches < 0:
            raise InvalidInput("rest_days_between_matches cannot be negative")
        if self.max_scheduling_attempts < 1:
            raise InvalidInput("max_scheduling_attempts must be at least 1")
        start = datetime.datetime.combine(self.tournament_start_date, self.start_time)
        end = datetime.datetime.combine(self.tournament_start_date, self.end_time)
        if end <= start:
            raise InvalidInput("daily_end_time must be after daily_start_time")
        if end - start < self.game_duration + self.break_duration:
            raise InvalidInput("Daily window is shorter than one game plus break")

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['tournament_start_date'] = self.tournament_start_date.isoformat()
        return data


def load_schedule_config(file_path: str) -> ScheduleConfig:
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    if not isinstance(data, dict):
        raise InvalidInput(f"{file_path}: expected a mapping of schedule options")
    return ScheduleConfig.from_dict(data)


def load_teams(file_path: str) -> List[Team]:
    """
    Load teams from YAML.

    Either a list of names in seed order, or a list of mappings with
    ``name`` and optional ``id`` / ``seed``.
    """
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []
    if not isinstance(data, list):
        raise InvalidInput(f"{file_path}: expected a list of teams")

    teams = []
    for index, entry in enumerate(data, start=1):
        if isinstance(entry, dict):
            name = entry.get('name')
            team_id = entry.get('id', name if name is not None else index)
            seed = entry.get('seed', index)
        else:
            name = str(entry)
            team_id = name
            seed = index
        teams.append(Team(team_id=team_id, seed_number=int(seed), display_name=name))
    return teams
