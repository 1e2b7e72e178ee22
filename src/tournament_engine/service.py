"""
Call boundary for embedding applications.

Each method returns a ``Result`` instead of raising: engine errors become
``Result.error`` so the caller can turn them into its own response format
(``error.to_dict()`` gives the ``{'success': False, ...}`` payload).
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar, Union

from .allocation import TimeScheduler
from .config import ScheduleConfig
from .errors import InvalidInput, InvalidTransition, TournamentError
from .formats import generate_bracket, parse_format
from .models import Team, TournamentFormat
from .progression import ProgressionEngine

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[TournamentError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value


def _as_config(schedule_config: Union[ScheduleConfig, Dict]) -> ScheduleConfig:
    if isinstance(schedule_config, ScheduleConfig):
        return schedule_config
    return ScheduleConfig.from_dict(schedule_config)


def _call(func: Callable[[], T]) -> Result[T]:
    try:
        return Result(value=func())
    except TournamentError as e:
        logger.info("%s: %s", e.code, e.message)
        return Result(error=e)


class TournamentService:
    def __init__(self):
        self._engines: Dict[Any, ProgressionEngine] = {}

    def _engine(self, tournament_id) -> ProgressionEngine:
        try:
            return self._engines[tournament_id]
        except KeyError:
            raise InvalidInput(f"Unknown tournament {tournament_id!r}") from None

    def generate_bracket(self, tournament_format: Union[TournamentFormat, str], teams: Sequence[Team],
                         options: Optional[Dict] = None) -> Result:
        return _call(lambda: generate_bracket(tournament_format, teams, options))

    def create_tournament(self, tournament_id, tournament_format: Union[TournamentFormat, str],
                          teams: Sequence[Team],
                          schedule_config: Union[ScheduleConfig, Dict, None] = None,
                          options: Optional[Dict] = None) -> Result:
        """Generate the bracket, register the engine and schedule the opening matches."""
        def create():
            if tournament_id in self._engines:
                raise InvalidInput(f"Tournament {tournament_id!r} already exists")
            fmt = parse_format(tournament_format)
            matches = generate_bracket(fmt, teams, options)
            scheduler = None
            if schedule_config is not None:
                scheduler = TimeScheduler(_as_config(schedule_config))
            opts = options or {}
            engine = ProgressionEngine(matches, teams, fmt, scheduler,
                                       number_of_groups=opts.get('number_of_groups'),
                                       advancing_per_group=opts.get('advancing_per_group'))
            if scheduler is not None:
                engine.schedule_ready_matches()
            self._engines[tournament_id] = engine
            logger.info("Created tournament %r (%s, %d teams)", tournament_id, fmt.value, len(teams))
            return engine.snapshot()
        return _call(create)

    def schedule_matches(self, tournament_id, match_ids: Optional[Sequence[int]] = None) -> Result:
        return _call(lambda: self._engine(tournament_id).schedule_ready_matches(match_ids))

    def reconfigure_schedule(self, tournament_id, schedule_config: Union[ScheduleConfig, Dict]) -> Result:
        """Move every unstarted match onto a new calendar, e.g. after ``scheduling_infeasible``."""
        def reconfigure():
            engine = self._engine(tournament_id)
            return engine.reschedule(TimeScheduler(_as_config(schedule_config)))
        return _call(reconfigure)

    def delete_tournament(self, tournament_id, force: bool = False) -> Result:
        """Forget a tournament. Refused once a result is recorded unless ``force``."""
        def delete():
            engine = self._engine(tournament_id)
            if not force and any(m.is_completed and not m.has_bye for m in engine.matches):
                raise InvalidTransition(f"Tournament {tournament_id!r} already has results")
            del self._engines[tournament_id]
            logger.info("Deleted tournament %r", tournament_id)
            return tournament_id
        return _call(delete)

    def report_result(self, tournament_id, match_id: int, team1_score: int, team2_score: int,
                      winner_team_id=None, is_forfeit: bool = False) -> Result:
        return _call(lambda: self._engine(tournament_id).report_result(
            match_id, team1_score, team2_score, winner_team_id, is_forfeit))

    def forfeit_match(self, tournament_id, match_id: int, forfeiting_team_id) -> Result:
        return _call(lambda: self._engine(tournament_id).forfeit_match(match_id, forfeiting_team_id))

    def start_match(self, tournament_id, match_id: int) -> Result:
        return _call(lambda: self._engine(tournament_id).start_match(match_id))

    def get_standings(self, tournament_id, group_id: Optional[int] = None) -> Result:
        return _call(lambda: self._engine(tournament_id).standings(group_id))

    def get_bracket(self, tournament_id) -> Result:
        return _call(lambda: self._engine(tournament_id).snapshot())

    def get_schedule(self, tournament_id) -> Result:
        def schedule():
            engine = self._engine(tournament_id)
            if engine.scheduler is None:
                return []
            return engine.scheduler.get_schedule_output({m.match_id: m for m in engine.matches})
        return _call(schedule)

    def get_team_schedule(self, tournament_id, team_id) -> Result:
        return _call(lambda: self._engine(tournament_id).team_schedule(team_id))

    def tournaments(self) -> List:
        return list(self._engines)
