"""
Tournament bracket generation, match scheduling and progression.
"""
from .allocation import TimeScheduler, sort_for_scheduling
from .bracket import MatchGraph
from .config import ScheduleConfig, load_schedule_config, load_teams
from .errors import InvalidInput, InvalidTransition, SchedulingInfeasible, TournamentError
from .formats import generate_bracket
from .models import (
    BYE,
    BracketSegment,
    Match,
    MatchStatus,
    ProgressionOutcome,
    RankedTeam,
    ScheduledMatch,
    Team,
    TeamTournamentStats,
    TournamentFormat,
)
from .progression import ProgressionEngine
from .service import Result, TournamentService
from .standings import rank

__version__ = "0.1.0"
