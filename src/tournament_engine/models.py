"""
Core data model for brackets, matches and team statistics.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Hashable, List, Optional, Tuple, Union


class Slot(enum.Enum):
    """Named marker for a team slot that will never hold a real team."""
    BYE = "BYE"

    def __repr__(self):
        return "BYE"


BYE = Slot.BYE

TeamId = Hashable
# None means "not decided yet", BYE means an intentional walkover.
SlotValue = Union[TeamId, Slot, None]


class BracketSegment(enum.Enum):
    """Sub-structure of the tournament a match belongs to."""
    WINNERS = "winners"
    LOSERS = "losers"
    FINALS = "finals"
    GROUP = "group"
    KNOCKOUT = "knockout"


class MatchStatus(enum.Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TournamentFormat(enum.Enum):
    SINGLE_ELIMINATION = "single_elimination"
    DOUBLE_ELIMINATION = "double_elimination"
    ROUND_ROBIN = "round_robin"
    GROUP_STAGE = "group_stage"


@dataclass(frozen=True)
class Team:
    team_id: TeamId
    seed_number: int
    display_name: Optional[str] = None

    @property
    def name(self) -> str:
        return self.display_name if self.display_name else str(self.team_id)


@dataclass
class Match:
    """A node in the bracket graph.

    ``parent_match_ids`` lists the upstream matches feeding either slot (the
    winner edge of a previous round, or the loser edge of a winners-bracket
    match for losers-bracket dropdowns), in slot order.
    """
    match_id: int
    round_number: int
    game_number: int
    segment: BracketSegment
    team1_id: SlotValue = None
    team2_id: SlotValue = None
    group_id: Optional[int] = None
    parent_match_ids: List[int] = field(default_factory=list)
    child_match_id: Optional[int] = None
    loser_destination_match_id: Optional[int] = None
    status: MatchStatus = MatchStatus.PENDING
    scheduled_time: Optional[datetime] = None
    court_number: Optional[int] = None
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    winner_team_id: SlotValue = None
    is_forfeit: bool = False
    is_bracket_reset: bool = False

    @property
    def teams(self) -> Tuple[SlotValue, SlotValue]:
        return (self.team1_id, self.team2_id)

    @property
    def is_ready(self) -> bool:
        """Both slots resolved and the match has not been played."""
        return (
            self.team1_id is not None
            and self.team2_id is not None
            and self.status in (MatchStatus.PENDING, MatchStatus.SCHEDULED, MatchStatus.IN_PROGRESS)
        )

    @property
    def is_playable(self) -> bool:
        """Ready and contested by two real teams."""
        return self.is_ready and not self.has_bye

    @property
    def has_bye(self) -> bool:
        return self.team1_id is BYE or self.team2_id is BYE

    @property
    def is_completed(self) -> bool:
        return self.status is MatchStatus.COMPLETED

    @property
    def loser_team_id(self) -> SlotValue:
        if self.winner_team_id is None:
            return None
        if self.winner_team_id == self.team1_id:
            return self.team2_id
        return self.team1_id

    def involves(self, team_id: TeamId) -> bool:
        return team_id is not None and team_id in (self.team1_id, self.team2_id)

    def place_team(self, team_id: SlotValue) -> int:
        """Put a team in the first empty slot and return the slot number."""
        if self.team1_id is None:
            self.team1_id = team_id
            return 1
        if self.team2_id is None:
            self.team2_id = team_id
            return 2
        raise ValueError(f"Match {self.match_id} has no empty slot")

    def real_teams(self) -> List[TeamId]:
        return [t for t in self.teams if t is not None and t is not BYE]


@dataclass
class TeamTournamentStats:
    team_id: TeamId
    seed_number: int
    wins: int = 0
    losses: int = 0
    points_scored: int = 0
    points_allowed: int = 0
    final_position: Optional[int] = None

    @property
    def point_differential(self) -> int:
        return self.points_scored - self.points_allowed

    @property
    def matches_played(self) -> int:
        return self.wins + self.losses


@dataclass(frozen=True)
class RankedTeam:
    position: int
    team_id: TeamId
    wins: int
    losses: int
    points_scored: int
    points_allowed: int
    seed_number: int

    @property
    def point_differential(self) -> int:
        return self.points_scored - self.points_allowed


@dataclass(frozen=True)
class ScheduledMatch:
    match_id: int
    scheduled_time: datetime
    court_number: int
    estimated_end_time: datetime


@dataclass(frozen=True)
class ProgressionOutcome:
    match_id: int
    winner_team_id: TeamId
    next_match_generated: bool
    tournament_complete: bool
    ready_match_ids: Tuple[int, ...] = ()
    scheduled: Tuple[ScheduledMatch, ...] = ()
    bracket_reset_activated: bool = False
    knockout_generated: bool = False
