from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

from courtside.models.team import MatchCategory

if TYPE_CHECKING:
    from courtside.models.match import Match
    from courtside.models.participant import TournamentTeam
    from courtside.models.round import TournamentRound


class TournamentStatus(str, Enum):
    draft = "draft"
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    category: MatchCategory = Field(sa_column=Column(String, index=True))
    seeding_method: str
    bye_policy: str = Field(default="trailing")  # "trailing" | "top_seeds"
    has_third_place: bool = Field(default=False)
    team_count: int
    bracket_size: int
    total_rounds: int
    status: str = Field(default=TournamentStatus.draft.value)
    champion_team_id: Optional[int] = Field(default=None, foreign_key="team.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    rounds: List["TournamentRound"] = Relationship(
        back_populates="tournament",
        sa_relationship_kwargs={"order_by": "TournamentRound.round_number"},
    )
    matches: List["Match"] = Relationship(back_populates="tournament")
    participants: List["TournamentTeam"] = Relationship(back_populates="tournament")
