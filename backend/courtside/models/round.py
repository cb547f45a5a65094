from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.match import Match
    from courtside.models.tournament import Tournament


class RoundStatus(str, Enum):
    pending = "pending"
    active = "active"
    completed = "completed"


class TournamentRound(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "round_number", name="uq_round_tournament_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round_number: int  # 1-based
    expected_match_count: int  # materialised matches, third-place match excluded
    status: str = Field(default=RoundStatus.pending.value)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="rounds")
    matches: List["Match"] = Relationship(
        back_populates="tournament_round",
        sa_relationship_kwargs={"order_by": "Match.tree_position"},
    )
