from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.tournament import Tournament


class ParticipantStatus(str, Enum):
    active = "active"
    eliminated = "eliminated"
    champion = "champion"


class TournamentTeam(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "team_id", name="uq_participant_tournament_team"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    team_id: int = Field(foreign_key="team.id")
    seed_number: int  # 1-based position in the seeded order
    initial_position: int  # 0-based bracket slot
    received_bye: bool = Field(default=False)
    status: str = Field(default=ParticipantStatus.active.value)
    eliminated_round: Optional[int] = Field(default=None)
    final_position: Optional[int] = Field(default=None)  # 1 champion, 2 runner-up, 3/4 third-place match

    tournament: "Tournament" = Relationship(back_populates="participants")
