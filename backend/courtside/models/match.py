from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtside.models.round import TournamentRound
    from courtside.models.tournament import Tournament


class MatchStatus(str, Enum):
    pending = "pending"
    scheduled = "scheduled"  # court assigned
    playing = "playing"
    completed = "completed"


SLOT_A = "A"
SLOT_B = "B"


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "match_code", name="uq_match_tournament_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round_id: int = Field(foreign_key="tournamentround.id")
    round_number: int  # denormalized from round for sorting
    tree_position: int  # 0-based slot within the round
    match_code: str  # "R1-M1", third place "3RD"
    is_third_place: bool = Field(default=False)

    # Null side = bye or awaiting progression
    team_a_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team_b_id: Optional[int] = Field(default=None, foreign_key="team.id")

    # Child -> parent link fixed at build time; progression only follows it
    parent_match_id: Optional[int] = Field(default=None, foreign_key="match.id", index=True)
    parent_slot: Optional[str] = Field(default=None)  # "A" | "B"
    # Semifinals only: where the loser goes when a third-place match exists
    loser_match_id: Optional[int] = Field(default=None, foreign_key="match.id")
    loser_slot: Optional[str] = Field(default=None)

    court_id: Optional[int] = Field(default=None, foreign_key="court.id", index=True)
    status: str = Field(default=MatchStatus.pending.value)
    score_a: Optional[int] = Field(default=None)
    score_b: Optional[int] = Field(default=None)
    score_history: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    winner_team_id: Optional[int] = Field(default=None, foreign_key="team.id")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    court_assigned_at: Optional[datetime] = Field(default=None)
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
    tournament_round: "TournamentRound" = Relationship(back_populates="matches")

    @property
    def has_both_teams(self) -> bool:
        return self.team_a_id is not None and self.team_b_id is not None

    def team_in_slot(self, slot: str) -> Optional[int]:
        return self.team_a_id if slot == SLOT_A else self.team_b_id

    def set_team_in_slot(self, slot: str, team_id: int) -> None:
        if slot == SLOT_A:
            self.team_a_id = team_id
        else:
            self.team_b_id = team_id
