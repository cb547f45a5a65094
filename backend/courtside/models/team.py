from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, SQLModel


class MatchCategory(str, Enum):
    mens_singles = "mens_singles"
    womens_singles = "womens_singles"
    mens_doubles = "mens_doubles"
    womens_doubles = "womens_doubles"
    mixed_doubles = "mixed_doubles"


class Team(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("category", "name", name="uq_team_category_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    roster: str = Field(default="")  # Player names, e.g. "Lin Dan / Chen Long"
    category: MatchCategory = Field(sa_column=Column(String, index=True))
    seed: Optional[int] = Field(default=None)  # 1-based seed rank (1=highest)
    created_at: datetime = Field(default_factory=datetime.utcnow)
