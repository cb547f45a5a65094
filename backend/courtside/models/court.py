from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Court(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)
    is_closed: bool = Field(default=False)
    note: Optional[str] = Field(default=None)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
