"""
Team registry API routes.
Registration and edits for teams within a match category.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, or_, select

from courtside.database import get_session
from courtside.models.match import Match
from courtside.models.team import MatchCategory, Team

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


def _check_seed(v):
    if v is not None and v < 1:
        raise ValueError("seed must be >= 1")
    return v


class TeamCreateRequest(BaseModel):
    name: str
    roster: str = ""
    category: MatchCategory
    seed: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, v):
        return _check_seed(v)


class TeamUpdateRequest(BaseModel):
    name: Optional[str] = None
    roster: Optional[str] = None
    seed: Optional[int] = None

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, v):
        return _check_seed(v)


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    roster: str
    category: MatchCategory
    seed: Optional[int] = None
    created_at: datetime


def _name_taken(session: Session, category: str, name: str, exclude_id: Optional[int] = None) -> bool:
    query = select(Team).where(Team.category == category, Team.name == name)
    if exclude_id is not None:
        query = query.where(Team.id != exclude_id)
    return session.exec(query).first() is not None


# ============================================================================
# Team CRUD Endpoints
# ============================================================================


@router.post("/teams", response_model=TeamResponse, status_code=201)
def create_team(payload: TeamCreateRequest, session: Session = Depends(get_session)):
    """Register a team in a category"""
    if _name_taken(session, payload.category.value, payload.name):
        raise HTTPException(status_code=409, detail=f"Team '{payload.name}' already exists in {payload.category.value}")

    team = Team(
        name=payload.name,
        roster=payload.roster,
        category=payload.category.value,
        seed=payload.seed,
    )
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


@router.get("/teams", response_model=List[TeamResponse])
def list_teams(
    category: Optional[MatchCategory] = Query(default=None),
    session: Session = Depends(get_session),
):
    """List teams, optionally for one category, in registration order"""
    query = select(Team)
    if category is not None:
        query = query.where(Team.category == category.value)
    return session.exec(query.order_by(Team.id)).all()


@router.get("/teams/{team_id}", response_model=TeamResponse)
def get_team(team_id: int, session: Session = Depends(get_session)):
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


@router.put("/teams/{team_id}", response_model=TeamResponse)
def update_team(team_id: int, payload: TeamUpdateRequest, session: Session = Depends(get_session)):
    """Administrative edit. Bracket slots reference teams by id, so edits never move a team."""
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")

    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data:
        name = (update_data["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=422, detail="name is required")
        if _name_taken(session, team.category, name, exclude_id=team.id):
            raise HTTPException(status_code=409, detail=f"Team '{name}' already exists in {team.category}")
        update_data["name"] = name

    for field, value in update_data.items():
        setattr(team, field, value)
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


@router.delete("/teams/{team_id}", status_code=204)
def delete_team(team_id: int, session: Session = Depends(get_session)):
    """Delete a team that no bracket references"""
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")

    in_use = session.exec(
        select(Match).where(or_(Match.team_a_id == team_id, Match.team_b_id == team_id))
    ).first()
    if in_use is not None:
        raise HTTPException(status_code=409, detail="Team is placed in a bracket; clear the bracket first")

    session.delete(team)
    session.commit()
