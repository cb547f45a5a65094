"""
Courts and dispatch API routes.
The queue is FIFO by match id; courts are handed out round-robin by id.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from courtside.database import get_session
from courtside.errors import BracketError
from courtside.http_errors import to_http_exception
from courtside.models.court import Court
from courtside.models.team import MatchCategory
from courtside.routes.brackets import MatchResponse
from courtside.services.dispatch import CourtDispatcher

router = APIRouter()


class CourtCreate(BaseModel):
    name: str
    note: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class CourtUpdate(BaseModel):
    is_closed: Optional[bool] = None
    note: Optional[str] = None


class CourtResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_closed: bool
    note: Optional[str] = None
    updated_at: datetime


class CourtStatusResponse(CourtResponse):
    busy: bool


class AssignmentResponse(BaseModel):
    match: MatchResponse
    court: CourtResponse


class AssignRequest(BaseModel):
    court_id: int


@router.post("/courts", response_model=CourtResponse, status_code=201)
def create_court(payload: CourtCreate, session: Session = Depends(get_session)):
    if session.exec(select(Court).where(Court.name == payload.name)).first():
        raise HTTPException(status_code=409, detail=f"Court '{payload.name}' already exists")
    court = Court(name=payload.name, note=payload.note)
    session.add(court)
    session.commit()
    session.refresh(court)
    return court


@router.get("/courts", response_model=List[CourtStatusResponse])
def list_courts(session: Session = Depends(get_session)):
    """Courts in id order with current occupancy"""
    dispatcher = CourtDispatcher(session)
    busy = dispatcher.busy_court_ids()
    return [
        CourtStatusResponse(**CourtResponse.model_validate(c).model_dump(), busy=c.id in busy)
        for c in dispatcher.courts()
    ]


@router.patch("/courts/{court_id}", response_model=CourtResponse)
def update_court(court_id: int, payload: CourtUpdate, session: Session = Depends(get_session)):
    """Open/close a court. A closed court finishes its current match but gets no new ones."""
    court = session.get(Court, court_id)
    if not court:
        raise HTTPException(status_code=404, detail="Court not found")
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(court, field, value)
    court.updated_at = datetime.utcnow()
    session.add(court)
    session.commit()
    session.refresh(court)
    return court


@router.get("/courts/queue", response_model=List[MatchResponse])
def dispatch_queue(
    category: Optional[MatchCategory] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Matches waiting for a court, in the order they will get one"""
    return CourtDispatcher(session).pending_matches(category)


@router.post("/courts/dispatch/next", response_model=Optional[AssignmentResponse])
def dispatch_next(
    category: Optional[MatchCategory] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Assign the oldest waiting match to the next free court. null when nothing can be assigned."""
    pick = CourtDispatcher(session).assign_next(category)
    if pick is None:
        return None
    match, court = pick
    return AssignmentResponse(
        match=MatchResponse.model_validate(match),
        court=CourtResponse.model_validate(court),
    )


@router.post("/courts/dispatch", response_model=List[AssignmentResponse])
def dispatch_all(
    category: Optional[MatchCategory] = Query(default=None),
    session: Session = Depends(get_session),
):
    """One dispatch pass: fill every free court"""
    return [
        AssignmentResponse(match=MatchResponse.model_validate(m), court=CourtResponse.model_validate(c))
        for m, c in CourtDispatcher(session).dispatch_all(category)
    ]


@router.post("/matches/{match_id}/assign", response_model=MatchResponse)
def assign_match(match_id: int, payload: AssignRequest, session: Session = Depends(get_session)):
    try:
        return CourtDispatcher(session).assign(match_id, payload.court_id)
    except BracketError as e:
        raise to_http_exception(e)


@router.post("/matches/{match_id}/unassign", response_model=MatchResponse)
def unassign_match(match_id: int, session: Session = Depends(get_session)):
    try:
        return CourtDispatcher(session).unassign(match_id)
    except BracketError as e:
        raise to_http_exception(e)
