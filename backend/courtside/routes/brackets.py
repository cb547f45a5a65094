"""
Bracket API routes: generate, inspect and clear a category's single-elimination bracket.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from courtside.database import get_session
from courtside.errors import BracketError
from courtside.http_errors import to_http_exception
from courtside.models.match import Match
from courtside.models.team import MatchCategory
from courtside.models.tournament import Tournament
from courtside.services.bracket_builder import ByePolicy
from courtside.services.bracket_service import bracket_snapshot, clear_bracket, generate_bracket

router = APIRouter()


class BracketGenerateRequest(BaseModel):
    category: MatchCategory
    seeding_method: Optional[str] = None  # "manual" | "ranking" | "random"
    team_ids: Optional[List[int]] = None  # manual order; default is every team in the category
    name: Optional[str] = None
    bye_policy: Optional[ByePolicy] = None
    third_place: Optional[bool] = None
    replace: bool = False


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: MatchCategory
    seeding_method: str
    bye_policy: str
    has_third_place: bool
    team_count: int
    bracket_size: int
    total_rounds: int
    status: str
    champion_team_id: Optional[int] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    round_id: int
    round_number: int
    tree_position: int
    match_code: str
    is_third_place: bool
    team_a_id: Optional[int] = None
    team_b_id: Optional[int] = None
    parent_match_id: Optional[int] = None
    parent_slot: Optional[str] = None
    loser_match_id: Optional[int] = None
    loser_slot: Optional[str] = None
    court_id: Optional[int] = None
    status: str
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    score_history: Optional[List[Dict[str, Any]]] = None
    winner_team_id: Optional[int] = None
    court_assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class RoundResponse(BaseModel):
    id: int
    round_number: int
    name: str
    expected_match_count: int
    status: str
    matches: List[MatchResponse]


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_id: int
    seed_number: int
    initial_position: int
    received_bye: bool
    status: str
    eliminated_round: Optional[int] = None
    final_position: Optional[int] = None


class BracketResponse(BaseModel):
    tournament: TournamentResponse
    rounds: List[RoundResponse]
    participants: List[ParticipantResponse]


def _snapshot_response(session: Session, tournament_id: int) -> BracketResponse:
    snapshot = bracket_snapshot(session, tournament_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return BracketResponse(
        tournament=TournamentResponse.model_validate(snapshot["tournament"]),
        rounds=[
            RoundResponse(
                id=entry["round"].id,
                round_number=entry["round"].round_number,
                name=entry["name"],
                expected_match_count=entry["round"].expected_match_count,
                status=entry["round"].status,
                matches=[MatchResponse.model_validate(m) for m in entry["matches"]],
            )
            for entry in snapshot["rounds"]
        ],
        participants=[ParticipantResponse.model_validate(p) for p in snapshot["participants"]],
    )


@router.post("/brackets", response_model=BracketResponse, status_code=201)
def create_bracket(payload: BracketGenerateRequest, session: Session = Depends(get_session)):
    """Generate the single-elimination bracket for a category"""
    try:
        tournament = generate_bracket(
            session,
            payload.category,
            seeding_method=payload.seeding_method,
            team_ids=payload.team_ids,
            name=payload.name,
            bye_policy=payload.bye_policy,
            third_place=payload.third_place,
            replace=payload.replace,
        )
    except BracketError as e:
        raise to_http_exception(e)
    return _snapshot_response(session, tournament.id)


@router.get("/brackets", response_model=List[TournamentResponse])
def list_brackets(
    category: Optional[MatchCategory] = Query(default=None),
    session: Session = Depends(get_session),
):
    query = select(Tournament)
    if category is not None:
        query = query.where(Tournament.category == category.value)
    return session.exec(query.order_by(Tournament.id)).all()


@router.get("/brackets/{tournament_id}", response_model=BracketResponse)
def get_bracket(tournament_id: int, session: Session = Depends(get_session)):
    """Full bracket: rounds ascending, matches by tree position"""
    return _snapshot_response(session, tournament_id)


@router.get("/brackets/{tournament_id}/matches", response_model=List[MatchResponse])
def list_bracket_matches(tournament_id: int, session: Session = Depends(get_session)):
    """Matches in creation order"""
    if not session.get(Tournament, tournament_id):
        raise HTTPException(status_code=404, detail="Tournament not found")
    return session.exec(select(Match).where(Match.tournament_id == tournament_id).order_by(Match.id)).all()


@router.delete("/brackets/category/{category}", response_model=Dict[str, int])
def delete_bracket(category: MatchCategory, session: Session = Depends(get_session)):
    """Clear a category's bracket so it can be regenerated"""
    deleted = clear_bracket(session, category)
    return {"deleted_matches": deleted}
