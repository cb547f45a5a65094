"""
Runtime: match start, live score and final result.
A final result runs the progression engine, which fills the next-round slot.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from courtside.database import get_session
from courtside.errors import AlreadyCompleted, BracketError
from courtside.http_errors import to_http_exception
from courtside.models.match import Match
from courtside.models.tournament import Tournament
from courtside.routes.brackets import MatchResponse
from courtside.services.progression import ProgressionEngine
from courtside.services.scoring import start_match, update_live_score

logger = logging.getLogger(__name__)

router = APIRouter()


class LiveScoreUpdate(BaseModel):
    score_a: int
    score_b: int


class MatchResultRequest(BaseModel):
    winner_team_id: int
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    score_history: Optional[List[Dict[str, Any]]] = None


class MatchResultResponse(BaseModel):
    match: MatchResponse
    advanced: bool = False
    parent_match_id: Optional[int] = None
    parent_ready: bool = False
    third_place_match_id: Optional[int] = None
    tournament_completed: bool = False


@router.post("/matches/{match_id}/start", response_model=MatchResponse)
def start(match_id: int, session: Session = Depends(get_session)):
    """scheduled -> playing. The match must already be on a court."""
    try:
        return start_match(session, match_id)
    except BracketError as e:
        raise to_http_exception(e)


@router.post("/matches/{match_id}/score", response_model=MatchResponse)
def live_score(match_id: int, payload: LiveScoreUpdate, session: Session = Depends(get_session)):
    try:
        return update_live_score(session, match_id, payload.score_a, payload.score_b)
    except BracketError as e:
        raise to_http_exception(e)


@router.post("/matches/{match_id}/result", response_model=MatchResultResponse)
def record_result(match_id: int, payload: MatchResultRequest, session: Session = Depends(get_session)):
    """Complete a match. Resubmitting the same winner is a no-op; a different winner is a conflict."""
    engine = ProgressionEngine(session)
    try:
        result = engine.record_result(
            match_id,
            payload.winner_team_id,
            score_a=payload.score_a,
            score_b=payload.score_b,
            score_history=payload.score_history,
        )
    except AlreadyCompleted as e:
        if not e.same_winner:
            raise to_http_exception(e)
        match = session.get(Match, match_id)
        return MatchResultResponse(match=MatchResponse.model_validate(match), advanced=False)
    except BracketError as e:
        raise to_http_exception(e)

    match = session.get(Match, match_id)
    return MatchResultResponse(
        match=MatchResponse.model_validate(match),
        advanced=result.parent_match_id is not None or result.third_place_match_id is not None,
        parent_match_id=result.parent_match_id,
        parent_ready=result.parent_ready,
        third_place_match_id=result.third_place_match_id,
        tournament_completed=result.tournament_completed,
    )


@router.post("/tournaments/{tournament_id}/replay-advancement", response_model=Dict[str, int])
def replay_advancement(tournament_id: int, session: Session = Depends(get_session)):
    """Re-apply winner advancement for every completed match (repair). Idempotent."""
    if not session.get(Tournament, tournament_id):
        raise HTTPException(status_code=404, detail="Tournament not found")
    try:
        filled = ProgressionEngine(session).replay_advancement(tournament_id)
    except BracketError as e:
        raise to_http_exception(e)
    return {"filled_slots": filled}
