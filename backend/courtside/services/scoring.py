"""
Live scoring: scheduled -> playing and in-game score updates.

Completion is not handled here; final results go through ProgressionEngine.
"""
import logging
from datetime import datetime

from sqlmodel import Session

from courtside.errors import InvalidTransition, MatchNotFound, MatchNotReady
from courtside.models.match import Match, MatchStatus
from courtside.services.locks import tournament_lock

logger = logging.getLogger(__name__)


def _load(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if match is None:
        raise MatchNotFound(match_id)
    return match


def start_match(session: Session, match_id: int) -> Match:
    """Court is set and both teams are known; play begins."""
    match = _load(session, match_id)
    with tournament_lock(match.tournament_id):
        session.refresh(match)
        if match.status != MatchStatus.scheduled or match.court_id is None:
            raise InvalidTransition(match.id, match.status, MatchStatus.playing.value)
        if not match.has_both_teams:
            raise MatchNotReady(match.id)

        match.status = MatchStatus.playing.value
        match.started_at = datetime.utcnow()
        match.score_a = 0
        match.score_b = 0
        session.add(match)
        session.commit()
        session.refresh(match)

    logger.info("Match %d started on court %d", match.id, match.court_id)
    return match


def update_live_score(session: Session, match_id: int, score_a: int, score_b: int) -> Match:
    """Set the running score of a match in play and append it to its history."""
    match = _load(session, match_id)
    with tournament_lock(match.tournament_id):
        session.refresh(match)
        if match.status != MatchStatus.playing:
            raise InvalidTransition(match.id, match.status, MatchStatus.playing.value)

        match.score_a = score_a
        match.score_b = score_b
        # Reassign so the JSON column registers the change
        match.score_history = list(match.score_history or []) + [
            {"a": score_a, "b": score_b, "at": datetime.utcnow().isoformat()}
        ]
        session.add(match)
        session.commit()
        session.refresh(match)
    return match
