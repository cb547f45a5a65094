"""Translate bracket engine errors into HTTP responses for the routers."""
import logging

from fastapi import HTTPException

from courtside import errors

logger = logging.getLogger(__name__)

_STATUS = (
    (errors.BracketIntegrityError, 500),
    ((errors.MatchNotFound, errors.TeamNotFound, errors.CourtNotFound), 404),
    ((errors.AlreadyCompleted, errors.BracketAlreadyExists, errors.CourtBusy), 409),
    (
        (
            errors.InsufficientTeams,
            errors.InvalidSeedingMethod,
            errors.InvalidWinner,
            errors.MatchNotReady,
            errors.MatchNotAssignable,
            errors.InvalidTransition,
        ),
        422,
    ),
)


def to_http_exception(exc: errors.BracketError) -> HTTPException:
    for kinds, status_code in _STATUS:
        if isinstance(exc, kinds):
            if status_code == 500:
                logger.error("Bracket integrity failure: %s", exc)
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
