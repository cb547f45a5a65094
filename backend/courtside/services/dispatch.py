"""
Court Dispatch Queue.

Ordering: assignable matches (both teams known, no court, still pending) go
strictly by ascending match id, i.e. creation order, across rounds and
categories. Callers may narrow by category.

Courts: offered in ascending id, round-robin from the court after the last
one handed out. Closed courts and courts hosting an unfinished match are
skipped. No free court is not an error; next_assignable() just returns None.

Every write holds the courts lock and then the match's tournament lock, and
re-reads the match first, so a result or a start recorded meanwhile wins.
"""
import logging
from collections import deque
from datetime import datetime
from typing import Deque, Iterable, List, Optional, Set, Tuple

from sqlmodel import Session, select

from courtside.errors import (
    CourtBusy,
    CourtNotFound,
    InvalidTransition,
    MatchNotAssignable,
    MatchNotFound,
)
from courtside.models.court import Court
from courtside.models.match import Match, MatchStatus
from courtside.models.team import MatchCategory
from courtside.models.tournament import Tournament, TournamentStatus
from courtside.services.locks import courts_lock, tournament_lock

logger = logging.getLogger(__name__)


def is_assignable(match: Match) -> bool:
    return match.has_both_teams and match.court_id is None and match.status == MatchStatus.pending


def enqueue_all(matches: Iterable[Match]) -> Deque[Match]:
    """FIFO queue of the assignable matches."""
    return deque(sorted((m for m in matches if is_assignable(m)), key=lambda m: m.id))


def offered_courts(
    courts: Iterable[Court],
    busy_court_ids: Iterable[int] = (),
    after_court_id: Optional[int] = None,
) -> List[Court]:
    """Free courts in the order they are handed out."""
    busy = set(busy_court_ids)
    free = sorted((c for c in courts if not c.is_closed and c.id not in busy), key=lambda c: c.id)
    if after_court_id is None:
        return free
    return [c for c in free if c.id > after_court_id] + [c for c in free if c.id <= after_court_id]


def next_assignable(
    pending_matches: Iterable[Match],
    courts: Iterable[Court],
    busy_court_ids: Iterable[int] = (),
    after_court_id: Optional[int] = None,
) -> Optional[Tuple[Match, Court]]:
    queue = enqueue_all(pending_matches)
    free = offered_courts(courts, busy_court_ids, after_court_id)
    if not queue or not free:
        return None
    return queue[0], free[0]


def plan_dispatch(
    pending_matches: Iterable[Match],
    courts: Iterable[Court],
    busy_court_ids: Iterable[int] = (),
    after_court_id: Optional[int] = None,
) -> List[Tuple[Match, Court]]:
    """One dispatch pass: each free court gets at most one match."""
    return list(zip(enqueue_all(pending_matches), offered_courts(courts, busy_court_ids, after_court_id)))


class CourtDispatcher:
    def __init__(self, session: Session):
        self.session = session

    def pending_matches(self, category=None) -> List[Match]:
        query = (
            select(Match)
            .join(Tournament, Tournament.id == Match.tournament_id)
            .where(
                Tournament.status == TournamentStatus.active.value,
                Match.status == MatchStatus.pending.value,
                Match.court_id.is_(None),
                Match.team_a_id.is_not(None),
                Match.team_b_id.is_not(None),
            )
            .order_by(Match.id)
        )
        if category is not None:
            query = query.where(Tournament.category == MatchCategory(category).value)
        return list(self.session.exec(query).all())

    def courts(self) -> List[Court]:
        return list(self.session.exec(select(Court).order_by(Court.id)).all())

    def busy_court_ids(self) -> Set[int]:
        rows = self.session.exec(
            select(Match.court_id).where(
                Match.court_id.is_not(None),
                Match.status != MatchStatus.completed.value,
            )
        ).all()
        return set(rows)

    def last_assigned_court_id(self) -> Optional[int]:
        last = self.session.exec(
            select(Match)
            .where(Match.court_assigned_at.is_not(None), Match.court_id.is_not(None))
            .order_by(Match.court_assigned_at.desc(), Match.id.desc())
        ).first()
        return last.court_id if last else None

    def _apply(self, match: Match, court: Court) -> None:
        match.court_id = court.id
        match.court_assigned_at = datetime.utcnow()
        match.status = MatchStatus.scheduled.value
        self.session.add(match)

    def _claim(self, match: Match, court: Court) -> bool:
        """Put a queued match on a court under its tournament lock.

        Returns False when the match stopped being assignable after it was
        read, e.g. a result landed in the meantime.
        """
        # Lock order: courts, then tournament
        with tournament_lock(match.tournament_id):
            self.session.refresh(match)
            if not is_assignable(match):
                logger.info("Match %d changed while queued (%s); skipped", match.id, match.status)
                return False
            try:
                self._apply(match, court)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            self.session.refresh(match)
        return True

    def assign_next(self, category=None) -> Optional[Tuple[Match, Court]]:
        with courts_lock():
            while True:
                pick = next_assignable(
                    self.pending_matches(category),
                    self.courts(),
                    self.busy_court_ids(),
                    self.last_assigned_court_id(),
                )
                if pick is None:
                    return None
                match, court = pick
                if self._claim(match, court):
                    break

        logger.info("Dispatched match %d (%s) to court %s", match.id, match.match_code, court.name)
        return match, court

    def dispatch_all(self, category=None) -> List[Tuple[Match, Court]]:
        with courts_lock():
            plan = plan_dispatch(
                self.pending_matches(category),
                self.courts(),
                self.busy_court_ids(),
                self.last_assigned_court_id(),
            )
            assigned = [(match, court) for match, court in plan if self._claim(match, court)]

        if assigned:
            logger.info("Dispatch pass assigned %d matches", len(assigned))
        return assigned

    def assign(self, match_id: int, court_id: int) -> Match:
        """Manual assignment of a specific match to a specific court."""
        with courts_lock():
            match = self.session.get(Match, match_id)
            if match is None:
                raise MatchNotFound(match_id)
            court = self.session.get(Court, court_id)
            if court is None:
                raise CourtNotFound(court_id)

            with tournament_lock(match.tournament_id):
                self.session.refresh(match)
                if match.status == MatchStatus.completed:
                    raise MatchNotAssignable(match.id, "match is completed")
                if match.court_id is not None:
                    raise MatchNotAssignable(match.id, f"already on court {match.court_id}")
                if not match.has_both_teams:
                    raise MatchNotAssignable(match.id, "teams not known yet")
                if court.is_closed or court.id in self.busy_court_ids():
                    raise CourtBusy(court.id)

                try:
                    self._apply(match, court)
                    self.session.commit()
                except Exception:
                    self.session.rollback()
                    raise
                self.session.refresh(match)

        logger.info("Manually assigned match %d to court %s", match.id, court.name)
        return match

    def unassign(self, match_id: int) -> Match:
        """Take a match off its court before play starts."""
        with courts_lock():
            match = self.session.get(Match, match_id)
            if match is None:
                raise MatchNotFound(match_id)

            with tournament_lock(match.tournament_id):
                # start_match may have just moved it to playing
                self.session.refresh(match)
                if match.status != MatchStatus.scheduled:
                    raise InvalidTransition(match.id, match.status, MatchStatus.pending.value)

                match.court_id = None
                match.court_assigned_at = None
                match.status = MatchStatus.pending.value
                self.session.add(match)
                self.session.commit()
                self.session.refresh(match)

        logger.info("Unassigned match %d", match.id)
        return match
