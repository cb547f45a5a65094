"""
Match Progression Engine: a completed match moves its winner up the tree.

record_result() is the only way a match becomes completed. Under the
tournament lock and in one commit it:
  1. validates the winner against the two sides,
  2. stores the result and eliminates the loser,
  3. fills the parent's slot through the stored parent_match_id/parent_slot
     (and the third-place slot through loser_match_id/loser_slot),
  4. closes out the tournament after the final.
Any error rolls the whole thing back.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from courtside.errors import (
    AlreadyCompleted,
    InvalidWinner,
    MatchNotFound,
    MatchNotReady,
    OrphanMatch,
    SlotConflict,
)
from courtside.models.match import Match, MatchStatus
from courtside.models.participant import ParticipantStatus, TournamentTeam
from courtside.models.round import RoundStatus, TournamentRound
from courtside.models.tournament import Tournament, TournamentStatus
from courtside.services.locks import tournament_lock

logger = logging.getLogger(__name__)


@dataclass
class ProgressionResult:
    match_id: int
    winner_team_id: int
    loser_team_id: int
    parent_match_id: Optional[int] = None
    parent_ready: bool = False
    third_place_match_id: Optional[int] = None
    tournament_completed: bool = False


class ProgressionEngine:
    def __init__(self, session: Session):
        self.session = session

    def record_result(
        self,
        match_id: int,
        winner_id: int,
        score_a: Optional[int] = None,
        score_b: Optional[int] = None,
        score_history: Optional[List[Dict[str, Any]]] = None,
    ) -> ProgressionResult:
        match = self.session.get(Match, match_id)
        if match is None:
            raise MatchNotFound(match_id)

        with tournament_lock(match.tournament_id):
            # Re-read inside the lock; a sibling result may have just landed
            self.session.refresh(match)
            try:
                result = self._complete(match, winner_id, score_a, score_b, score_history)
                self.session.commit()
            except AlreadyCompleted:
                self.session.rollback()
                raise
            except Exception:
                self.session.rollback()
                logger.exception("Recording result for match %d failed; nothing applied", match_id)
                raise

        logger.info(
            "Match %d completed: winner %d, loser %d, parent %s",
            match_id,
            result.winner_team_id,
            result.loser_team_id,
            result.parent_match_id,
        )
        return result

    def _complete(
        self,
        match: Match,
        winner_id: int,
        score_a: Optional[int],
        score_b: Optional[int],
        score_history: Optional[List[Dict[str, Any]]],
    ) -> ProgressionResult:
        if match.status == MatchStatus.completed:
            same = match.winner_team_id == winner_id
            if same:
                logger.warning("Duplicate result for match %d ignored", match.id)
            raise AlreadyCompleted(match.id, match.winner_team_id, same_winner=same)
        if not match.has_both_teams:
            raise MatchNotReady(match.id)
        if winner_id not in (match.team_a_id, match.team_b_id):
            raise InvalidWinner(match.id, winner_id)

        loser_id = match.team_b_id if winner_id == match.team_a_id else match.team_a_id
        now = datetime.utcnow()

        match.winner_team_id = winner_id
        match.score_a = score_a
        match.score_b = score_b
        if score_history is not None:
            match.score_history = list(score_history)
        match.status = MatchStatus.completed.value
        match.completed_at = now
        if match.started_at is None:
            match.started_at = now
        self.session.add(match)

        result = ProgressionResult(match_id=match.id, winner_team_id=winner_id, loser_team_id=loser_id)

        if match.is_third_place:
            self._place(match.tournament_id, winner_id, 3)
            self._place(match.tournament_id, loser_id, 4)
        else:
            self._eliminate(match.tournament_id, loser_id, match.round_number)

        if match.parent_match_id is not None:
            parent = self._fill_slot(match, match.parent_match_id, match.parent_slot, winner_id)
            result.parent_match_id = parent.id
            result.parent_ready = parent.has_both_teams
        if match.loser_match_id is not None:
            third = self._fill_slot(match, match.loser_match_id, match.loser_slot, loser_id)
            result.third_place_match_id = third.id

        if match.parent_match_id is None and not match.is_third_place:
            self._crown(match, winner_id, loser_id)

        self.session.flush()
        self._update_round_status(match)
        result.tournament_completed = self._maybe_complete_tournament(match.tournament_id)
        return result

    def _fill_slot(self, child: Match, target_id: int, slot: Optional[str], team_id: int) -> Match:
        target = self.session.get(Match, target_id, populate_existing=True)
        if target is None or target.tournament_id != child.tournament_id:
            raise OrphanMatch(child.id, target_id)

        occupant = target.team_in_slot(slot)
        if occupant is not None and occupant != team_id:
            raise SlotConflict(target.id, slot, occupant, team_id)
        if occupant is None:
            target.set_team_in_slot(slot, team_id)
            self.session.add(target)
        return target

    def _participant(self, tournament_id: int, team_id: int) -> Optional[TournamentTeam]:
        return self.session.exec(
            select(TournamentTeam).where(
                TournamentTeam.tournament_id == tournament_id,
                TournamentTeam.team_id == team_id,
            )
        ).first()

    def _eliminate(self, tournament_id: int, team_id: int, round_number: int) -> None:
        participant = self._participant(tournament_id, team_id)
        if participant is None:
            logger.warning("No participation record for team %d in tournament %d", team_id, tournament_id)
            return
        participant.status = ParticipantStatus.eliminated.value
        participant.eliminated_round = round_number
        self.session.add(participant)

    def _place(self, tournament_id: int, team_id: int, position: int) -> None:
        participant = self._participant(tournament_id, team_id)
        if participant is None:
            return
        participant.final_position = position
        self.session.add(participant)

    def _crown(self, final: Match, winner_id: int, loser_id: int) -> None:
        champion = self._participant(final.tournament_id, winner_id)
        if champion is not None:
            champion.status = ParticipantStatus.champion.value
            champion.final_position = 1
            self.session.add(champion)
        self._place(final.tournament_id, loser_id, 2)

        tournament = self.session.get(Tournament, final.tournament_id)
        tournament.champion_team_id = winner_id
        self.session.add(tournament)

    def _update_round_status(self, match: Match) -> None:
        tournament_round = self.session.get(TournamentRound, match.round_id)
        remaining = self.session.exec(
            select(Match).where(
                Match.round_id == match.round_id,
                Match.status != MatchStatus.completed.value,
            )
        ).first()
        if remaining is not None:
            if tournament_round.status == RoundStatus.pending:
                tournament_round.status = RoundStatus.active.value
                self.session.add(tournament_round)
            return

        tournament_round.status = RoundStatus.completed.value
        self.session.add(tournament_round)
        next_round = self.session.exec(
            select(TournamentRound).where(
                TournamentRound.tournament_id == match.tournament_id,
                TournamentRound.round_number == match.round_number + 1,
            )
        ).first()
        if next_round is not None and next_round.status == RoundStatus.pending:
            next_round.status = RoundStatus.active.value
            self.session.add(next_round)

    def _maybe_complete_tournament(self, tournament_id: int) -> bool:
        tournament = self.session.get(Tournament, tournament_id)
        if tournament.status == TournamentStatus.completed:
            return True
        # Final plus the third-place match, if any: the matches without a parent
        open_terminal = self.session.exec(
            select(Match).where(
                Match.tournament_id == tournament_id,
                Match.parent_match_id.is_(None),
                Match.status != MatchStatus.completed.value,
            )
        ).first()
        if open_terminal is not None:
            return False

        tournament.status = TournamentStatus.completed.value
        tournament.completed_at = datetime.utcnow()
        self.session.add(tournament)
        logger.info("Tournament %d completed, champion team %s", tournament_id, tournament.champion_team_id)
        return True

    def replay_advancement(self, tournament_id: int) -> int:
        """Re-apply parent and third-place fills for every completed match, in id order.

        Repair pass; idempotent. Returns the number of slots that were empty and got filled.
        """
        with tournament_lock(tournament_id):
            try:
                filled = 0
                completed = self.session.exec(
                    select(Match)
                    .where(
                        Match.tournament_id == tournament_id,
                        Match.status == MatchStatus.completed.value,
                        Match.winner_team_id.is_not(None),
                    )
                    .order_by(Match.id)
                ).all()
                for match in completed:
                    loser_id = match.team_b_id if match.winner_team_id == match.team_a_id else match.team_a_id
                    for target_id, slot, team_id in (
                        (match.parent_match_id, match.parent_slot, match.winner_team_id),
                        (match.loser_match_id, match.loser_slot, loser_id),
                    ):
                        if target_id is None or team_id is None:
                            continue
                        target = self.session.get(Match, target_id, populate_existing=True)
                        before = target.team_in_slot(slot) if target is not None else None
                        self._fill_slot(match, target_id, slot, team_id)
                        if before is None:
                            filled += 1
                self.session.commit()
            except Exception:
                self.session.rollback()
                logger.exception("Advancement replay for tournament %d failed", tournament_id)
                raise
        logger.info("Advancement replay for tournament %d filled %d slots", tournament_id, filled)
        return filled
