"""
Bracket generation and teardown for a category.

generate_bracket() is the one entry point that creates a Tournament: it loads
the roster, seeds it, sizes the bracket and hands off to BracketBuilder, all
inside one transaction. Nothing is written when sizing fails.
"""
import logging
import random
from typing import Any, Dict, List, Optional, Sequence

from sqlmodel import Session, select

from courtside import config
from courtside.errors import BracketAlreadyExists, TeamNotFound
from courtside.models.match import Match
from courtside.models.participant import TournamentTeam
from courtside.models.round import TournamentRound
from courtside.models.team import MatchCategory, Team
from courtside.models.tournament import Tournament, TournamentStatus
from courtside.services.bracket_builder import BracketBuilder, ByePolicy
from courtside.services.bracket_plan import round_name, size_bracket
from courtside.services.locks import category_lock
from courtside.services.seeding import assign_seeds, parse_seeding_method

logger = logging.getLogger(__name__)


def current_tournament(session: Session, category) -> Optional[Tournament]:
    """The category's live bracket (anything not cancelled), newest first."""
    return session.exec(
        select(Tournament)
        .where(
            Tournament.category == MatchCategory(category).value,
            Tournament.status != TournamentStatus.cancelled.value,
        )
        .order_by(Tournament.id.desc())
    ).first()


def load_roster(session: Session, category, team_ids: Optional[Sequence[int]] = None) -> List[Team]:
    """Registered teams of a category, by id. With team_ids, exactly those teams in that order."""
    category_value = MatchCategory(category).value
    if team_ids is None:
        return list(
            session.exec(select(Team).where(Team.category == category_value).order_by(Team.id)).all()
        )

    found = session.exec(
        select(Team).where(Team.id.in_(list(team_ids)), Team.category == category_value)
    ).all()
    by_id = {t.id: t for t in found}
    missing = [tid for tid in team_ids if tid not in by_id]
    if missing:
        raise TeamNotFound(missing)
    return [by_id[tid] for tid in team_ids]


def generate_bracket(
    session: Session,
    category,
    seeding_method=None,
    team_ids: Optional[Sequence[int]] = None,
    name: Optional[str] = None,
    bye_policy=None,
    third_place: Optional[bool] = None,
    replace: bool = False,
    rng: Optional[random.Random] = None,
) -> Tournament:
    category = MatchCategory(category)
    method = parse_seeding_method(seeding_method or config.DEFAULT_SEEDING_METHOD)
    policy = ByePolicy(bye_policy or config.BRACKET_BYE_POLICY)
    has_third_place = config.BRACKET_THIRD_PLACE if third_place is None else third_place

    with category_lock(category.value):
        existing = current_tournament(session, category)
        if existing is not None and not replace:
            raise BracketAlreadyExists(category.value, existing.id)

        teams = load_roster(session, category, team_ids)
        plan = size_bracket(len(teams))
        seeded = assign_seeds(teams, method, rng=rng)

        try:
            if existing is not None:
                _delete_category_brackets(session, category)

            tournament = Tournament(
                name=name or f"{category.value.replace('_', ' ').title()} Championship",
                category=category.value,
                seeding_method=method.value,
                bye_policy=policy.value,
                has_third_place=bool(has_third_place),
                team_count=plan.team_count,
                bracket_size=plan.bracket_size,
                total_rounds=plan.round_count,
                status=TournamentStatus.active.value,
            )
            session.add(tournament)
            session.flush()

            BracketBuilder(session).build(tournament, seeded, plan)
            session.commit()
        except Exception:
            session.rollback()
            raise

    session.refresh(tournament)
    logger.info(
        "Generated %s bracket %d (%s seeding, %s byes)",
        category.value,
        tournament.id,
        method.value,
        policy.value,
    )
    return tournament


def _delete_category_brackets(session: Session, category: MatchCategory) -> int:
    tournaments = session.exec(select(Tournament).where(Tournament.category == category.value)).all()
    deleted_matches = 0
    for tournament in tournaments:
        matches = session.exec(select(Match).where(Match.tournament_id == tournament.id)).all()
        # Drop self references first so match rows can go in any order
        for match in matches:
            match.parent_match_id = None
            match.loser_match_id = None
            session.add(match)
        session.flush()
        for match in matches:
            session.delete(match)
        deleted_matches += len(matches)

        for participant in session.exec(
            select(TournamentTeam).where(TournamentTeam.tournament_id == tournament.id)
        ).all():
            session.delete(participant)
        for tournament_round in session.exec(
            select(TournamentRound).where(TournamentRound.tournament_id == tournament.id)
        ).all():
            session.delete(tournament_round)
        session.flush()
        session.delete(tournament)
    session.flush()
    return deleted_matches


def clear_bracket(session: Session, category) -> int:
    """Delete every bracket of a category. Returns the number of matches removed."""
    category = MatchCategory(category)
    with category_lock(category.value):
        try:
            deleted = _delete_category_brackets(session, category)
            session.commit()
        except Exception:
            session.rollback()
            raise
    logger.info("Cleared %s brackets: %d matches removed", category.value, deleted)
    return deleted


def bracket_snapshot(session: Session, tournament_id: int) -> Optional[Dict[str, Any]]:
    """Tournament, rounds (ascending) and their matches (by tree position) for rendering."""
    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        return None

    rounds = session.exec(
        select(TournamentRound)
        .where(TournamentRound.tournament_id == tournament_id)
        .order_by(TournamentRound.round_number)
    ).all()
    matches = session.exec(
        select(Match)
        .where(Match.tournament_id == tournament_id)
        .order_by(Match.round_number, Match.is_third_place, Match.tree_position)
    ).all()
    participants = session.exec(
        select(TournamentTeam)
        .where(TournamentTeam.tournament_id == tournament_id)
        .order_by(TournamentTeam.initial_position)
    ).all()

    by_round: Dict[int, List[Match]] = {r.round_number: [] for r in rounds}
    for match in matches:
        by_round.setdefault(match.round_number, []).append(match)

    return {
        "tournament": tournament,
        "rounds": [
            {
                "round": r,
                "name": round_name(r.round_number, tournament.total_rounds),
                "matches": by_round.get(r.round_number, []),
            }
            for r in rounds
        ],
        "participants": list(participants),
    }
