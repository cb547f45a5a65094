"""
Bracket Builder: the single-elimination match tree.

layout_bracket() is pure: it turns a seeded roster and a BracketPlan into
MatchSlot descriptors. BracketBuilder persists a layout as rounds, matches and
participation records.

Tree shape:
  - Round 1 holds one match per pair of non-bye teams.
  - Round 2 entrants are, in order, the winners of round 1 matches 0..F-1
    followed by the bye teams; consecutive entrants share a round 2 match.
    A round 2 match therefore has zero, one or two teams known at build time.
  - Rounds 3..N start empty.
  - Round r position i feeds round r+1 position i // 2, side A when i is even
    and side B when odd. That link is stored on the child match and is the
    only thing progression follows.
  - The optional third-place match sits in the final round at position 1 and
    is fed by the semifinal losers. It has no parent.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session

from courtside.models.match import SLOT_A, SLOT_B, Match, MatchStatus
from courtside.models.participant import TournamentTeam
from courtside.models.round import RoundStatus, TournamentRound
from courtside.models.team import Team
from courtside.models.tournament import Tournament
from courtside.services.bracket_plan import BracketPlan

logger = logging.getLogger(__name__)

THIRD_PLACE_CODE = "3RD"
THIRD_PLACE_MIN_TEAMS = 4


class ByePolicy(str, Enum):
    # Seeds past the first 2*F entries get the byes
    trailing = "trailing"
    # The first bye_count seeds get the byes
    top_seeds = "top_seeds"


@dataclass
class MatchSlot:
    round_number: int
    tree_position: int
    team_a_id: Optional[int] = None
    team_b_id: Optional[int] = None
    parent_position: Optional[int] = None
    parent_slot: Optional[str] = None
    loser_position: Optional[int] = None
    loser_slot: Optional[str] = None
    is_third_place: bool = False

    @property
    def match_code(self) -> str:
        if self.is_third_place:
            return THIRD_PLACE_CODE
        return f"R{self.round_number}-M{self.tree_position + 1}"


@dataclass
class BracketLayout:
    plan: BracketPlan
    slots: List[MatchSlot]
    first_round_team_ids: List[int]
    bye_team_ids: List[int]

    def round_slots(self, round_number: int) -> List[MatchSlot]:
        """Tree slots of a round in position order (third-place match excluded)."""
        return sorted(
            (s for s in self.slots if s.round_number == round_number and not s.is_third_place),
            key=lambda s: s.tree_position,
        )

    @property
    def third_place(self) -> Optional[MatchSlot]:
        return next((s for s in self.slots if s.is_third_place), None)


def side_for_position(tree_position: int) -> str:
    return SLOT_A if tree_position % 2 == 0 else SLOT_B


def partition_byes(
    seeded_team_ids: Sequence[int],
    plan: BracketPlan,
    bye_policy=ByePolicy.trailing,
) -> Tuple[List[int], List[int]]:
    """Split the seeded roster into (round 1 players, bye teams). Both keep seeded order."""
    policy = ByePolicy(bye_policy)
    if policy == ByePolicy.top_seeds:
        return list(seeded_team_ids[plan.bye_count:]), list(seeded_team_ids[: plan.bye_count])

    playing = plan.first_round_match_count * 2
    return list(seeded_team_ids[:playing]), list(seeded_team_ids[playing:])


def layout_bracket(
    seeded_team_ids: Sequence[int],
    plan: BracketPlan,
    bye_policy=ByePolicy.trailing,
    third_place: bool = False,
) -> BracketLayout:
    if len(seeded_team_ids) != plan.team_count:
        raise ValueError(f"Plan is for {plan.team_count} teams, got {len(seeded_team_ids)}")
    if len(set(seeded_team_ids)) != len(seeded_team_ids):
        raise ValueError("A team may occupy only one bracket slot")

    first_round, byes = partition_byes(seeded_team_ids, plan, bye_policy)
    slots: List[MatchSlot] = []

    for i in range(plan.first_round_match_count):
        slots.append(MatchSlot(1, i, first_round[2 * i], first_round[2 * i + 1]))

    if plan.round_count >= 2:
        # None marks "winner of round 1 match i"
        entrants: List[Optional[int]] = [None] * plan.first_round_match_count + byes
        for j in range(plan.slots_in_round(2)):
            slots.append(MatchSlot(2, j, entrants[2 * j], entrants[2 * j + 1]))

        for round_number in range(3, plan.round_count + 1):
            for j in range(plan.slots_in_round(round_number)):
                slots.append(MatchSlot(round_number, j))

    for slot in slots:
        if slot.round_number < plan.round_count:
            slot.parent_position = slot.tree_position // 2
            slot.parent_slot = side_for_position(slot.tree_position)

    if third_place and plan.team_count >= THIRD_PLACE_MIN_TEAMS:
        slots.append(MatchSlot(plan.round_count, 1, is_third_place=True))
        for semi in slots:
            if semi.round_number == plan.round_count - 1 and not semi.is_third_place:
                semi.loser_position = 1
                semi.loser_slot = side_for_position(semi.tree_position)

    return BracketLayout(plan=plan, slots=slots, first_round_team_ids=first_round, bye_team_ids=byes)


class BracketBuilder:
    """Persists a bracket layout for a tournament.

    Everything is flushed, not committed: the caller owns the transaction so a
    tournament and its whole tree land in one commit.
    """

    def __init__(self, session: Session):
        self.session = session

    def build(
        self,
        tournament: Tournament,
        seeded_teams: Sequence[Team],
        plan: BracketPlan,
    ) -> Tuple[List[TournamentRound], List[Match]]:
        layout = layout_bracket(
            [t.id for t in seeded_teams],
            plan,
            bye_policy=tournament.bye_policy,
            third_place=tournament.has_third_place,
        )

        rounds = self._create_rounds(tournament, plan)
        matches = self._create_matches(tournament, layout, rounds)
        self._create_participants(tournament, seeded_teams, layout)

        logger.info(
            "Built bracket for tournament %d: %d teams, size %d, %d byes, %d rounds, %d matches",
            tournament.id,
            plan.team_count,
            plan.bracket_size,
            plan.bye_count,
            plan.round_count,
            len(matches),
        )
        return rounds, matches

    def _create_rounds(self, tournament: Tournament, plan: BracketPlan) -> Dict[int, TournamentRound]:
        rounds: Dict[int, TournamentRound] = {}
        for round_number in range(1, plan.round_count + 1):
            tournament_round = TournamentRound(
                tournament_id=tournament.id,
                round_number=round_number,
                expected_match_count=plan.matches_in_round(round_number),
                status=RoundStatus.active.value if round_number == 1 else RoundStatus.pending.value,
            )
            self.session.add(tournament_round)
            rounds[round_number] = tournament_round
        self.session.flush()
        return rounds

    def _create_matches(
        self,
        tournament: Tournament,
        layout: BracketLayout,
        rounds: Dict[int, TournamentRound],
    ) -> List[Match]:
        # Added in round/position order so ids follow creation order for FIFO dispatch
        ordered = sorted(layout.slots, key=lambda s: (s.round_number, s.is_third_place, s.tree_position))
        by_key: Dict[Tuple[int, int], Match] = {}
        created: List[Tuple[MatchSlot, Match]] = []
        for slot in ordered:
            match = Match(
                tournament_id=tournament.id,
                round_id=rounds[slot.round_number].id,
                round_number=slot.round_number,
                tree_position=slot.tree_position,
                match_code=slot.match_code,
                is_third_place=slot.is_third_place,
                team_a_id=slot.team_a_id,
                team_b_id=slot.team_b_id,
                parent_slot=slot.parent_slot,
                loser_slot=slot.loser_slot,
                status=MatchStatus.pending.value,
            )
            self.session.add(match)
            self.session.flush()
            by_key[(slot.round_number, slot.tree_position)] = match
            created.append((slot, match))

        for slot, match in created:
            if slot.parent_position is not None:
                match.parent_match_id = by_key[(slot.round_number + 1, slot.parent_position)].id
            if slot.loser_position is not None:
                match.loser_match_id = by_key[(slot.round_number + 1, slot.loser_position)].id
            self.session.add(match)
        self.session.flush()
        return [match for _, match in created]

    def _create_participants(
        self,
        tournament: Tournament,
        seeded_teams: Sequence[Team],
        layout: BracketLayout,
    ) -> None:
        byes = set(layout.bye_team_ids)
        for index, team in enumerate(seeded_teams):
            self.session.add(
                TournamentTeam(
                    tournament_id=tournament.id,
                    team_id=team.id,
                    seed_number=index + 1,
                    initial_position=index,
                    received_bye=team.id in byes,
                )
            )
        self.session.flush()
