"""
Bracket engine errors.

Validation errors (InsufficientTeams, InvalidSeedingMethod, InvalidWinner,
MatchNotReady) go back to the caller unchanged. AlreadyCompleted is
recoverable. BracketIntegrityError subclasses mean the stored tree is
inconsistent; the mutation that hit one is rolled back as a whole.
"""
from typing import Optional


class BracketError(Exception):
    """Base class for every error raised by the bracket engine."""


class InsufficientTeams(BracketError):
    def __init__(self, team_count: int):
        self.team_count = team_count
        super().__init__(f"At least 2 teams are required to build a bracket, got {team_count}")


class InvalidSeedingMethod(BracketError):
    def __init__(self, method: object):
        self.method = method
        super().__init__(f"Unknown seeding method: {method!r}")


class InvalidWinner(BracketError):
    def __init__(self, match_id: int, winner_id: Optional[int]):
        self.match_id = match_id
        self.winner_id = winner_id
        super().__init__(f"Team {winner_id} is not playing in match {match_id}")


class AlreadyCompleted(BracketError):
    """Result submitted for a match that already has one.

    same_winner is True when the resubmission repeats the stored winner, which
    idempotent callers treat as success.
    """

    def __init__(self, match_id: int, winner_id: Optional[int], same_winner: bool):
        self.match_id = match_id
        self.winner_id = winner_id
        self.same_winner = same_winner
        super().__init__(f"Match {match_id} is already completed (winner {winner_id})")


class MatchNotReady(BracketError):
    def __init__(self, match_id: int):
        self.match_id = match_id
        super().__init__(f"Match {match_id} does not have both teams yet")


class MatchNotFound(BracketError):
    def __init__(self, match_id: int):
        self.match_id = match_id
        super().__init__(f"Match {match_id} not found")


class TeamNotFound(BracketError):
    def __init__(self, team_ids):
        self.team_ids = list(team_ids)
        super().__init__(f"Teams not found in category: {self.team_ids}")


class BracketAlreadyExists(BracketError):
    def __init__(self, category: str, tournament_id: int):
        self.category = category
        self.tournament_id = tournament_id
        super().__init__(f"Category {category} already has bracket {tournament_id}")


class InvalidTransition(BracketError):
    def __init__(self, match_id: int, current: str, requested: str):
        self.match_id = match_id
        self.current = current
        self.requested = requested
        super().__init__(f"Match {match_id} cannot go from {current} to {requested}")


class CourtNotFound(BracketError):
    def __init__(self, court_id: int):
        self.court_id = court_id
        super().__init__(f"Court {court_id} not found")


class CourtBusy(BracketError):
    def __init__(self, court_id: int):
        self.court_id = court_id
        super().__init__(f"Court {court_id} is closed or hosting an unfinished match")


class MatchNotAssignable(BracketError):
    def __init__(self, match_id: int, reason: str):
        self.match_id = match_id
        self.reason = reason
        super().__init__(f"Match {match_id} cannot be assigned a court: {reason}")


class BracketIntegrityError(BracketError):
    """The stored match tree contradicts itself. Never retried."""


class OrphanMatch(BracketIntegrityError):
    def __init__(self, match_id: int, parent_id: int):
        self.match_id = match_id
        self.parent_id = parent_id
        super().__init__(f"Match {match_id} points at missing parent match {parent_id}")


class SlotConflict(BracketIntegrityError):
    def __init__(self, match_id: int, slot: str, occupant: int, incoming: int):
        self.match_id = match_id
        self.slot = slot
        self.occupant = occupant
        self.incoming = incoming
        super().__init__(
            f"Slot {slot} of match {match_id} already holds team {occupant}, cannot place team {incoming}"
        )
