from courtside.models.court import Court
from courtside.models.match import SLOT_A, SLOT_B, Match, MatchStatus
from courtside.models.participant import ParticipantStatus, TournamentTeam
from courtside.models.round import RoundStatus, TournamentRound
from courtside.models.team import MatchCategory, Team
from courtside.models.tournament import Tournament, TournamentStatus

__all__ = [
    "Court",
    "Match",
    "MatchStatus",
    "SLOT_A",
    "SLOT_B",
    "TournamentTeam",
    "ParticipantStatus",
    "TournamentRound",
    "RoundStatus",
    "Team",
    "MatchCategory",
    "Tournament",
    "TournamentStatus",
]
