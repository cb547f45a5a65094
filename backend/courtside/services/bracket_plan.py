"""
Bracket sizing for single elimination.

bracket_size is the smallest power of two >= team_count. The difference is
made up with byes: those teams skip round 1 and enter round 2 directly.
"""
from dataclasses import dataclass

from courtside.errors import InsufficientTeams


@dataclass(frozen=True)
class BracketPlan:
    team_count: int
    bracket_size: int
    bye_count: int
    first_round_match_count: int
    round_count: int

    def slots_in_round(self, round_number: int) -> int:
        """Tree slots in a round: bracket_size / 2^round_number."""
        return self.bracket_size >> round_number

    def matches_in_round(self, round_number: int) -> int:
        """Materialised matches; round 1 holds only the non-bye pairs."""
        if round_number == 1:
            return self.first_round_match_count
        return self.slots_in_round(round_number)

    @property
    def total_matches(self) -> int:
        """Every match eliminates exactly one team, so team_count - 1 (no third place)."""
        return sum(self.matches_in_round(r) for r in range(1, self.round_count + 1))


def size_bracket(team_count: int) -> BracketPlan:
    if team_count < 2:
        raise InsufficientTeams(team_count)

    bracket_size = 1 << (team_count - 1).bit_length()
    bye_count = bracket_size - team_count
    return BracketPlan(
        team_count=team_count,
        bracket_size=bracket_size,
        bye_count=bye_count,
        first_round_match_count=(team_count - bye_count) // 2,
        round_count=bracket_size.bit_length() - 1,
    )


def round_name(round_number: int, round_count: int) -> str:
    """Display name counted back from the final."""
    remaining = round_count - round_number + 1
    if remaining == 1:
        return "Final"
    if remaining == 2:
        return "Semifinal"
    if remaining == 3:
        return "Quarterfinal"
    if remaining == 4:
        return "Round of 16"
    return f"Round {round_number}"
