"""
Seeding: the order in which teams occupy bracket slots 0..N-1.
"""
import random
from enum import Enum
from typing import List, Optional, Sequence

from courtside.errors import InvalidSeedingMethod
from courtside.models.team import Team


class SeedingMethod(str, Enum):
    manual = "manual"
    ranking = "ranking"
    random = "random"


def parse_seeding_method(method) -> SeedingMethod:
    try:
        return SeedingMethod(method)
    except ValueError:
        raise InvalidSeedingMethod(method)


def _ranking_key(team: Team):
    # Total order: seeded first by rank, then name, then id
    return (
        team.seed is None,
        team.seed if team.seed is not None else 0,
        team.name.casefold(),
        team.name,
        team.id if team.id is not None else 0,
    )


def assign_seeds(
    teams: Sequence[Team],
    method,
    rng: Optional[random.Random] = None,
) -> List[Team]:
    """Return teams in bracket slot order. The input sequence is left untouched.

    manual  - caller order is the slot order
    ranking - reproducible: same roster, same order
    random  - shuffled once at generation time
    """
    seeding = parse_seeding_method(method)

    if seeding == SeedingMethod.manual:
        return list(teams)
    if seeding == SeedingMethod.ranking:
        return sorted(teams, key=_ranking_key)

    shuffled = list(teams)
    (rng or random).shuffle(shuffled)
    return shuffled
