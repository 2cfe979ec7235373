import random
from enum import Enum
from typing import List, Sequence

from league.functions import (
    IdFactory, generate_doubles, generate_manual, generate_mixed_doubles, generate_singles,
)
from league.models import Match, Player, generate_id
from league.scheduler import generate_mixed_doubles_schedule


class MatchMode(str, Enum):
    MIXED = "mixed"
    ROUND_ROBIN = "round_robin"
    DOUBLES = "doubles"
    SINGLES = "singles"
    MANUAL = "manual"


GENERATORS = {
    MatchMode.MIXED: generate_mixed_doubles,
    MatchMode.ROUND_ROBIN: generate_mixed_doubles_schedule,
    MatchMode.DOUBLES: generate_doubles,
    MatchMode.SINGLES: generate_singles,
    MatchMode.MANUAL: generate_manual,
}


def generate_matches(
    mode: MatchMode, pool: Sequence[Player], date: str, rng=None, id_factory: IdFactory = generate_id,
) -> List[Match]:
    return GENERATORS[MatchMode(mode)](pool, date, rng=rng or random, id_factory=id_factory)
