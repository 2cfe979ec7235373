import logging
import random
from typing import Callable, List, Sequence, Tuple

from league.exceptions import NotEnoughPlayersError
from league.models import (
    GUEST_F_ID, GUEST_FEMALE, GUEST_M_ID, GUEST_MALE,
    Doubles, Gender, Match, Player, Singles, Team, generate_id,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


def split_by_gender(pool: Sequence[Player]) -> Tuple[List[Player], List[Player]]:
    """Split a pool into men and women; guests go to their sentinel's side."""
    men = [p for p in pool if p.id == GUEST_M_ID or (p.gender is Gender.MALE and p.id != GUEST_F_ID)]
    women = [p for p in pool if p.id == GUEST_F_ID or (p.gender is Gender.FEMALE and p.id != GUEST_M_ID)]
    return men, women


def require_mixed(men: Sequence[Player], women: Sequence[Player]) -> None:
    if len(men) < 2 or len(women) < 2:
        raise NotEnoughPlayersError(
            f"Mixed doubles needs at least 2 men and 2 women (got {len(men)} and {len(women)})"
        )


def _shuffled(players: Sequence[Player], rng) -> List[Player]:
    items = list(players)
    rng.shuffle(items)
    return items


def new_match(date: str, team_a: Team, team_b: Team, id_factory: IdFactory) -> Match:
    return Match(id=id_factory(), date=date, team_a=team_a, team_b=team_b)


def generate_mixed_doubles(
    pool: Sequence[Player], date: str, rng=None, id_factory: IdFactory = generate_id,
) -> List[Match]:
    """Shuffle men and women separately and pair them index-wise into teams.

    Players of the larger group beyond the smaller group's size sit out.
    """
    rng = rng or random
    men, women = split_by_gender(pool)
    require_mixed(men, women)

    men = _shuffled(men, rng)
    women = _shuffled(women, rng)
    count = min(len(men), len(women))
    teams = [Doubles(id=id_factory(), player_a=men[i], player_b=women[i]) for i in range(count)]

    matches = [
        new_match(date, teams[i], teams[i + 1], id_factory)
        for i in range(0, count - 1, 2)
    ]
    logger.debug("Mixed doubles: %d men, %d women -> %d matches", len(men), len(women), len(matches))
    return matches


def generate_doubles(
    pool: Sequence[Player], date: str, rng=None, id_factory: IdFactory = generate_id,
) -> List[Match]:
    rng = rng or random
    if len(pool) < 4:
        raise NotEnoughPlayersError(f"Doubles needs at least 4 players (got {len(pool)})")

    shuffled = _shuffled(pool, rng)
    matches = []
    for i in range(0, len(shuffled) - 3, 4):
        p1, p2, p3, p4 = shuffled[i:i + 4]
        matches.append(new_match(
            date,
            Doubles(id=id_factory(), player_a=p1, player_b=p2),
            Doubles(id=id_factory(), player_a=p3, player_b=p4),
            id_factory,
        ))
    logger.debug("Doubles: %d players -> %d matches", len(pool), len(matches))
    return matches


def generate_singles(
    pool: Sequence[Player], date: str, rng=None, id_factory: IdFactory = generate_id,
) -> List[Match]:
    rng = rng or random
    if len(pool) < 2:
        raise NotEnoughPlayersError(f"Singles needs at least 2 players (got {len(pool)})")

    shuffled = _shuffled(pool, rng)
    matches = []
    for i in range(0, len(shuffled) - 1, 2):
        matches.append(new_match(
            date,
            Singles(id=id_factory(), player=shuffled[i]),
            Singles(id=id_factory(), player=shuffled[i + 1]),
            id_factory,
        ))
    logger.debug("Singles: %d players -> %d matches", len(pool), len(matches))
    return matches


# Fill order for manual slots: team A player A, team A player B, team B player A, team B player B
MANUAL_GUESTS = (GUEST_MALE, GUEST_FEMALE, GUEST_MALE, GUEST_FEMALE)


def generate_manual(
    pool: Sequence[Player], date: str, rng=None, id_factory: IdFactory = generate_id,
) -> List[Match]:
    """Build one match from the first four selected players, guests filling the gaps."""
    slots = list(pool[:4]) + list(MANUAL_GUESTS[len(pool[:4]):])
    return [new_match(
        date,
        Doubles(id=id_factory(), player_a=slots[0], player_b=slots[1]),
        Doubles(id=id_factory(), player_a=slots[2], player_b=slots[3]),
        id_factory,
    )]

