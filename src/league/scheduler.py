"""Round-robin mixed doubles with fatigue-aware play order.

Men rotate through the women by a growing offset, one round per woman. The
resulting matches are then ordered greedily so that nobody plays two matches
in a row unless every remaining match would force it.
"""
import logging
import random
from typing import List, Sequence, Tuple

from league.functions import IdFactory, new_match, require_mixed, split_by_gender
from league.models import Doubles, Match, Player, generate_id

logger = logging.getLogger(__name__)


def build_rotation(men: Sequence[Player], women: Sequence[Player]) -> List[List[Tuple[Player, Player]]]:
    """One round per offset r: men[i] partners women[(i + r) % W]."""
    return [
        [(man, women[(i + r) % len(women)]) for i, man in enumerate(men)]
        for r in range(len(women))
    ]


def pair_rounds(
    rounds: Sequence[Sequence[Tuple[Player, Player]]], date: str, id_factory: IdFactory = generate_id,
) -> List[Match]:
    matches = []
    for pairs in rounds:
        teams = [Doubles(id=id_factory(), player_a=man, player_b=woman) for man, woman in pairs]
        # odd team count: the last team of the round sits out
        for k in range(0, len(teams) - 1, 2):
            matches.append(new_match(date, teams[k], teams[k + 1], id_factory))
    return matches


def order_by_fatigue(matches: Sequence[Match], rng=None) -> List[Match]:
    rng = rng or random
    pool = list(matches)
    schedule: List[Match] = []

    while pool:
        if schedule:
            busy = schedule[-1].player_ids
            rested = [m for m in pool if not (m.player_ids & busy)]
        else:
            rested = pool
        if not rested:
            logger.debug("No rested match left after %s, repeating players", schedule[-1].id)
            rested = pool
        pick = rng.choice(rested)
        pool.remove(pick)
        schedule.append(pick)

    return schedule


def count_back_to_back(schedule: Sequence[Match]) -> int:
    return sum(
        1 for prev, nxt in zip(schedule, schedule[1:])
        if prev.player_ids & nxt.player_ids
    )


def generate_mixed_doubles_schedule(
    pool: Sequence[Player], date: str, rng=None, id_factory: IdFactory = generate_id,
) -> List[Match]:
    """Round-robin mixed doubles session.

    Raises NotEnoughPlayersError with fewer than 2 men or 2 women. An empty
    list means no valid combination was found; the caller decides what to
    tell the user.
    """
    men, women = split_by_gender(pool)
    require_mixed(men, women)

    candidates = pair_rounds(build_rotation(men, women), date, id_factory)
    if not candidates:
        logger.info("Round robin for %d men and %d women produced no matches", len(men), len(women))
        return []

    schedule = order_by_fatigue(candidates, rng)
    logger.debug(
        "Round robin: %d matches, %d back-to-back", len(schedule), count_back_to_back(schedule)
    )
    return schedule
