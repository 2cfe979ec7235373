import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from league.exceptions import AlreadyAwardedError
from league.models import (
    DailyMvp, Gender, Match, Player, PlayerStat, Team,
)

logger = logging.getLogger(__name__)

WIN_POINTS = 2
LOSS_POINTS = 1
MVP_BONUS_POINTS = 2


def match_outcome(match: Match) -> Optional[Tuple[Team, Team]]:
    """(winner, loser) of a match, or None for a draw."""
    if match.score_a > match.score_b:
        return match.team_a, match.team_b
    if match.score_b > match.score_a:
        return match.team_b, match.team_a
    return None


def _new_stat(player: Player, total_points: int = 0) -> PlayerStat:
    return PlayerStat(
        player_id=player.id,
        name=player.name,
        gender=player.gender,
        total_points=total_points,
    )


def _finalize(stat: PlayerStat) -> None:
    if stat.matches_played > 0:
        stat.win_rate = stat.wins / stat.matches_played * 100
        stat.avg_points = stat.total_points / stat.matches_played
    else:
        stat.win_rate = 0
        stat.avg_points = 0


def calculate_ranking(
    players: Sequence[Player], matches: Iterable[Match], daily_bonus_ids: Iterable[str] = (),
) -> List[PlayerStat]:
    """Rebuild the league table from scratch.

    Every real player starts from their carried-over bonus points. A win is
    worth 2 points and a loss 1; draws and unfinished matches count for
    nothing. Sorted by total points, then win rate, both descending.
    """
    stats: Dict[str, PlayerStat] = {
        p.id: _new_stat(p, total_points=p.bonus_points or 0)
        for p in players if not p.is_guest
    }

    for match in matches:
        if not match.is_finished:
            continue
        outcome = match_outcome(match)
        if outcome is None:
            continue
        winner, loser = outcome
        for p in winner.members:
            s = stats.get(p.id)
            if s:
                s.matches_played += 1
                s.wins += 1
                s.total_points += WIN_POINTS
        for p in loser.members:
            s = stats.get(p.id)
            if s:
                s.matches_played += 1
                s.losses += 1
                s.total_points += LOSS_POINTS

    bonus_ids = set(daily_bonus_ids)
    for s in stats.values():
        _finalize(s)
        s.daily_bonus = s.player_id in bonus_ids

    return sorted(stats.values(), key=lambda s: (-s.total_points, -s.win_rate))


def calculate_daily_mvp(players: Sequence[Player], matches: Iterable[Match], date: str) -> DailyMvp:
    """Best win rate of the day per gender, ties broken by number of wins.

    Draws count as played. Only players with at least one finished match on
    that date are eligible.
    """
    stats: Dict[str, PlayerStat] = {p.id: _new_stat(p) for p in players if not p.is_guest}

    for match in matches:
        if match.date != date or not match.is_finished:
            continue
        outcome = match_outcome(match)
        winner_ids = {p.id for p in outcome[0].members} if outcome else set()
        for p in match.team_a.members + match.team_b.members:
            s = stats.get(p.id)
            if not s:
                continue
            s.matches_played += 1
            if p.id in winner_ids:
                s.wins += 1
                s.total_points += WIN_POINTS
            elif outcome:
                s.losses += 1
                s.total_points += LOSS_POINTS

    played = [s for s in stats.values() if s.matches_played > 0]
    for s in played:
        _finalize(s)

    def best(gender):
        candidates = sorted(
            (s for s in played if s.gender is gender),
            key=lambda s: (-s.win_rate, -s.wins),
        )
        return candidates[0] if candidates else None

    return DailyMvp(male=best(Gender.MALE), female=best(Gender.FEMALE))


def award_daily_mvp(
    players: Sequence[Player], mvp: DailyMvp, date: str, finished_dates: Sequence[str],
) -> Tuple[List[Player], List[str]]:
    """Credit the day's MVPs with bonus points; a date can be awarded once."""
    if date in finished_dates:
        raise AlreadyAwardedError(f"MVP bonus for {date} was already awarded")

    winner_ids = {s.player_id for s in mvp.winners}
    awarded = [
        replace(p, bonus_points=(p.bonus_points or 0) + MVP_BONUS_POINTS) if p.id in winner_ids else p
        for p in players
    ]
    logger.debug("MVP %s: %s", date, sorted(winner_ids))
    return awarded, [*finished_dates, date]


@dataclass
class RankedStat:
    stat: PlayerStat
    current_rank: int
    previous_rank: Optional[int] = None

    @property
    def rank_change(self) -> int:
        if self.previous_rank is None:
            return 0
        return self.previous_rank - self.current_rank


def rank_movements(
    players: Sequence[Player], matches: Sequence[Match], date: str, finished_dates: Sequence[str] = (),
) -> List[RankedStat]:
    """Current ranking with each player's rank before the matches of `date`.

    When the MVP bonus of `date` was already awarded it is part of the
    players' `bonus_points`, so it is taken back out of the earlier ranking.
    """
    mvp = calculate_daily_mvp(players, matches, date)
    winner_ids = {s.player_id for s in mvp.winners}
    current = calculate_ranking(players, matches, daily_bonus_ids=winner_ids)

    baseline = players
    if date in finished_dates:
        baseline = [
            replace(p, bonus_points=max((p.bonus_points or 0) - MVP_BONUS_POINTS, 0)) if p.id in winner_ids else p
            for p in players
        ]
    before = calculate_ranking(baseline, [m for m in matches if m.date != date])
    previous = {s.player_id: i for i, s in enumerate(before, start=1)}
    return [
        RankedStat(stat=s, current_rank=i, previous_rank=previous.get(s.player_id))
        for i, s in enumerate(current, start=1)
    ]


@dataclass
class FormEntry:
    match_id: str
    date: str
    won: bool
    my_score: int
    opp_score: int


def player_form(player_id: str, matches: Sequence[Match], limit: int = 5) -> List[FormEntry]:
    if limit <= 0:
        return []
    played = [
        m for m in matches
        if m.is_finished and player_id in m.player_ids
    ][-limit:]

    form = []
    for m in reversed(played):
        on_a = any(p.id == player_id for p in m.team_a.members)
        mine, theirs = (m.score_a, m.score_b) if on_a else (m.score_b, m.score_a)
        form.append(FormEntry(match_id=m.id, date=m.date, won=mine > theirs, my_score=mine, opp_score=theirs))
    return form


def win_streak(form: Sequence[FormEntry]) -> int:
    streak = 0
    for entry in form:
        if not entry.won:
            break
        streak += 1
    return streak


def avg_score(form: Sequence[FormEntry]) -> float:
    """Average of the player's own game score over the given matches, rounded to one decimal."""
    if not form:
        return 0.0
    return round(sum(entry.my_score for entry in form) / len(form), 1)
