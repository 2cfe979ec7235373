import datetime
import logging
import random
from dataclasses import replace
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import PlainTextResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import LEAGUE_SLOTS, LeagueORM, MatchORM, PlayerORM, get_session, utcnow
from league.exceptions import AlreadyAwardedError, NotEnoughPlayersError
from league.generate import MatchMode, generate_matches
from league.models import GUESTS, Gender, League, Match, Player, generate_id
from league.ranking import (
    RankedStat, avg_score, award_daily_mvp, calculate_daily_mvp, calculate_ranking,
    player_form, rank_movements, win_streak,
)
from league.schemas import (
    AwardResult, GenerateResult, ItemDeleted, LeagueDetail, LeagueSummary, MatchSchema,
    MvpSchema, PlayerFormSchema, PlayerSchema, RankingRow, SlotDeleted, SlotSchema,
    dump_team, load_team,
)
from league.scheduler import count_back_to_back
from league.share import build_share_text

router = APIRouter(prefix='/league', tags=['League'])
logger = logging.getLogger(__name__)

GENDER_CODES = {
    "M": Gender.MALE, "MALE": Gender.MALE,
    "F": Gender.FEMALE, "FEMALE": Gender.FEMALE,
}

# -- Helpers -------------------------------------------------------------------

def _orm_to_player(p: PlayerORM) -> Player:
    return Player(id=p.id, name=p.name, gender=Gender(p.gender), bonus_points=p.bonus_points)


def _orm_to_match(m: MatchORM) -> Match:
    return Match(
        id=m.id, date=m.date,
        team_a=load_team(m.team_a), team_b=load_team(m.team_b),
        score_a=m.score_a, score_b=m.score_b,
        is_finished=m.is_finished,
    )


def _orm_to_league(row: LeagueORM) -> League:
    """Convert SQLAlchemy ORM object into the League dataclass the engine works on."""
    return League(
        id=row.id, slot=row.slot, name=row.name, end_date=row.end_date,
        players=[_orm_to_player(p) for p in row.players],
        matches=[_orm_to_match(m) for m in row.matches],
        finished_dates=list(row.finished_dates or []),
    )


def _check_slot(slot: int):
    if not 1 <= slot <= LEAGUE_SLOTS:
        raise HTTPException(status_code=404, detail=f"Slot must be between 1 and {LEAGUE_SLOTS}")


async def _find_league_orm(slot: int, session: AsyncSession) -> Optional[LeagueORM]:
    _check_slot(slot)
    return await session.scalar(select(LeagueORM).where(LeagueORM.slot == slot))


async def _get_league_orm(slot: int, session: AsyncSession) -> LeagueORM:
    row = await _find_league_orm(slot, session)
    if not row:
        raise HTTPException(status_code=404, detail="League not found")
    return row


def _get_player_orm(row: LeagueORM, pid: str) -> PlayerORM:
    player = next((p for p in row.players if p.id == pid), None)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return player


def _get_match_orm(row: LeagueORM, mid: str) -> MatchORM:
    match = next((m for m in row.matches if m.id == mid), None)
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


def _parse_date(value: str) -> str:
    try:
        return datetime.date.fromisoformat(value).isoformat()
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid date: {value}") from None


def _parse_player_lines(text: str) -> List[Tuple[str, Gender]]:
    """Parse "Name, M" / "Name, F" lines."""
    parsed = []
    for line in text.splitlines():
        if not line.strip():
            continue
        name, _, code = line.rpartition(",")
        gender = GENDER_CODES.get(code.strip().upper())
        if not name.strip() or gender is None:
            raise HTTPException(status_code=400, detail=f"Expected 'Name, M|F', got: {line.strip()}")
        parsed.append((name.strip(), gender))
    return parsed


def _build_pool(league: League, player_ids: List[str]) -> List[Player]:
    roster = {p.id: p for p in league.players}
    pool = []
    for pid in dict.fromkeys(player_ids):
        player = roster.get(pid) or GUESTS.get(pid)
        if player is None:
            raise HTTPException(status_code=400, detail=f"Unknown player: {pid}")
        pool.append(player)
    return pool


def _add_matches(row: LeagueORM, matches: List[Match]):
    start = max((m.position for m in row.matches), default=-1) + 1
    for offset, m in enumerate(matches):
        row.matches.append(MatchORM(
            id=m.id, position=start + offset, date=m.date,
            team_a=dump_team(m.team_a), team_b=dump_team(m.team_b),
            score_a=m.score_a, score_b=m.score_b,
            is_finished=m.is_finished,
        ))


def _league_summary(row: LeagueORM) -> LeagueSummary:
    return LeagueSummary(
        slot=row.slot, id=row.id, name=row.name, end_date=row.end_date,
        created_at=row.created_at,
        players=len(row.players), matches=len(row.matches),
    )


# Routes

@router.get("/", response_model=List[SlotSchema])
async def list_slots(session: AsyncSession = Depends(get_session)):
    rows = (await session.scalars(select(LeagueORM))).all()
    by_slot = {r.slot: r for r in rows}
    return [
        SlotSchema(slot=slot, league=_league_summary(by_slot[slot]) if slot in by_slot else None)
        for slot in range(1, LEAGUE_SLOTS + 1)
    ]


@router.post("/slots/{slot}", status_code=201, response_model=LeagueSummary)
async def create_league(
    slot: int,
    name: str = Form(...),
    player_lines: str = Form(...),
    end_date: Optional[str] = Form(None),
    overwrite: bool = Form(False),
    session: AsyncSession = Depends(get_session),
):
    if not name.strip():
        raise HTTPException(status_code=400, detail="League name is required")
    entries = _parse_player_lines(player_lines)
    if len(entries) < 2:
        raise HTTPException(status_code=400, detail="A league needs at least 2 players")

    existing = await _find_league_orm(slot, session)
    if existing:
        if not overwrite:
            logger.warning("Slot %d is taken by %r", slot, existing.name)
            raise HTTPException(status_code=409, detail=f"Slot {slot} already holds a league")
        await session.delete(existing)
        await session.flush()
        logger.info("Overwriting slot %d (%r)", slot, existing.name)

    row = LeagueORM(
        id=generate_id(), slot=slot, name=name.strip(),
        end_date=_parse_date(end_date) if end_date else None,
        finished_dates=[], created_at=utcnow(),
        players=[
            PlayerORM(id=generate_id(), position=i, name=pname, gender=gender.value, bonus_points=0)
            for i, (pname, gender) in enumerate(entries)
        ],
        matches=[],
    )
    session.add(row)
    await session.commit()

    logger.info("Created league %r in slot %d with %d players", row.name, slot, len(entries))
    return _league_summary(row)


@router.get("/{slot}", response_model=LeagueDetail)
async def league_view(slot: int, date: Optional[str] = None, session: AsyncSession = Depends(get_session)):
    league = _orm_to_league(await _get_league_orm(slot, session))
    if date:
        day = _parse_date(date)
        league = replace(league, matches=[m for m in league.matches if m.date == day])
    return LeagueDetail.model_validate(league)


@router.post("/{slot}/delete", response_model=SlotDeleted)
async def delete_league(slot: int, session: AsyncSession = Depends(get_session)):
    row = await _find_league_orm(slot, session)
    if row:
        await session.delete(row)
        await session.commit()
        logger.info("Deleted league %r from slot %d", row.name, slot)
    return SlotDeleted(deleted=row is not None)


# -- Roster --------------------------------------------------------------------

@router.post("/{slot}/players", status_code=201, response_model=PlayerSchema)
async def add_player(
    slot: int,
    name: str = Form(...),
    gender: Gender = Form(...),
    bonus_points: int = Form(0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    if not name.strip():
        raise HTTPException(status_code=400, detail="Player name is required")
    row = await _get_league_orm(slot, session)
    player = PlayerORM(
        id=generate_id(),
        position=max((p.position for p in row.players), default=-1) + 1,
        name=name.strip(), gender=gender.value, bonus_points=bonus_points,
    )
    row.players.append(player)
    await session.commit()
    return PlayerSchema.model_validate(_orm_to_player(player))


@router.post("/{slot}/players/{pid}/edit", response_model=PlayerSchema)
async def edit_player(
    slot: int,
    pid: str,
    name: Optional[str] = Form(None),
    gender: Optional[Gender] = Form(None),
    bonus_points: Optional[int] = Form(None, ge=0),
    session: AsyncSession = Depends(get_session),
):
    row = await _get_league_orm(slot, session)
    player = _get_player_orm(row, pid)
    if name is not None and name.strip():
        player.name = name.strip()
    if gender is not None:
        player.gender = gender.value
    if bonus_points is not None:
        player.bonus_points = bonus_points
    await session.commit()
    return PlayerSchema.model_validate(_orm_to_player(player))


@router.post("/{slot}/players/{pid}/delete", response_model=ItemDeleted)
async def delete_player(slot: int, pid: str, session: AsyncSession = Depends(get_session)):
    row = await _get_league_orm(slot, session)
    row.players.remove(_get_player_orm(row, pid))
    await session.commit()
    return ItemDeleted(deleted=pid)


@router.get("/{slot}/players/{pid}/form", response_model=PlayerFormSchema)
async def player_form_view(slot: int, pid: str, limit: int = 5, session: AsyncSession = Depends(get_session)):
    row = await _get_league_orm(slot, session)
    _get_player_orm(row, pid)
    league = _orm_to_league(row)
    form = player_form(pid, league.matches, limit=limit)
    return PlayerFormSchema(
        player_id=pid,
        win_streak=win_streak(form),
        avg_score=avg_score(form),
        recent=form,
    )


# -- Matches -------------------------------------------------------------------

@router.post("/{slot}/matches/generate", response_model=GenerateResult)
async def generate(
    slot: int,
    mode: MatchMode = Form(...),
    date: datetime.date = Form(...),
    player_ids: List[str] = Form(default=[]),
    confirm: bool = Form(False),
    seed: Optional[int] = Form(None),
    session: AsyncSession = Depends(get_session),
):
    row = await _get_league_orm(slot, session)
    league = _orm_to_league(row)
    pool = _build_pool(league, player_ids)

    rng = None
    if mode is MatchMode.ROUND_ROBIN:
        if confirm and seed is None:
            raise HTTPException(status_code=400, detail="Confirm a previewed schedule by sending its seed")
        if seed is None:
            seed = random.getrandbits(32)
        # the same seed and pool rebuild the previewed pairings and play order
        rng = random.Random(seed)

    try:
        matches = generate_matches(mode, pool, date.isoformat(), rng=rng)
    except NotEnoughPlayersError as exc:
        logger.warning("Cannot generate %s matches: %s", mode.value, exc)
        raise HTTPException(status_code=400, detail=str(exc))

    if mode is MatchMode.ROUND_ROBIN and not matches:
        raise HTTPException(status_code=409, detail="No valid combination for the selected players")

    result = GenerateResult(
        committed=False,
        count=len(matches),
        back_to_back=count_back_to_back(matches),
        seed=seed,
        matches=[MatchSchema.model_validate(m) for m in matches],
    )
    if mode is MatchMode.ROUND_ROBIN and not confirm:
        # Nothing is stored until the user confirms the proposed schedule
        return result

    _add_matches(row, matches)
    await session.commit()
    logger.info("Added %d %s matches to slot %d for %s", len(matches), mode.value, slot, date)
    result.committed = True
    return result


@router.post("/{slot}/matches/{mid}/score", response_model=MatchSchema)
async def submit_score(
    slot: int,
    mid: str,
    score_a: int = Form(..., ge=0, le=6),
    score_b: int = Form(..., ge=0, le=6),
    session: AsyncSession = Depends(get_session),
):
    row = await _get_league_orm(slot, session)
    match_orm = _get_match_orm(row, mid)
    match_orm.score_a = score_a
    match_orm.score_b = score_b
    match_orm.is_finished = True
    await session.commit()
    logger.info("Match %s finished %d:%d", mid, score_a, score_b)
    return MatchSchema.model_validate(_orm_to_match(match_orm))


@router.post("/{slot}/matches/{mid}/cancel", response_model=MatchSchema)
async def cancel_finished(slot: int, mid: str, session: AsyncSession = Depends(get_session)):
    row = await _get_league_orm(slot, session)
    match_orm = _get_match_orm(row, mid)
    # scores stay so the user can correct them
    match_orm.is_finished = False
    await session.commit()
    return MatchSchema.model_validate(_orm_to_match(match_orm))


@router.post("/{slot}/matches/{mid}/delete", response_model=ItemDeleted)
async def delete_match(slot: int, mid: str, session: AsyncSession = Depends(get_session)):
    row = await _get_league_orm(slot, session)
    row.matches.remove(_get_match_orm(row, mid))
    await session.commit()
    return ItemDeleted(deleted=mid)


# -- Ranking -------------------------------------------------------------------

@router.get("/{slot}/ranking", response_model=List[RankingRow])
async def ranking_view(slot: int, date: Optional[str] = None, session: AsyncSession = Depends(get_session)):
    league = _orm_to_league(await _get_league_orm(slot, session))
    if date:
        ranked = rank_movements(league.players, league.matches, _parse_date(date), league.finished_dates)
    else:
        ranked = [
            RankedStat(stat=s, current_rank=i)
            for i, s in enumerate(calculate_ranking(league.players, league.matches), start=1)
        ]
    return [RankingRow.from_ranked(r) for r in ranked]


@router.get("/{slot}/mvp", response_model=MvpSchema)
async def mvp_view(slot: int, date: str, session: AsyncSession = Depends(get_session)):
    league = _orm_to_league(await _get_league_orm(slot, session))
    day = _parse_date(date)
    mvp = calculate_daily_mvp(league.players, league.matches, day)
    return MvpSchema(date=day, male=mvp.male, female=mvp.female, awarded=day in league.finished_dates)


@router.post("/{slot}/mvp/award", response_model=AwardResult)
async def award_mvp(slot: int, date: str = Form(...), session: AsyncSession = Depends(get_session)):
    row = await _get_league_orm(slot, session)
    league = _orm_to_league(row)
    day = _parse_date(date)

    mvp = calculate_daily_mvp(league.players, league.matches, day)
    if not mvp.winners:
        raise HTTPException(status_code=400, detail=f"No eligible players finished a match on {day}")
    try:
        players, finished_dates = award_daily_mvp(league.players, mvp, day, league.finished_dates)
    except AlreadyAwardedError as exc:
        logger.warning("%s", exc)
        raise HTTPException(status_code=409, detail=str(exc))

    bonus = {p.id: p.bonus_points for p in players}
    for p in row.players:
        p.bonus_points = bonus[p.id]
    row.finished_dates = finished_dates
    await session.commit()

    logger.info("Awarded MVP bonus for %s to %s", day, [s.name for s in mvp.winners])
    return AwardResult(date=day, awarded=[s.player_id for s in mvp.winners], finished_dates=finished_dates)


@router.get("/{slot}/share", response_class=PlainTextResponse)
async def share_view(slot: int, date: str, session: AsyncSession = Depends(get_session)):
    league = _orm_to_league(await _get_league_orm(slot, session))
    day = _parse_date(date)
    ranking = calculate_ranking(league.players, league.matches)
    return build_share_text(league.name, day, league.matches, ranking)
