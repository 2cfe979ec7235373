"""Pydantic schemas for league responses and the JSON team columns."""
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter, field_validator,
)

from league.models import GUESTS, Doubles, Gender, Player, Singles, Team
from league.ranking import RankedStat

# Domain teams expose `members`, stored and returned teams use `players`
PLAYERS_ALIAS = AliasChoices("players", "members")


class PlayerSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    gender: Gender
    bonus_points: int = 0

    def to_player(self) -> Player:
        return GUESTS.get(self.id) or Player(
            id=self.id, name=self.name, gender=self.gender, bonus_points=self.bonus_points,
        )


class SinglesSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: Literal["singles"] = "singles"
    players: List[PlayerSchema] = Field(validation_alias=PLAYERS_ALIAS, min_length=1)

    @field_validator("players")
    @classmethod
    def single_player(cls, players):
        # older rows encode singles as the same player in both slots
        return players[:1]

    def to_team(self) -> Singles:
        return Singles(id=self.id, player=self.players[0].to_player())


class DoublesSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: Literal["doubles"] = "doubles"
    players: List[PlayerSchema] = Field(validation_alias=PLAYERS_ALIAS, min_length=1, max_length=2)

    def to_team(self) -> Doubles:
        # a doubles team holding one player twice is stored with a single entry
        first, second = self.players[0], self.players[-1]
        return Doubles(id=self.id, player_a=first.to_player(), player_b=second.to_player())


def team_kind(value) -> Optional[str]:
    """Tag of a team given as a dict, a schema or a domain object.

    Rows written before teams were tagged carry no `kind`; a team whose
    slots all hold the same player is singles.
    """
    if isinstance(value, dict):
        if "kind" in value:
            return value["kind"]
        ids = {p["id"] for p in value.get("players", [])}
        return "singles" if len(ids) == 1 else "doubles"
    return getattr(value, "kind", None)


TeamSchema = Annotated[
    Union[Annotated[SinglesSchema, Tag("singles")], Annotated[DoublesSchema, Tag("doubles")]],
    Discriminator(team_kind),
]

TEAM_ADAPTER = TypeAdapter(TeamSchema)


def dump_team(team: Team) -> dict:
    """JSON column value for a domain team."""
    return TEAM_ADAPTER.dump_python(TEAM_ADAPTER.validate_python(team, from_attributes=True), mode="json")


def load_team(data: dict) -> Team:
    return TEAM_ADAPTER.validate_python(data).to_team()


class MatchSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    date: str
    team_a: TeamSchema
    team_b: TeamSchema
    score_a: int = 0
    score_b: int = 0
    is_finished: bool = False


class LeagueSummary(BaseModel):
    slot: int
    id: str
    name: str
    end_date: Optional[str] = None
    created_at: Optional[datetime] = None
    players: int
    matches: int


class SlotSchema(BaseModel):
    slot: int
    league: Optional[LeagueSummary] = None


class LeagueDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slot: int
    name: str
    end_date: Optional[str] = None
    finished_dates: List[str] = []
    players: List[PlayerSchema] = []
    matches: List[MatchSchema] = []


class SlotDeleted(BaseModel):
    deleted: bool


class ItemDeleted(BaseModel):
    deleted: str


class GenerateResult(BaseModel):
    committed: bool
    count: int
    back_to_back: int = 0
    # round robin only: send it back with confirm to store the previewed schedule
    seed: Optional[int] = None
    matches: List[MatchSchema]


class PlayerStatSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: str
    name: str
    gender: Gender
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    total_points: int = 0
    win_rate: float = 0.0
    avg_points: float = 0.0
    daily_bonus: bool = False


class RankingRow(PlayerStatSchema):
    current_rank: int
    previous_rank: Optional[int] = None
    rank_change: int = 0

    @classmethod
    def from_ranked(cls, ranked: RankedStat) -> "RankingRow":
        stat = PlayerStatSchema.model_validate(ranked.stat)
        return cls(
            **stat.model_dump(),
            current_rank=ranked.current_rank,
            previous_rank=ranked.previous_rank,
            rank_change=ranked.rank_change,
        )


class MvpSchema(BaseModel):
    date: str
    male: Optional[PlayerStatSchema] = None
    female: Optional[PlayerStatSchema] = None
    awarded: bool


class AwardResult(BaseModel):
    date: str
    awarded: List[str]
    finished_dates: List[str]


class FormEntrySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    match_id: str
    date: str
    won: bool
    my_score: int
    opp_score: int


class PlayerFormSchema(BaseModel):
    player_id: str
    win_streak: int
    avg_score: float
    recent: List[FormEntrySchema]
