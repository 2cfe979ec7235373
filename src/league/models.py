from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional, Tuple, Union


def generate_id():
    import uuid
    return str(uuid.uuid4())[:8]


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


GUEST_M_ID = "guest-male"
GUEST_F_ID = "guest-female"
GUEST_IDS = frozenset({GUEST_M_ID, GUEST_F_ID})


@dataclass
class Player:
    id: str
    name: str
    gender: Gender
    bonus_points: int = 0

    @property
    def is_guest(self) -> bool:
        return self.id in GUEST_IDS


GUEST_MALE = Player(id=GUEST_M_ID, name="Guest (M)", gender=Gender.MALE)
GUEST_FEMALE = Player(id=GUEST_F_ID, name="Guest (F)", gender=Gender.FEMALE)
GUESTS = {GUEST_M_ID: GUEST_MALE, GUEST_F_ID: GUEST_FEMALE}


@dataclass
class Singles:
    kind: ClassVar[str] = "singles"

    id: str
    player: Player

    @property
    def members(self) -> Tuple[Player, ...]:
        return (self.player,)


@dataclass
class Doubles:
    kind: ClassVar[str] = "doubles"

    id: str
    player_a: Player
    player_b: Player

    @property
    def members(self) -> Tuple[Player, ...]:
        if self.player_a.id == self.player_b.id:
            return (self.player_a,)
        return (self.player_a, self.player_b)


Team = Union[Singles, Doubles]


@dataclass
class Match:
    id: str
    date: str  # ISO date, YYYY-MM-DD
    team_a: Team
    team_b: Team
    score_a: int = 0
    score_b: int = 0
    is_finished: bool = False

    @property
    def player_ids(self) -> frozenset:
        return frozenset(p.id for p in self.team_a.members + self.team_b.members)


@dataclass
class PlayerStat:
    player_id: str
    name: str
    gender: Gender
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    total_points: int = 0
    win_rate: float = 0.0  # 0-100
    avg_points: float = 0.0
    daily_bonus: bool = False


@dataclass
class DailyMvp:
    male: Optional[PlayerStat] = None
    female: Optional[PlayerStat] = None

    @property
    def winners(self) -> List[PlayerStat]:
        return [s for s in (self.male, self.female) if s is not None]


@dataclass
class League:
    id: str
    slot: int
    name: str
    end_date: Optional[str] = None
    players: List[Player] = field(default_factory=list)
    matches: List[Match] = field(default_factory=list)
    finished_dates: List[str] = field(default_factory=list)

