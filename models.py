# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Data models for the game scorekeeper.

Every persisted record is a Pydantic model.  Python code uses snake_case
attribute names; documents are written with camelCase keys so that existing
game records (``atBats``, ``jerseyNumber``, ``scoreDetails`` ...) round-trip
unchanged.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ScoringError(Exception):
    """Base class for all scorekeeping errors."""

    def __init__(self, message: str, field: str | None = None,
                 details: list[str] | None = None):
        self.field = field
        self.details = details or []
        super().__init__(message)


class ScoringValidationError(ScoringError):
    """Raised for a malformed at-bat, override, or lineup change."""


class InvalidStateError(ScoringError):
    """Raised when an operation does not fit the game's current status."""


class ConsistencyError(ScoringError):
    """A log entry references a player outside both lineups.

    Collected by the aggregator rather than raised.
    """

    def __init__(self, message: str, player_id: str):
        self.player_id = player_id
        super().__init__(message, field="player_id")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConsistencyError):
            return NotImplemented
        return (self.player_id, str(self)) == (other.player_id, str(other))

    def __hash__(self) -> int:
        return hash((self.player_id, str(self)))


class StoreError(ScoringError):
    """Raised when a game document cannot be read or written."""


class GameNotFoundError(StoreError):
    """Raised when the store has no game with the requested id."""

    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found", field="id")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Half(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"


class Side(str, Enum):
    HOME = "home"
    AWAY = "away"

    @property
    def other(self) -> Side:
        return Side.AWAY if self is Side.HOME else Side.HOME


class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AtBatResult(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    HOMERUN = "homerun"
    STRIKEOUT = "strikeout"
    WALK = "walk"
    HIT_BY_PITCH = "hitByPitch"
    SACRIFICE = "sacrifice"
    FIELDERS_CHOICE = "fieldersChoice"
    ERROR = "error"
    FLY_OUT = "flyOut"
    GROUND_OUT = "groundOut"
    OUT_AT_FIRST = "outAtFirst"
    OUT_AT_SECOND = "outAtSecond"
    OUT_AT_THIRD = "outAtThird"
    OUT_AT_HOME = "outAtHome"
    FOUL = "foul"
    # Baserunning events share the log; player_id is the runner.
    STOLEN_BASE = "stolenBase"
    CAUGHT_STEALING = "caughtStealing"


class Pitch(str, Enum):
    BALL = "ball"
    STRIKE = "strike"
    FOUL = "foul"


class Position(str, Enum):
    PITCHER = "Pitcher"
    CATCHER = "Catcher"
    FIRST_BASE = "1st Base"
    SECOND_BASE = "2nd Base"
    THIRD_BASE = "3rd Base"
    SHORT_STOP = "Short Stop"
    LEFT_FIELD = "Left Field"
    CENTER_FIELD = "Center Field"
    RIGHT_FIELD = "Right Field"
    DESIGNATED_HITTER = "Designated Hitter"


POSITION_ABBREVIATIONS: dict[Position, str] = {
    Position.PITCHER: "P",
    Position.CATCHER: "C",
    Position.FIRST_BASE: "1B",
    Position.SECOND_BASE: "2B",
    Position.THIRD_BASE: "3B",
    Position.SHORT_STOP: "SS",
    Position.LEFT_FIELD: "LF",
    Position.CENTER_FIELD: "CF",
    Position.RIGHT_FIELD: "RF",
    Position.DESIGNATED_HITTER: "DH",
}


class LineupStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class GameOutcome(str, Enum):
    WIN = "win"
    LOSS = "loss"
    TIE = "tie"


# ---------------------------------------------------------------------------
# Result classification
# ---------------------------------------------------------------------------

HIT_BASES: dict[AtBatResult, int] = {
    AtBatResult.SINGLE: 1,
    AtBatResult.DOUBLE: 2,
    AtBatResult.TRIPLE: 3,
    AtBatResult.HOMERUN: 4,
}

OUT_RESULTS = frozenset({
    AtBatResult.STRIKEOUT,
    AtBatResult.FLY_OUT,
    AtBatResult.GROUND_OUT,
    AtBatResult.SACRIFICE,
    AtBatResult.FIELDERS_CHOICE,
    AtBatResult.OUT_AT_FIRST,
    AtBatResult.OUT_AT_SECOND,
    AtBatResult.OUT_AT_THIRD,
    AtBatResult.OUT_AT_HOME,
})

# Results after which the next batter comes up.
PLATE_APPEARANCE_RESULTS = frozenset(
    r for r in AtBatResult
    if r not in (AtBatResult.FOUL, AtBatResult.STOLEN_BASE, AtBatResult.CAUGHT_STEALING)
)

# Plate appearances that do not count as an official at-bat.
NON_AT_BAT_RESULTS = frozenset({
    AtBatResult.WALK,
    AtBatResult.HIT_BY_PITCH,
    AtBatResult.SACRIFICE,
})

STEAL_RESULTS = frozenset({AtBatResult.STOLEN_BASE, AtBatResult.CAUGHT_STEALING})


# ---------------------------------------------------------------------------
# Base model
# ---------------------------------------------------------------------------

class ScoreModel(BaseModel):
    """Base for persisted records: camelCase on disk, snake_case in code."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read naive timestamps as UTC so every stored time is comparable."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# At-bat log
# ---------------------------------------------------------------------------

class RunnerAdvance(ScoreModel):
    """Manual runner movement for a play the rule table does not cover.

    ``start_base`` 0 is the batter.  ``end_base`` 0 means the runner was
    retired and 4 means the runner scored.
    """
    model_config = ConfigDict(frozen=True)

    start_base: int = Field(ge=0, le=3)
    end_base: int = Field(ge=0, le=4)


class AtBatEvent(ScoreModel):
    """One recorded result.  Never mutated once appended to the log."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    game_id: str = Field(min_length=1)
    player_id: str = Field(min_length=1)
    player_name: str = ""
    inning: int = Field(ge=1)
    half: Half
    pitcher_id: str = Field(min_length=1)
    pitcher_name: str = ""
    balls: int = Field(default=0, ge=0, le=3)
    strikes: int = Field(default=0, ge=0, le=2)
    fouls: int = Field(default=0, ge=0)
    result: AtBatResult
    rbi: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=utc_now)
    advances: tuple[RunnerAdvance, ...] = ()
    steal_base: Optional[int] = Field(default=None, ge=1, le=3)
    fielder_id: Optional[str] = None
    runners_scored: tuple[str, ...] = ()

    @field_validator("timestamp")
    @classmethod
    def utc_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class AtBatInput(ScoreModel):
    """What the display collaborator supplies for a new at-bat.

    Batter and pitcher default to the game state's current ones; count,
    inning and half are stamped from the state at record time.
    """
    result: AtBatResult
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    pitcher_id: Optional[str] = None
    pitcher_name: Optional[str] = None
    rbi: Optional[int] = Field(default=None, ge=0)
    errors: Optional[int] = Field(default=None, ge=0)
    advances: list[RunnerAdvance] = Field(default_factory=list)
    steal_base: Optional[int] = Field(default=None, ge=1, le=3)
    fielder_id: Optional[str] = None
    timestamp: Optional[datetime] = None

    @field_validator("timestamp")
    @classmethod
    def utc_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class Correction(ScoreModel):
    """Compensating record that voids an earlier at-bat event."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    game_id: str = Field(min_length=1)
    corrects_id: str = Field(min_length=1)
    reason: str = ""
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def utc_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


# ---------------------------------------------------------------------------
# Live game state
# ---------------------------------------------------------------------------

class Bases(ScoreModel):
    first: Optional[str] = None
    second: Optional[str] = None
    third: Optional[str] = None

    def runner_on(self, base: int) -> Optional[str]:
        return {1: self.first, 2: self.second, 3: self.third}[base]

    def occupied(self) -> dict[int, str]:
        """Map of base number to runner id for occupied bases."""
        return {b: pid for b, pid in ((1, self.first), (2, self.second), (3, self.third)) if pid}

    @classmethod
    def from_occupied(cls, occupied: dict[int, str]) -> Bases:
        return cls(first=occupied.get(1), second=occupied.get(2), third=occupied.get(3))

    def is_empty(self) -> bool:
        return not self.occupied()


class SidePair(ScoreModel):
    """One player id per side, e.g. who is due up or pitching."""
    home: Optional[str] = None
    away: Optional[str] = None

    def get(self, side: Side) -> Optional[str]:
        return self.home if side is Side.HOME else self.away

    def with_side(self, side: Side, player_id: Optional[str]) -> SidePair:
        return self.model_copy(update={side.value: player_id})


class GameState(ScoreModel):
    """Current inning, count, outs and base occupancy for one game."""
    current_inning: int = Field(default=1, ge=1)
    is_top_half: bool = True
    outs: int = Field(default=0, ge=0, le=2)
    balls: int = Field(default=0, ge=0, le=3)
    strikes: int = Field(default=0, ge=0, le=2)
    fouls: int = Field(default=0, ge=0)
    bases: Bases = Field(default_factory=Bases)
    current_batter_id: Optional[str] = None
    current_pitcher_id: Optional[str] = None
    due_up: SidePair = Field(default_factory=SidePair)
    pitchers: SidePair = Field(default_factory=SidePair)

    @property
    def half(self) -> Half:
        return Half.TOP if self.is_top_half else Half.BOTTOM

    @property
    def batting_side(self) -> Side:
        return Side.AWAY if self.is_top_half else Side.HOME

    @property
    def fielding_side(self) -> Side:
        return self.batting_side.other

    def situation_display(self) -> str:
        half_str = "Top" if self.is_top_half else "Bot"
        on_bases = [name for base, name in ((1, "1st"), (2, "2nd"), (3, "3rd"))
                    if self.bases.runner_on(base)]
        runners_str = "runners on " + ", ".join(on_bases) if on_bases else "bases empty"
        return (f"{half_str} {self.current_inning}, {self.outs} out, "
                f"{self.balls}-{self.strikes} count, {runners_str}")


# ---------------------------------------------------------------------------
# Derived statistics
# ---------------------------------------------------------------------------

class PlayerGameStats(ScoreModel):
    player_id: str
    player_name: str = ""
    at_bats: int = 0
    hits: int = 0
    singles: int = 0
    doubles: int = 0
    triples: int = 0
    homeruns: int = 0
    runs: int = 0
    rbi: int = 0
    walks: int = 0
    strikeouts: int = 0
    errors: int = 0
    position: Optional[str] = None

    @model_validator(mode="after")
    def _check_hits(self) -> PlayerGameStats:
        extra_base = self.singles + self.doubles + self.triples + self.homeruns
        if self.hits != extra_base:
            raise ValueError(
                f"hits ({self.hits}) must equal singles+doubles+triples+homeruns ({extra_base})"
            )
        return self


class InningScore(ScoreModel):
    team: int = 0
    opponent: int = 0


class Score(ScoreModel):
    team: int = 0
    opponent: int = 0


# ---------------------------------------------------------------------------
# Roster and lineup
# ---------------------------------------------------------------------------

class RosterPlayer(ScoreModel):
    """A tracked roster player as supplied by the roster collaborator."""
    id: str = Field(min_length=1)
    name: str
    jersey_number: str = ""
    positions: list[Position] = Field(default_factory=list)


class _LineupEntryBase(ScoreModel):
    player_id: str = Field(min_length=1)
    name: str
    jersey_number: str = ""
    position: Position
    order: int = Field(ge=1)
    status: LineupStatus = LineupStatus.ACTIVE


class RosterLineupEntry(_LineupEntryBase):
    kind: Literal["roster"] = "roster"


class AdHocLineupEntry(_LineupEntryBase):
    """Untracked opposing player with a locally generated id."""
    kind: Literal["adHoc"] = "adHoc"


LineupEntry = Annotated[
    Union[RosterLineupEntry, AdHocLineupEntry],
    Field(discriminator="kind"),
]


class Lineups(ScoreModel):
    home: list[LineupEntry] = Field(default_factory=list)
    away: list[LineupEntry] = Field(default_factory=list)

    def for_side(self, side: Side) -> list[LineupEntry]:
        return self.home if side is Side.HOME else self.away

    def with_side(self, side: Side, lineup: list[LineupEntry]) -> Lineups:
        return self.model_copy(update={side.value: list(lineup)})

    def side_of(self, player_id: str) -> Optional[Side]:
        for side in (Side.HOME, Side.AWAY):
            if any(e.player_id == player_id for e in self.for_side(side)):
                return side
        return None


# ---------------------------------------------------------------------------
# Game aggregate
# ---------------------------------------------------------------------------

class ScoreDetails(ScoreModel):
    inning_scores: list[InningScore] = Field(default_factory=list)
    player_stats: list[PlayerGameStats] = Field(default_factory=list)
    at_bats: list[AtBatEvent] = Field(default_factory=list)
    corrections: list[Correction] = Field(default_factory=list)
    game_state: GameState = Field(default_factory=GameState)
    opening_state: Optional[GameState] = None


class Game(ScoreModel):
    """Aggregate root: owns its lineups, log and derived score details."""
    id: str = Field(min_length=1)
    team_id: str = ""
    team_name: str = ""
    opponent: str = ""
    is_home_team: bool = False
    status: GameStatus = GameStatus.SCHEDULED
    score: Score = Field(default_factory=Score)
    lineups: Lineups = Field(default_factory=Lineups)
    score_details: ScoreDetails = Field(default_factory=ScoreDetails)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("started_at", "ended_at", "created_at", "updated_at")
    @classmethod
    def utc_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @property
    def team_side(self) -> Side:
        return Side.HOME if self.is_home_team else Side.AWAY

    @property
    def opponent_side(self) -> Side:
        return self.team_side.other

    @property
    def is_terminal(self) -> bool:
        return self.status in (GameStatus.COMPLETED, GameStatus.CANCELLED)
