"""Data models for the Burako Scorekeeper Bot.

Documents are stored with camelCase keys, so every persisted model has a
``to_dict`` / ``from_dict`` pair. ``from_dict`` checks the shape of the
document and raises ``ValidationError`` instead of failing later with a
``KeyError`` deep inside a command.
"""

import enum
from dataclasses import dataclass, field, fields
from typing import Any, Iterator, Literal, Optional, Union

from errors import ValidationError


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _require(data: dict, key: str, kind: type, context: str) -> Any:
    if key not in data:
        raise ValidationError(f"{context} is missing {key!r}", data)
    value = data[key]
    # bool is an int subclass; never accept it where a number is expected
    if kind is int and isinstance(value, bool):
        raise ValidationError(f"{context}.{key} must be an integer", data)
    if not isinstance(value, kind):
        raise ValidationError(f"{context}.{key} must be {kind.__name__}", data)
    return value


def _require_id(data: dict, key: str, context: str) -> str:
    value = _require(data, key, str, context)
    if not value:
        raise ValidationError(f"{context} must have a valid {key}", data)
    return value


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _ensure_object(data: Any, context: str) -> dict:
    if not isinstance(data, dict):
        raise ValidationError(f"{context} data must be an object", data)
    return data


class _Counts:
    """Mixin for flat dataclasses whose fields are all non-optional ints."""

    def to_dict(self) -> dict:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Any):
        data = _ensure_object(data, cls.__name__)
        values = {}
        for f in fields(cls):
            # Missing counters are treated as zero, like an untouched form input
            key = _camel(f.name)
            values[f.name] = _require(data, key, int, cls.__name__) if key in data else 0
        return cls(**values)


@dataclass
class Group:
    """A set of people who play together; maps to a Discord guild."""

    id: str
    name: str
    created_at: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, data: Any) -> "Group":
        data = _ensure_object(data, "Group")
        return cls(
            id=_require_id(data, "id", "Group"),
            name=_require_id(data, "name", "Group"),
            created_at=_require_id(data, "createdAt", "Group"),
        )


@dataclass
class Player:
    """Represents a player. Players are global, not scoped to a group."""

    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Any) -> "Player":
        data = _ensure_object(data, "Player")
        return cls(
            id=_require_id(data, "id", "Player"),
            name=_require_id(data, "name", "Player"),
        )


@dataclass(frozen=True)
class Pair:
    """A fixed two-player partnership. Membership never changes."""

    id: str
    group_id: str
    players: tuple[str, str]

    def to_dict(self) -> dict:
        return {"id": self.id, "groupId": self.group_id, "players": list(self.players)}

    @classmethod
    def from_dict(cls, data: Any) -> "Pair":
        data = _ensure_object(data, "Pair")
        players = data.get("players")
        if not isinstance(players, (list, tuple)) or len(players) != 2:
            raise ValidationError("Pair must have exactly 2 players", data)
        if not all(isinstance(p, str) and p for p in players):
            raise ValidationError("Pair players must be valid strings", data)
        return cls(
            id=_require_id(data, "id", "Pair"),
            group_id=_require_id(data, "groupId", "Pair"),
            players=(players[0], players[1]),
        )


@dataclass
class CanastaDetails(_Counts):
    clean_canastas: int = 0
    dirty_canastas: int = 0


@dataclass
class CardCountBreakdown(_Counts):
    """Cards left in hand at round end, by tariff class."""

    jokers: int = 0
    twos: int = 0
    aces: int = 0
    three_to_seven: int = 0
    eight_to_king: int = 0


@dataclass
class ScoreComponentBreakdown(_Counts):
    """Additive decomposition of a team total. ``minus_points`` is stored positive."""

    card_points: int = 0
    canasta_points: int = 0
    winner_bonus: int = 0
    muerto_bonus: int = 0
    minus_points: int = 0

    @property
    def total(self) -> int:
        return (
            self.card_points
            + self.canasta_points
            + self.winner_bonus
            + self.muerto_bonus
            - self.minus_points
        )


@dataclass
class ManualScoring:
    """Total typed in by hand; components are all zero."""

    entered_total: int
    breakdown: str
    components: ScoreComponentBreakdown = field(default_factory=ScoreComponentBreakdown)
    mode: Literal["manual"] = field(default="manual", init=False)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "enteredTotal": self.entered_total,
            "breakdown": self.breakdown,
            "components": self.components.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ManualScoring":
        return cls(
            entered_total=_require(data, "enteredTotal", int, "ManualScoring"),
            breakdown=_require(data, "breakdown", str, "ManualScoring"),
            components=ScoreComponentBreakdown.from_dict(data.get("components", {})),
        )


@dataclass
class SummaryScoring:
    """Team total computed from summed card points, canastas and flags."""

    card_points: int
    clean_canastas: int
    dirty_canastas: int
    minus_points: int
    took_muerto: bool
    winner: bool
    calculated_total: int
    breakdown: str
    components: ScoreComponentBreakdown
    mode: Literal["summary"] = field(default="summary", init=False)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "cardPoints": self.card_points,
            "cleanCanastas": self.clean_canastas,
            "dirtyCanastas": self.dirty_canastas,
            "minusPoints": self.minus_points,
            "tookMuerto": self.took_muerto,
            "winner": self.winner,
            "calculatedTotal": self.calculated_total,
            "breakdown": self.breakdown,
            "components": self.components.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SummaryScoring":
        ctx = "SummaryScoring"
        return cls(
            card_points=_require(data, "cardPoints", int, ctx),
            clean_canastas=_require(data, "cleanCanastas", int, ctx),
            dirty_canastas=_require(data, "dirtyCanastas", int, ctx),
            minus_points=_require(data, "minusPoints", int, ctx),
            took_muerto=_require(data, "tookMuerto", bool, ctx),
            winner=_require(data, "winner", bool, ctx),
            calculated_total=_require(data, "calculatedTotal", int, ctx),
            breakdown=_require(data, "breakdown", str, ctx),
            components=ScoreComponentBreakdown.from_dict(data.get("components", {})),
        )


@dataclass
class CardsScoring:
    """Team total computed from a per-class count of cards left in hand."""

    card_counts: CardCountBreakdown
    clean_canastas: int
    dirty_canastas: int
    minus_points: int
    took_muerto: bool
    winner: bool
    calculated_total: int
    breakdown: str
    components: ScoreComponentBreakdown
    mode: Literal["cards"] = field(default="cards", init=False)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "cardCounts": self.card_counts.to_dict(),
            "cleanCanastas": self.clean_canastas,
            "dirtyCanastas": self.dirty_canastas,
            "minusPoints": self.minus_points,
            "tookMuerto": self.took_muerto,
            "winner": self.winner,
            "calculatedTotal": self.calculated_total,
            "breakdown": self.breakdown,
            "components": self.components.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CardsScoring":
        ctx = "CardsScoring"
        return cls(
            card_counts=CardCountBreakdown.from_dict(_require(data, "cardCounts", dict, ctx)),
            clean_canastas=_require(data, "cleanCanastas", int, ctx),
            dirty_canastas=_require(data, "dirtyCanastas", int, ctx),
            minus_points=_require(data, "minusPoints", int, ctx),
            took_muerto=_require(data, "tookMuerto", bool, ctx),
            winner=_require(data, "winner", bool, ctx),
            calculated_total=_require(data, "calculatedTotal", int, ctx),
            breakdown=_require(data, "breakdown", str, ctx),
            components=ScoreComponentBreakdown.from_dict(data.get("components", {})),
        )


TeamScoringDetail = Union[ManualScoring, SummaryScoring, CardsScoring]

SCORING_MODES = {
    "manual": ManualScoring,
    "summary": SummaryScoring,
    "cards": CardsScoring,
}


def scoring_from_dict(data: Any) -> TeamScoringDetail:
    """Rebuild a scoring detail, choosing the variant by its ``mode`` tag."""
    data = _ensure_object(data, "TeamScoringDetail")
    scoring_cls = SCORING_MODES.get(data.get("mode"))
    if scoring_cls is None:
        raise ValidationError(f"Unknown scoring mode {data.get('mode')!r}", data)
    return scoring_cls.from_dict(data)


@dataclass
class TeamResult:
    """One side's outcome in a single game."""

    pair_id: str
    total_points: int
    canasta: CanastaDetails
    scoring: TeamScoringDetail

    def to_dict(self) -> dict:
        return {
            "pairId": self.pair_id,
            "totalPoints": self.total_points,
            "canasta": self.canasta.to_dict(),
            "scoring": self.scoring.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TeamResult":
        data = _ensure_object(data, "TeamResult")
        return cls(
            pair_id=_require_id(data, "pairId", "TeamResult"),
            total_points=_require(data, "totalPoints", int, "TeamResult"),
            canasta=CanastaDetails.from_dict(data.get("canasta", {})),
            scoring=scoring_from_dict(data.get("scoring")),
        )


@dataclass
class GameScore:
    """Points credited to one player for one game. Always derived."""

    player_id: str
    points: int

    def to_dict(self) -> dict:
        return {"playerId": self.player_id, "points": self.points}

    @classmethod
    def from_dict(cls, data: Any) -> "GameScore":
        data = _ensure_object(data, "GameScore")
        return cls(
            player_id=_require_id(data, "playerId", "GameScore"),
            points=_require(data, "points", int, "GameScore"),
        )


@dataclass
class GameSnapshot:
    """Copy of a game's mutable fields, taken before the change that logged it."""

    teams: list[TeamResult]
    scores: list[GameScore]
    notes: Optional[str] = None
    played_at: Optional[str] = None
    starting_pair_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "teams": [team.to_dict() for team in self.teams],
            "scores": [score.to_dict() for score in self.scores],
        }
        if self.notes is not None:
            data["notes"] = self.notes
        if self.played_at is not None:
            data["playedAt"] = self.played_at
        if self.starting_pair_id is not None:
            data["startingPairId"] = self.starting_pair_id
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "GameSnapshot":
        data = _ensure_object(data, "GameSnapshot")
        return cls(
            teams=[TeamResult.from_dict(t) for t in _require(data, "teams", list, "GameSnapshot")],
            scores=[GameScore.from_dict(s) for s in _require(data, "scores", list, "GameSnapshot")],
            notes=_optional_str(data, "notes"),
            played_at=_optional_str(data, "playedAt"),
            starting_pair_id=_optional_str(data, "startingPairId"),
        )


AuditEventType = Literal["create", "update", "undo"]
AUDIT_EVENT_TYPES = ("create", "update", "undo")


@dataclass
class AuditEntry:
    """One immutable line of a game's history."""

    id: str
    game_id: str
    timestamp: str
    summary: str
    type: AuditEventType
    snapshot: GameSnapshot

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "gameId": self.game_id,
            "timestamp": self.timestamp,
            "summary": self.summary,
            "type": self.type,
            "snapshot": self.snapshot.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AuditEntry":
        data = _ensure_object(data, "AuditEntry")
        entry_type = data.get("type")
        if entry_type not in AUDIT_EVENT_TYPES:
            raise ValidationError(f"Unknown audit entry type {entry_type!r}", data)
        return cls(
            id=_require_id(data, "id", "AuditEntry"),
            game_id=_require_id(data, "gameId", "AuditEntry"),
            timestamp=_require_id(data, "timestamp", "AuditEntry"),
            summary=_require(data, "summary", str, "AuditEntry"),
            type=entry_type,
            snapshot=GameSnapshot.from_dict(data.get("snapshot")),
        )


class AuditTrail:
    """Append-only history of a game.

    Grows with ``push`` and shrinks with ``pop`` from the end; entries are
    never replaced in place.
    """

    def __init__(self, entries: Optional[list[AuditEntry]] = None):
        self._entries: list[AuditEntry] = list(entries or [])

    def push(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def pop(self) -> AuditEntry:
        if not self._entries:
            raise IndexError("pop from empty audit trail")
        return self._entries.pop()

    def peek(self) -> Optional[AuditEntry]:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AuditEntry]:
        return iter(tuple(self._entries))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuditTrail):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"AuditTrail({self._entries!r})"


@dataclass
class GameRecord:
    """Represents one played game and its audit history."""

    id: str
    group_id: str
    played_at: str
    teams: list[TeamResult]
    scores: list[GameScore]
    notes: Optional[str] = None
    audit_trail: AuditTrail = field(default_factory=AuditTrail)
    starting_pair_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "groupId": self.group_id,
            "playedAt": self.played_at,
            "teams": [team.to_dict() for team in self.teams],
            "scores": [score.to_dict() for score in self.scores],
            "auditTrail": [entry.to_dict() for entry in self.audit_trail],
        }
        if self.notes is not None:
            data["notes"] = self.notes
        if self.starting_pair_id is not None:
            data["startingPairId"] = self.starting_pair_id
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "GameRecord":
        data = _ensure_object(data, "GameRecord")
        ctx = "GameRecord"
        return cls(
            id=_require_id(data, "id", ctx),
            group_id=_require_id(data, "groupId", ctx),
            played_at=_require_id(data, "playedAt", ctx),
            teams=[TeamResult.from_dict(t) for t in _require(data, "teams", list, ctx)],
            scores=[GameScore.from_dict(s) for s in _require(data, "scores", list, ctx)],
            notes=_optional_str(data, "notes"),
            audit_trail=AuditTrail(
                [AuditEntry.from_dict(e) for e in _require(data, "auditTrail", list, ctx)]
            ),
            starting_pair_id=_optional_str(data, "startingPairId"),
        )


class Unset(enum.Enum):
    """Marker for a ``GameUpdate`` field the caller did not touch."""

    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = Unset.UNSET


@dataclass
class NewGameInput:
    """Input for recording a game. ``scores`` is re-derived from the teams."""

    teams: list[TeamResult]
    scores: list[GameScore] = field(default_factory=list)
    notes: Optional[str] = None
    played_at: Optional[str] = None
    starting_pair_id: Optional[str] = None


@dataclass
class GameUpdate:
    """Partial update of a game.

    A field left as ``UNSET`` is not touched. An explicit ``None`` for
    ``notes`` or ``starting_pair_id`` clears the value.
    """

    teams: Union[list[TeamResult], Unset] = UNSET
    scores: Union[list[GameScore], Unset] = UNSET
    notes: Union[str, None, Unset] = UNSET
    played_at: Union[str, Unset] = UNSET
    starting_pair_id: Union[str, None, Unset] = UNSET

    def is_set(self, name: str) -> bool:
        return getattr(self, name) is not UNSET


@dataclass
class LeaderboardEntry:
    """Computed standing for a player."""

    player_id: str
    total_points: int
    games_played: int
    average_points: float
    last_played_at: Optional[str] = None


@dataclass
class PairLeaderboardEntry:
    """Computed standing for a pair."""

    pair_id: str
    total_points: int
    games_played: int
    average_points: float
    last_played_at: Optional[str] = None


@dataclass
class GameLeaderboardEntry:
    """A single decisive game, ranked by winning margin."""

    game_id: str
    played_at: str
    game_number: int
    winning_pair_id: str
    winning_points: int
    losing_pair_id: str
    losing_points: int
    margin: int
