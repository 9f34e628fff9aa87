"""Game record construction and the audit/undo engine.

Every function here is pure: it takes a record and returns a new one,
leaving the input untouched. Repositories call these inside whatever
read-modify-write boundary their storage offers.
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from config import ID_PREFIXES
from errors import NothingToUndo, ValidationError
from models import (
    AuditEntry,
    AuditTrail,
    GameRecord,
    GameSnapshot,
    GameUpdate,
    NewGameInput,
    Pair,
    TeamResult,
)
from scoring import derive_player_scores

CREATE_SUMMARY = "Game recorded"
UPDATE_SUMMARY = "Game updated"
UNDO_SUMMARY = "Undo applied"


def create_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def played_at_instant(played_at) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if not isinstance(played_at, str) or not played_at.strip():
        raise ValidationError(f"playedAt must be an ISO timestamp, got {played_at!r}")
    try:
        parsed = datetime.fromisoformat(played_at.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"playedAt must be an ISO timestamp, got {played_at!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_chronologically(records: Sequence[GameRecord]) -> list[GameRecord]:
    """Oldest game first; games played at the same instant keep their order."""
    return sorted(records, key=lambda record: played_at_instant(record.played_at))


def validate_disjoint_teams(
    teams: Sequence[TeamResult],
    pairs_by_id: Mapping[str, Pair],
) -> None:
    """Reject a game unless it has two known pairs with no player in common."""
    if len(teams) != 2:
        raise ValidationError(f"A game needs exactly 2 teams, got {len(teams)}")

    members = []
    for team in teams:
        pair = pairs_by_id.get(team.pair_id)
        if pair is None:
            raise ValidationError(f"Team refers to unknown pair {team.pair_id}")
        if len(set(pair.players)) != len(pair.players):
            raise ValidationError(f"Pair {pair.id} lists the same player twice")
        members.append(set(pair.players))

    shared = members[0] & members[1]
    if shared:
        raise ValidationError(
            "Teams must not share players: " + ", ".join(sorted(shared))
        )


def build_snapshot(record: GameRecord) -> GameSnapshot:
    """Deep copy of the fields an undo can restore."""
    return GameSnapshot(
        teams=copy.deepcopy(record.teams),
        scores=copy.deepcopy(record.scores),
        notes=record.notes,
        played_at=record.played_at,
        starting_pair_id=record.starting_pair_id,
    )


def _audit_entry(game_id: str, entry_type: str, summary: str, snapshot: GameSnapshot, now: str) -> AuditEntry:
    return AuditEntry(
        id=create_id(ID_PREFIXES["audit"]),
        game_id=game_id,
        timestamp=now,
        summary=summary,
        type=entry_type,
        snapshot=snapshot,
    )


def create_game_record(
    group_id: str,
    game_input: NewGameInput,
    pairs_by_id: Mapping[str, Pair],
    now: Optional[str] = None,
) -> GameRecord:
    """Build a new record whose first audit entry is a snapshot of itself.

    Player scores are always derived from the team totals; anything passed
    in ``game_input.scores`` is ignored.
    """
    validate_disjoint_teams(game_input.teams, pairs_by_id)
    if game_input.played_at is not None:
        played_at_instant(game_input.played_at)
    now = now or utc_now_iso()

    teams = copy.deepcopy(list(game_input.teams))
    record = GameRecord(
        id=create_id(ID_PREFIXES["game"]),
        group_id=group_id,
        played_at=game_input.played_at or now,
        teams=teams,
        scores=derive_player_scores(teams, pairs_by_id),
        notes=game_input.notes,
        starting_pair_id=game_input.starting_pair_id,
    )
    record.audit_trail.push(
        _audit_entry(record.id, "create", CREATE_SUMMARY, build_snapshot(record), now)
    )
    return record


def apply_update(record: GameRecord, update: GameUpdate, now: Optional[str] = None) -> GameRecord:
    """Apply the fields set in ``update`` and log the previous state."""
    if update.is_set("played_at"):
        played_at_instant(update.played_at)

    updated = copy.deepcopy(record)
    snapshot = build_snapshot(updated)

    if update.is_set("teams"):
        updated.teams = copy.deepcopy(list(update.teams))
    if update.is_set("scores"):
        updated.scores = copy.deepcopy(list(update.scores))
    if update.is_set("notes"):
        updated.notes = update.notes
    if update.is_set("played_at"):
        updated.played_at = update.played_at
    if update.is_set("starting_pair_id"):
        updated.starting_pair_id = update.starting_pair_id

    updated.audit_trail.push(
        _audit_entry(updated.id, "update", UPDATE_SUMMARY, snapshot, now or utc_now_iso())
    )
    return updated


def undo_last_change(record: GameRecord, now: Optional[str] = None) -> GameRecord:
    """Revert the most recent change that has not been undone yet.

    Earlier ``undo`` entries are stepped over, so two undos in a row step
    back twice until only the baseline ``create`` entry is left. The
    reverted entry is replaced by an ``undo`` entry holding the state that
    was just discarded.
    """
    restored = copy.deepcopy(record)
    trail = restored.audit_trail

    undo_entries = []
    while trail.peek() is not None and trail.peek().type == "undo":
        undo_entries.append(trail.pop())
    if len(trail) <= 1:
        raise NothingToUndo(f"Nothing to undo for game {record.id}")

    last_entry = trail.pop()
    for entry in reversed(undo_entries):
        trail.push(entry)
    discarded = build_snapshot(restored)

    previous = last_entry.snapshot
    restored.teams = copy.deepcopy(previous.teams)
    restored.scores = copy.deepcopy(previous.scores)
    restored.notes = previous.notes
    restored.starting_pair_id = previous.starting_pair_id
    if previous.played_at:
        restored.played_at = previous.played_at

    trail.push(
        _audit_entry(restored.id, "undo", UNDO_SUMMARY, discarded, now or utc_now_iso())
    )
    return restored


def pairs_lookup(pairs: Sequence[Pair]) -> dict[str, Pair]:
    return {pair.id: pair for pair in pairs}
