"""Leaderboards computed from the game history.

Nothing here is stored; every view is a fold over the records passed in.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from game_records import sort_chronologically
from models import GameLeaderboardEntry, GameRecord, LeaderboardEntry, PairLeaderboardEntry

_CENTS = Decimal("0.01")


def average_points(total_points: int, games_played: int) -> float:
    """Mean points per game, rounded half-up to two decimals."""
    if games_played == 0:
        return 0.0
    exact = Decimal(total_points) / Decimal(games_played)
    return float(exact.quantize(_CENTS, rounding=ROUND_HALF_UP))


def _fold(keyed_points: Iterable[tuple[str, int, str]]) -> dict[str, dict]:
    aggregates: dict[str, dict] = {}
    for key, points, played_at in keyed_points:
        aggregate = aggregates.setdefault(
            key, {"total_points": 0, "games_played": 0, "last_played_at": None}
        )
        aggregate["total_points"] += points
        aggregate["games_played"] += 1
        # Input order wins; callers sort first if they want true recency
        aggregate["last_played_at"] = played_at
    return aggregates


def _ranking_key(entry) -> tuple:
    return (-entry.total_points, -entry.average_points)


def calculate_leaderboard(records: Iterable[GameRecord]) -> list[LeaderboardEntry]:
    """Player standings by total points, then average points."""
    aggregates = _fold(
        (score.player_id, score.points, record.played_at)
        for record in records
        for score in record.scores
    )
    entries = [
        LeaderboardEntry(
            player_id=player_id,
            total_points=agg["total_points"],
            games_played=agg["games_played"],
            average_points=average_points(agg["total_points"], agg["games_played"]),
            last_played_at=agg["last_played_at"],
        )
        for player_id, agg in aggregates.items()
    ]
    entries.sort(key=_ranking_key)
    return entries


def calculate_pair_leaderboard(records: Iterable[GameRecord]) -> list[PairLeaderboardEntry]:
    """Pair standings by total points, then average points."""
    aggregates = _fold(
        (team.pair_id, team.total_points, record.played_at)
        for record in records
        for team in record.teams
    )
    entries = [
        PairLeaderboardEntry(
            pair_id=pair_id,
            total_points=agg["total_points"],
            games_played=agg["games_played"],
            average_points=average_points(agg["total_points"], agg["games_played"]),
            last_played_at=agg["last_played_at"],
        )
        for pair_id, agg in aggregates.items()
    ]
    entries.sort(key=_ranking_key)
    return entries


def game_numbers(records: list[GameRecord]) -> dict[str, int]:
    """1-based chronological number of each game, ties kept in input order."""
    chronological = sort_chronologically(records)
    return {record.id: number for number, record in enumerate(chronological, 1)}


def calculate_game_leaderboard(records: Iterable[GameRecord]) -> list[GameLeaderboardEntry]:
    """Decisive games ranked by winning margin, then by winning points."""
    records = list(records)
    numbers = game_numbers(records)

    entries = []
    for record in records:
        if not record.teams:
            continue
        ranked = sorted(record.teams, key=lambda team: team.total_points, reverse=True)
        winning, losing = ranked[0], ranked[-1]
        margin = winning.total_points - losing.total_points
        if margin <= 0:
            continue
        entries.append(
            GameLeaderboardEntry(
                game_id=record.id,
                played_at=record.played_at,
                game_number=numbers[record.id],
                winning_pair_id=winning.pair_id,
                winning_points=winning.total_points,
                losing_pair_id=losing.pair_id,
                losing_points=losing.total_points,
                margin=margin,
            )
        )

    entries.sort(key=lambda entry: (-entry.margin, -entry.winning_points))
    return entries
