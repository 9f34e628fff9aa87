"""Burako scoring: team totals for each entry mode, and per-player splits."""

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from config import (
    CARD_POINT_VALUES,
    CLEAN_CANASTA_POINTS,
    DIRTY_CANASTA_POINTS,
    MUERTO_BONUS_POINTS,
    WINNER_BONUS_POINTS,
)
from errors import NotFound, ValidationError
from models import (
    CanastaDetails,
    CardCountBreakdown,
    CardsScoring,
    GameScore,
    ManualScoring,
    Pair,
    ScoreComponentBreakdown,
    SummaryScoring,
    TeamResult,
    TeamScoringDetail,
)


@dataclass
class SummaryScoreInput:
    card_points: int = 0
    clean_canastas: int = 0
    dirty_canastas: int = 0
    minus_points: int = 0
    took_muerto: bool = False
    winner: bool = False


@dataclass
class CardsScoreInput:
    card_counts: CardCountBreakdown = field(default_factory=CardCountBreakdown)
    clean_canastas: int = 0
    dirty_canastas: int = 0
    minus_points: int = 0
    took_muerto: bool = False
    winner: bool = False


@dataclass
class ScoreComputation:
    total: int
    breakdown: str
    components: ScoreComponentBreakdown


def _signed(value: int) -> str:
    return f"+{value}" if value > 0 else str(value)


def format_breakdown(components: ScoreComponentBreakdown) -> str:
    """Describe the non-zero components, e.g. ``Cards 40 · Canastas 300 · Muerto -100``."""
    parts = []
    if components.card_points:
        parts.append(f"Cards {components.card_points}")
    if components.canasta_points:
        parts.append(f"Canastas {components.canasta_points}")
    if components.winner_bonus:
        parts.append(f"Winner {_signed(components.winner_bonus)}")
    if components.muerto_bonus:
        parts.append(f"Muerto {_signed(components.muerto_bonus)}")
    if components.minus_points:
        parts.append(f"Minus -{components.minus_points}")
    return " · ".join(parts)


def calculate_manual_score(total: int) -> ScoreComputation:
    """Take a hand-entered total as is."""
    return ScoreComputation(
        total=total,
        breakdown=f"Final total {total}",
        components=ScoreComponentBreakdown(),
    )


def calculate_card_points(card_counts: CardCountBreakdown) -> int:
    """Value of the cards left in hand, priced with the tariff table."""
    return sum(
        getattr(card_counts, card_class) * points
        for card_class, points in CARD_POINT_VALUES.items()
    )


def calculate_summary_score(score_input: SummaryScoreInput) -> ScoreComputation:
    """Compute a team total from summed card points, canastas and flags.

    A team without any canasta has its card points and winner bonus counted
    against it.
    """
    canasta_points = (
        score_input.clean_canastas * CLEAN_CANASTA_POINTS
        + score_input.dirty_canastas * DIRTY_CANASTA_POINTS
    )
    has_canasta = score_input.clean_canastas + score_input.dirty_canastas > 0

    winner_bonus = WINNER_BONUS_POINTS if score_input.winner else 0
    muerto_bonus = 0 if score_input.took_muerto else MUERTO_BONUS_POINTS

    card_points = score_input.card_points if has_canasta else -score_input.card_points
    if not has_canasta:
        winner_bonus = -winner_bonus

    components = ScoreComponentBreakdown(
        card_points=card_points,
        canasta_points=canasta_points,
        winner_bonus=winner_bonus,
        muerto_bonus=muerto_bonus,
        minus_points=score_input.minus_points,
    )
    return ScoreComputation(
        total=components.total,
        breakdown=format_breakdown(components),
        components=components,
    )


def calculate_cards_score(score_input: CardsScoreInput) -> ScoreComputation:
    """Same as the summary mode, with card points counted from the hand."""
    return calculate_summary_score(
        SummaryScoreInput(
            card_points=calculate_card_points(score_input.card_counts),
            clean_canastas=score_input.clean_canastas,
            dirty_canastas=score_input.dirty_canastas,
            minus_points=score_input.minus_points,
            took_muerto=score_input.took_muerto,
            winner=score_input.winner,
        )
    )


def build_manual_detail(total: int) -> tuple[int, ManualScoring]:
    result = calculate_manual_score(total)
    return result.total, ManualScoring(
        entered_total=total,
        breakdown=result.breakdown,
        components=result.components,
    )


def build_summary_detail(score_input: SummaryScoreInput) -> tuple[int, SummaryScoring]:
    result = calculate_summary_score(score_input)
    return result.total, SummaryScoring(
        card_points=score_input.card_points,
        clean_canastas=score_input.clean_canastas,
        dirty_canastas=score_input.dirty_canastas,
        minus_points=score_input.minus_points,
        took_muerto=score_input.took_muerto,
        winner=score_input.winner,
        calculated_total=result.total,
        breakdown=result.breakdown,
        components=result.components,
    )


def build_cards_detail(score_input: CardsScoreInput) -> tuple[int, CardsScoring]:
    result = calculate_cards_score(score_input)
    counts = score_input.card_counts
    return result.total, CardsScoring(
        card_counts=CardCountBreakdown(
            jokers=counts.jokers,
            twos=counts.twos,
            aces=counts.aces,
            three_to_seven=counts.three_to_seven,
            eight_to_king=counts.eight_to_king,
        ),
        clean_canastas=score_input.clean_canastas,
        dirty_canastas=score_input.dirty_canastas,
        minus_points=score_input.minus_points,
        took_muerto=score_input.took_muerto,
        winner=score_input.winner,
        calculated_total=result.total,
        breakdown=result.breakdown,
        components=result.components,
    )


def build_team_result(pair_id: str, total: int, detail: TeamScoringDetail) -> TeamResult:
    """Wrap a scoring detail into a TeamResult, copying its canasta counts."""
    if detail.mode == "manual":
        canasta = CanastaDetails()
    elif detail.mode in ("summary", "cards"):
        canasta = CanastaDetails(
            clean_canastas=detail.clean_canastas,
            dirty_canastas=detail.dirty_canastas,
        )
    else:
        raise ValidationError(f"Unknown scoring mode {detail.mode!r}")
    return TeamResult(pair_id=pair_id, total_points=total, canasta=canasta, scoring=detail)


def distribute_points(total: int, player_ids: Sequence[str]) -> list[GameScore]:
    """Split a team total into near-equal integer shares.

    Uses floor division, so the remainder is always in ``[0, len(player_ids))``
    and the first ``remainder`` players get one extra point. For negative
    totals this rounds shares down: -7 over two players is ``[-3, -4]``.
    """
    if not player_ids:
        raise ValidationError("Cannot distribute points across an empty pair")
    base, remainder = divmod(total, len(player_ids))
    return [
        GameScore(player_id=player_id, points=base + (1 if index < remainder else 0))
        for index, player_id in enumerate(player_ids)
    ]


def derive_player_scores(
    teams: Sequence[TeamResult],
    pairs_by_id: Mapping[str, Pair],
) -> list[GameScore]:
    """Per-player points for a game, one entry per distinct player."""
    totals: dict[str, int] = {}
    for team in teams:
        pair = pairs_by_id.get(team.pair_id)
        if pair is None:
            raise NotFound(f"Pair {team.pair_id} not found")
        for share in distribute_points(team.total_points, pair.players):
            totals[share.player_id] = totals.get(share.player_id, 0) + share.points
    return [GameScore(player_id=player_id, points=points) for player_id, points in totals.items()]
