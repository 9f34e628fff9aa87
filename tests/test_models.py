"""Tests for document conversion of the data models."""

import copy

import pytest

from errors import ValidationError
from models import (
    UNSET,
    CardCountBreakdown,
    CardsScoring,
    GameRecord,
    GameUpdate,
    ManualScoring,
    Pair,
    SummaryScoring,
    TeamResult,
    scoring_from_dict,
)
from scoring import (
    CardsScoreInput,
    SummaryScoreInput,
    build_cards_detail,
    build_summary_detail,
    build_team_result,
)


class TestGameRecordDocument:
    def test_uses_camel_case_keys(self, record):
        document = record.to_dict()

        assert {"id", "groupId", "playedAt", "teams", "scores", "auditTrail", "notes"} <= set(document)
        assert document["teams"][0]["pairId"] == "pair-a"
        assert document["scores"][0] == {"playerId": "p1", "points": 90}
        assert document["auditTrail"][0]["type"] == "create"

    def test_optional_fields_are_omitted_when_empty(self, record):
        record.notes = None

        document = record.to_dict()

        assert "notes" not in document
        assert "startingPairId" not in document

    def test_document_rebuilds_equal_record(self, record):
        record.starting_pair_id = "pair-b"

        assert GameRecord.from_dict(record.to_dict()) == record

    def test_missing_audit_trail_is_rejected(self, record):
        document = record.to_dict()
        del document["auditTrail"]

        with pytest.raises(ValidationError, match="auditTrail"):
            GameRecord.from_dict(document)

    def test_unknown_audit_type_is_rejected(self, record):
        document = record.to_dict()
        document["auditTrail"][0]["type"] = "rewrite"

        with pytest.raises(ValidationError):
            GameRecord.from_dict(document)

    def test_non_object_is_rejected(self):
        with pytest.raises(ValidationError):
            GameRecord.from_dict(["not", "a", "record"])


class TestScoringDetail:
    def test_mode_tag_picks_the_variant(self):
        _, summary = build_summary_detail(SummaryScoreInput(card_points=30, clean_canastas=1))
        _, cards = build_cards_detail(
            CardsScoreInput(card_counts=CardCountBreakdown(aces=2), dirty_canastas=1)
        )

        assert isinstance(scoring_from_dict(summary.to_dict()), SummaryScoring)
        assert isinstance(scoring_from_dict(cards.to_dict()), CardsScoring)
        assert scoring_from_dict(cards.to_dict()) == cards

    def test_mode_is_not_a_constructor_argument(self):
        detail = ManualScoring(entered_total=10, breakdown="Final total 10")

        assert detail.mode == "manual"
        with pytest.raises(TypeError):
            ManualScoring(entered_total=10, breakdown="", mode="cards")

    def test_unknown_mode_is_rejected(self):
        with pytest.raises(ValidationError, match="mode"):
            scoring_from_dict({"mode": "guess", "enteredTotal": 1, "breakdown": ""})

    def test_boolean_is_not_accepted_as_points(self):
        with pytest.raises(ValidationError):
            scoring_from_dict({"mode": "manual", "enteredTotal": True, "breakdown": ""})

    def test_missing_counters_default_to_zero(self):
        detail = scoring_from_dict(
            {"mode": "manual", "enteredTotal": 5, "breakdown": "Final total 5", "components": {}}
        )

        assert detail.components.total == 0

    def test_team_result_keeps_canasta_counts(self):
        total, detail = build_summary_detail(SummaryScoreInput(clean_canastas=2, dirty_canastas=1))
        team = build_team_result("pair-a", total, detail)

        rebuilt = TeamResult.from_dict(team.to_dict())

        assert rebuilt.canasta.clean_canastas == 2
        assert rebuilt.canasta.dirty_canastas == 1


class TestPairDocument:
    def test_three_players_are_rejected(self):
        with pytest.raises(ValidationError, match="exactly 2"):
            Pair.from_dict({"id": "pair-1", "groupId": "g", "players": ["a", "b", "c"]})

    def test_blank_player_id_is_rejected(self):
        with pytest.raises(ValidationError):
            Pair.from_dict({"id": "pair-1", "groupId": "g", "players": ["a", ""]})

    def test_players_become_a_tuple(self):
        pair = Pair.from_dict({"id": "pair-1", "groupId": "g", "players": ["a", "b"]})

        assert pair.players == ("a", "b")


class TestGameUpdate:
    def test_fields_default_to_unset(self):
        update = GameUpdate()

        assert not any(update.is_set(name) for name in ("teams", "scores", "notes", "played_at"))

    def test_explicit_none_counts_as_set(self):
        assert GameUpdate(notes=None).is_set("notes")

    def test_unset_survives_copying(self):
        update = copy.deepcopy(GameUpdate(notes="x"))

        assert update.teams is UNSET
        assert not update.is_set("starting_pair_id")
