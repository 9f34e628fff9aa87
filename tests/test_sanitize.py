"""Tests for name and notes cleaning."""

import pytest

from errors import ValidationError
from utils.sanitize import (
    clean_group_name,
    clean_notes,
    clean_player_name,
    sanitize_name,
    sanitize_notes,
    sanitize_string,
)


class TestSanitizeString:
    def test_strips_tags_but_keeps_text(self):
        assert sanitize_string("  <b>Ana</b> <span class='x'>Bruno</span> ") == "Ana Bruno"

    def test_drops_script_contents(self):
        assert sanitize_string("Ana<script>alert('x')</script>") == "Ana"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_input(self, value):
        assert sanitize_string(value) == ""


class TestSanitizeName:
    def test_keeps_letters_digits_and_joiners(self):
        assert sanitize_name("Ana-Maria O'Neil & Co 2") == "Ana-Maria O'Neil & Co 2"

    def test_drops_other_symbols(self):
        assert sanitize_name("Ana!; DROP TABLE--") == "Ana DROP TABLE--"


class TestSanitizeNotes:
    def test_keeps_simple_formatting(self):
        assert sanitize_notes("<b>big</b> <i>win</i><br>") == "<b>big</b> <i>win</i><br>"

    def test_removes_attributes_and_other_tags(self):
        notes = '<strong style="color:red">wow</strong><a href="http://x">link</a><img src=x onerror=y>'

        assert sanitize_notes(notes) == "<strong>wow</strong>link"


class TestCleaners:
    def test_player_name_limits(self):
        assert clean_player_name("a" * 100) == "a" * 100
        with pytest.raises(ValidationError, match="no more than 100"):
            clean_player_name("a" * 101)

    def test_player_name_empty_after_cleaning(self):
        with pytest.raises(ValidationError, match="at least 1"):
            clean_player_name("<b></b>!!")

    def test_group_name_allows_longer_names(self):
        assert clean_group_name("g" * 200) == "g" * 200
        with pytest.raises(ValidationError):
            clean_group_name("g" * 201)

    def test_notes_limit(self):
        assert clean_notes("n" * 1000) == "n" * 1000
        with pytest.raises(ValidationError):
            clean_notes("n" * 1001)

    @pytest.mark.parametrize("value", [None, "", "  ", "<script>x</script>"])
    def test_empty_notes_become_none(self, value):
        assert clean_notes(value) is None


class TestAngleBracketText:
    def test_bracketed_text_reads_as_a_tag(self):
        assert sanitize_string("a<b and c>d") == "ad"

    def test_notes_keep_the_bare_tag_only(self):
        assert sanitize_notes("a<b and c>d") == "a<b>d"

    def test_lone_comparison_is_kept(self):
        assert sanitize_string("5 < 7 and 9 > 3") == "5 < 7 and 9 > 3"
