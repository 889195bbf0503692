"""Unit tests for dragwiki.parsers field parsers."""

from __future__ import annotations

import pytest

from dragwiki.errors import ConfigError
from dragwiki.parsers import extract_age, extract_outcome, get_parser, trim


class TestTrim:
    """Tests for whitespace normalisation."""

    def test_collapses_inner_whitespace(self) -> None:
        assert trim("  Bianca \n Del\tRio ") == "Bianca Del Rio"

    def test_empty(self) -> None:
        assert trim("   ") == ""


class TestExtractAge:
    """Tests for age extraction."""

    def test_labelled_age(self) -> None:
        assert extract_age("Age: 29") == 29

    def test_not_available(self) -> None:
        assert extract_age("N/A") is None

    def test_empty(self) -> None:
        assert extract_age("") is None

    def test_first_token_wins(self) -> None:
        assert extract_age("31 (turned 32 during filming)") == 31

    def test_ignores_longer_numbers(self) -> None:
        assert extract_age("Born 1990") is None

    def test_footnote_marker(self) -> None:
        assert extract_age("27[a]") == 27


class TestExtractOutcome:
    """Tests for outcome normalisation."""

    def test_eliminated_with_placement(self) -> None:
        assert extract_outcome("3rd Place, Eliminated") == "Eliminated"

    def test_winner(self) -> None:
        assert extract_outcome("WINNER") == "Winner"

    def test_winner_variants(self) -> None:
        assert extract_outcome("Co-winner") == "Winner"
        assert extract_outcome("Winners") == "Winner"
        assert extract_outcome("Wins") == "Winner"

    def test_runner_up_variants(self) -> None:
        assert extract_outcome("Runner-up") == "Runner-up"
        assert extract_outcome("runner up") == "Runner-up"

    def test_disqualified(self) -> None:
        assert extract_outcome("Disqualified") == "Disqualified"

    def test_precedence_order(self) -> None:
        assert extract_outcome("Winner (eliminated in ep 3, returned)") == "Winner"

    def test_unknown_text_is_trimmed(self) -> None:
        assert extract_outcome("  Miss Congeniality ") == "Miss Congeniality"

    def test_empty_returns_none(self) -> None:
        assert extract_outcome("  ") is None


class TestGetParser:
    """Tests for parser lookup by recipe name."""

    def test_known_names(self) -> None:
        assert get_parser("extractAge") is extract_age
        assert get_parser("trim") is trim
        assert get_parser("none")("  x ") == "  x "

    def test_unknown_name(self) -> None:
        with pytest.raises(ConfigError, match="Unknown parser"):
            get_parser("extractShoeSize")
