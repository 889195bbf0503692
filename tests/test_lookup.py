"""Unit tests for dragwiki.lookup."""

from __future__ import annotations

from unittest.mock import patch

from dragwiki.lookup import (
    FANDOM_WIKI,
    construct_fandom_url,
    find_contestant_source_url,
    normalize_contestant_name,
)


class TestNames:
    def test_normalize(self) -> None:
        assert normalize_contestant_name("  Trixie   Mattel! ") == "Trixie Mattel"

    def test_construct(self) -> None:
        assert construct_fandom_url("Trixie Mattel") == f"{FANDOM_WIKI}Trixie_Mattel"

    def test_construct_empty(self) -> None:
        assert construct_fandom_url("?!") is None


class TestFindSourceUrl:
    """Search results are filtered to articles and ranked by title."""

    def test_prefers_exact_title(self) -> None:
        results = [
            {"href": f"{FANDOM_WIKI}Special:Search?query=Katya"},
            {"href": f"{FANDOM_WIKI}Katya_Zamolodchikova"},
            {"href": f"{FANDOM_WIKI}Katya"},
            {"href": "https://en.wikipedia.org/wiki/Katya"},
        ]
        with patch("dragwiki.lookup.ddg_search", return_value=results) as search:
            url = find_contestant_source_url("Katya")
        assert url == f"{FANDOM_WIKI}Katya"
        assert "rupaulsdragrace.fandom.com" in search.call_args[0][0]

    def test_falls_back_to_constructed_url(self) -> None:
        with patch("dragwiki.lookup.ddg_search", return_value=[]):
            assert find_contestant_source_url("Bianca Del Rio") == f"{FANDOM_WIKI}Bianca_Del_Rio"

    def test_no_fallback(self) -> None:
        with patch("dragwiki.lookup.ddg_search", return_value=[]):
            assert find_contestant_source_url("Bianca Del Rio", fallback=False) is None
