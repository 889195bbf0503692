"""Find a contestant's Fandom page when no source URL is on record."""

from __future__ import annotations

import logging
import re
from urllib.parse import quote, unquote

from dragwiki.http import ddg_search

logger = logging.getLogger(__name__)

FANDOM_WIKI = "https://rupaulsdragrace.fandom.com/wiki/"

_SKIP_NAMESPACES: tuple[str, ...] = ("Special:", "File:", "Category:", "Talk:", "User:")


def normalize_contestant_name(name: str) -> str:
    """Strip punctuation and collapse whitespace."""
    return re.sub(r"\s+", " ", re.sub(r"[^\w\s]", "", name.strip()))


def construct_fandom_url(name: str) -> str | None:
    """Guess the Fandom URL for *name* from its page-title form."""
    clean = normalize_contestant_name(name).replace(" ", "_")
    if not clean:
        return None
    return FANDOM_WIKI + quote(clean)


def _is_article(href: str) -> bool:
    if not href.startswith(FANDOM_WIKI):
        return False
    title = unquote(href[len(FANDOM_WIKI):])
    return bool(title) and not title.startswith(_SKIP_NAMESPACES)


def _score(href: str, name: str) -> int:
    title = unquote(href[len(FANDOM_WIKI):]).replace("_", " ").lower()
    wanted = normalize_contestant_name(name).lower()
    if title == wanted:
        return 2
    if wanted in title:
        return 1
    return 0


def find_contestant_source_url(name: str, *, fallback: bool = True) -> str | None:
    """Search for the Fandom article about a contestant.

    Args:
        name: Drag name.
        fallback: Construct a URL from the name when the search finds
            nothing.

    Returns:
        The article URL, or None when nothing was found and *fallback* is
        False.
    """
    query = f'site:rupaulsdragrace.fandom.com "{name}"'
    results = ddg_search(query, max_results=5)
    articles = [r.get("href", "") for r in results if _is_article(r.get("href", ""))]
    if articles:
        best = max(articles, key=lambda href: _score(href, name))
        logger.info("Found Fandom page for %s: %s", name, best)
        return best

    if not fallback:
        return None
    guessed = construct_fandom_url(name)
    logger.info("No search hit for %s, guessing %s", name, guessed)
    return guessed
