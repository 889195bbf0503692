"""Field parsers turning raw table-cell text into typed values.

Every parser is total: it accepts any string and never raises. Recipes
refer to parsers by name; ``get_parser`` is called while a recipe is
built so that unknown names fail at registration time.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from dragwiki.errors import ConfigError

# ── Compiled patterns ──────────────────────────────────────────────────────

AGE_RE = re.compile(r"\b(\d{2})\b")
WHITESPACE_RE = re.compile(r"\s+")

# Checked in order; the first matching pattern decides the outcome.
OUTCOME_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bwin"), "Winner"),
    (re.compile(r"\brunner[- ]up\b"), "Runner-up"),
    (re.compile(r"\belim"), "Eliminated"),
    (re.compile(r"\bdisq"), "Disqualified"),
)


def trim(text: str) -> str:
    """Collapse runs of whitespace and strip the ends.

    Args:
        text: Raw cell text.

    Returns:
        Normalised text (possibly empty).
    """
    return WHITESPACE_RE.sub(" ", text).strip()


def extract_age(text: str) -> int | None:
    """Return the first standalone two-digit number in *text*.

    Args:
        text: Raw cell text, e.g. "Age: 29" or "29[a]".

    Returns:
        The age, or None when no two-digit token is present.
    """
    m = AGE_RE.search(text)
    return int(m.group(1)) if m else None


def extract_outcome(text: str) -> str | None:
    """Normalise a placement cell.

    Args:
        text: Raw cell text, e.g. "3rd Place, Eliminated".

    Returns:
        "Winner", "Runner-up", "Eliminated" or "Disqualified" for known
        placements; otherwise the trimmed text, or None when empty.
    """
    cleaned = trim(text)
    lowered = cleaned.lower()
    for pattern, label in OUTCOME_PATTERNS:
        if pattern.search(lowered):
            return label
    return cleaned or None


def identity(text: str) -> str:
    return text


PARSERS: dict[str, Callable[[str], object]] = {
    "trim": trim,
    "extractAge": extract_age,
    "extractOutcome": extract_outcome,
    "none": identity,
}


def get_parser(name: str) -> Callable[[str], object]:
    """Look up a parser by its recipe name.

    Args:
        name: Parser name as written in a recipe.

    Returns:
        The parser function.

    Raises:
        ConfigError: If no parser has that name.
    """
    try:
        return PARSERS[name]
    except KeyError:
        raise ConfigError(
            f"Unknown parser {name!r}; expected one of {sorted(PARSERS)}"
        ) from None
