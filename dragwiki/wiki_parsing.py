"""Recipe-driven table extraction for wiki season pages.

Both page drivers hand their HTML to these functions, so the real and
simulated drivers produce identically shaped ``RowRecord`` lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag

from dragwiki.errors import ExtractionEmptyError, RowParseError
from dragwiki.models import RowRecord
from dragwiki.parsers import trim
from dragwiki.recipes.types import (
    ColumnSpec,
    ExtractionRecipe,
    SeasonLinkSpec,
    TableLayout,
)

logger = logging.getLogger(__name__)

# Elements whose text never belongs to a cell value
_IGNORED_TAGS: frozenset[str] = frozenset({"style", "script"})


@dataclass(frozen=True)
class ExtractionResult:
    """Rows extracted from one season page.

    Attributes:
        rows: Parsed contestant rows, in table order.
        skipped_rows: Rows that could not be parsed.
        layout_index: 0 for the primary layout, n for the n-th alternative.
    """

    rows: tuple[RowRecord, ...]
    skipped_rows: int = 0
    layout_index: int = 0


def _is_ignored(node: NavigableString, root: Tag) -> bool:
    """Is *node* inside a citation marker or script below *root*?"""
    parent = node.parent
    while parent is not None and parent is not root:
        if parent.name in _IGNORED_TAGS:
            return True
        if parent.name == "sup" and "reference" in (parent.get("class") or []):
            return True
        parent = parent.parent
    return False


def cell_text(cell: Tag, selector: str | None = None) -> str:
    """Return the visible text of a cell, without citation markers.

    Args:
        cell: A ``<th>`` or ``<td>`` element.
        selector: Optional CSS selector; when given, only the first match
            inside the cell is read.

    Returns:
        Space-joined text fragments (not yet trimmed), or "" when the
        selector matches nothing.
    """
    target = cell.select_one(selector) if selector else cell
    if target is None:
        return ""
    parts = [
        str(s)
        for s in target.find_all(string=True)
        if not _is_ignored(s, target)
    ]
    return " ".join(parts)


def resolve_cell(row: Tag, spec: ColumnSpec) -> Tag | None:
    """Pick the cell a column spec points at.

    Args:
        row: A ``<tr>`` element.
        spec: Column location; negative indexes count from the end.

    Returns:
        The cell, or None when the row has too few cells of that type.
    """
    cells = row.find_all(spec.cell_type, recursive=False)
    index = spec.index if spec.index >= 0 else len(cells) + spec.index
    if 0 <= index < len(cells):
        return cells[index]
    return None


def _link_target(cell: Tag, selector: str | None, source_url: str) -> str | None:
    target = cell.select_one(selector) if selector else cell
    if target is None:
        return None
    link = target if target.name == "a" else target.find("a")
    if not isinstance(link, Tag):
        return None
    href = str(link.get("href", ""))
    if not href or href.startswith("#"):
        return None
    return urljoin(source_url, href)


def parse_row(row: Tag, layout: TableLayout, source_url: str = "") -> RowRecord:
    """Turn one table row into a RowRecord.

    Args:
        row: A ``<tr>`` element.
        layout: Column configuration to apply.
        source_url: Page URL, used to absolutise the drag-name link.

    Returns:
        The parsed row.

    Raises:
        RowParseError: If the row is a header row or has no drag name.
    """
    if row.find("td", recursive=False) is None:
        raise RowParseError("header row")

    values: dict[str, object] = {}
    name_cell: Tag | None = None
    for field_name, spec in layout.columns.items():
        cell = resolve_cell(row, spec)
        if cell is None:
            values[field_name] = None
            continue
        if field_name == "drag_name":
            name_cell = cell
        value = spec.parse(cell_text(cell, spec.selector))
        values[field_name] = value if value not in ("", None) else None

    drag_name = values.get("drag_name")
    if name_cell is None or not drag_name:
        raise RowParseError("row has no drag name")

    age = values.get("age")
    return RowRecord(
        drag_name=trim(str(drag_name)),
        age=age if isinstance(age, int) else None,
        hometown=_as_text(values.get("hometown")),
        real_name=_as_text(values.get("real_name")),
        outcome=_as_text(values.get("outcome")),
        source_url=_link_target(
            name_cell, layout.columns["drag_name"].selector, source_url
        ),
    )


def _as_text(value: object) -> str | None:
    if value is None:
        return None
    return trim(str(value)) or None


def extract_layout(
    soup: BeautifulSoup,
    layout: TableLayout,
    source_url: str = "",
) -> tuple[list[RowRecord], int]:
    """Extract contestant rows using a single layout.

    The first table matching ``layout.table_selector`` that yields at
    least one row wins; later tables on a season page hold progress
    charts rather than the contestant list.

    Args:
        soup: Parsed season page.
        layout: Table layout to apply.
        source_url: Page URL.

    Returns:
        (rows, skipped) where skipped counts unparseable rows seen.
    """
    skipped = 0
    for table in soup.select(layout.table_selector):
        rows = table.select(layout.row_selector)
        if layout.skip_first_row:
            rows = rows[1:]

        parsed: list[RowRecord] = []
        seen: set[str] = set()
        for row in rows:
            try:
                record = parse_row(row, layout, source_url)
            except RowParseError as exc:
                skipped += 1
                logger.debug("Skipping row on %s: %s", source_url, exc)
                continue
            if record.drag_name in seen:
                continue
            seen.add(record.drag_name)
            parsed.append(record)

        if parsed:
            return parsed, skipped
    return [], skipped


def extract_contestant_rows(
    soup: BeautifulSoup,
    recipe: ExtractionRecipe,
    source_url: str = "",
) -> ExtractionResult:
    """Extract contestant rows, trying alternative layouts in order.

    Args:
        soup: Parsed season page.
        recipe: Franchise recipe.
        source_url: Page URL.

    Returns:
        The rows from the first layout that produced any.

    Raises:
        ExtractionEmptyError: If no layout produced a row.
    """
    skipped_total = 0
    for index, layout in enumerate(recipe.layouts):
        rows, skipped = extract_layout(soup, layout, source_url)
        skipped_total += skipped
        if rows:
            if index:
                logger.info(
                    "Used alternative layout %d for %s", index, source_url or "page"
                )
            return ExtractionResult(
                rows=tuple(rows),
                skipped_rows=skipped_total,
                layout_index=index,
            )
        logger.debug(
            "Layout %d (%s) found no rows on %s",
            index,
            layout.table_selector,
            source_url or "page",
        )

    raise ExtractionEmptyError(
        f"No contestant rows found on {source_url or 'page'} "
        f"with {len(recipe.layouts)} layout(s)"
    )


def discover_season_links(
    soup: BeautifulSoup,
    spec: SeasonLinkSpec,
    base_url: str,
) -> list[tuple[str, str]]:
    """Collect (season name, url) pairs from a franchise page.

    Args:
        soup: Parsed franchise page.
        spec: Where the season links live.
        base_url: Franchise page URL, for resolving relative links.

    Returns:
        De-duplicated list of (name, url) tuples in page order.
    """
    seen: set[str] = set()
    results: list[tuple[str, str]] = []
    for container in soup.select(spec.list_selector):
        for link in container.select(spec.link_selector):
            href = str(link.get("href", ""))
            if not href or href.startswith("#"):
                continue
            url = urljoin(base_url, href)
            if url in seen:
                continue
            name = trim(str(link.get("title") or link.get_text(" ")))
            if not name:
                continue
            seen.add(url)
            results.append((name, url))
    return results
