"""Declarative table-extraction recipe types.

A recipe tells the extractor where a franchise's season pages keep their
contestant table and which cell holds which field. Recipes validate
themselves on construction and raise ``ConfigError`` when malformed.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from dragwiki.errors import ConfigError
from dragwiki.models import ROW_FIELDS
from dragwiki.parsers import get_parser

CELL_TYPES: tuple[str, ...] = ("th", "td")


@dataclass(frozen=True)
class ColumnSpec:
    """Location and parser of one field within a table row.

    Attributes:
        cell_type: "th" for header cells, "td" for data cells.
        index: Zero-based index among the row's cells of that type;
            negative values count from the end (-1 is the last cell).
        selector: Optional CSS selector applied inside the cell, e.g. "a"
            to read link text only.
        parser: Name of a parser in ``dragwiki.parsers.PARSERS``.
    """

    cell_type: str
    index: int
    selector: str | None = None
    parser: str = "trim"

    def __post_init__(self) -> None:
        if self.cell_type not in CELL_TYPES:
            raise ConfigError(
                f"cell_type must be one of {CELL_TYPES}, got {self.cell_type!r}"
            )
        get_parser(self.parser)

    @property
    def parse(self) -> Callable[[str], object]:
        return get_parser(self.parser)


@dataclass(frozen=True)
class TableLayout:
    """One way a contestant table can be laid out on a page.

    Attributes:
        table_selector: CSS selector for candidate tables.
        columns: Mapping of row field (see ``ROW_FIELDS``) to ColumnSpec.
        row_selector: CSS selector for rows inside a table.
        skip_first_row: Drop the first row of each table (header).
    """

    table_selector: str
    columns: Mapping[str, ColumnSpec]
    row_selector: str = "tr"
    skip_first_row: bool = True

    def __post_init__(self) -> None:
        if not self.table_selector:
            raise ConfigError("table_selector must not be empty")
        unknown = set(self.columns) - set(ROW_FIELDS)
        if unknown:
            raise ConfigError(f"Unknown column fields: {sorted(unknown)}")
        if "drag_name" not in self.columns:
            raise ConfigError("A table layout must map the drag_name column")
        for name, spec in self.columns.items():
            if not isinstance(spec, ColumnSpec):
                raise ConfigError(f"Column {name!r} is not a ColumnSpec")


@dataclass(frozen=True)
class SeasonLinkSpec:
    """Where a franchise page lists links to its seasons.

    Attributes:
        list_selector: CSS selector of the container(s) holding season links.
        link_selector: CSS selector of the links inside each container.
    """

    list_selector: str
    link_selector: str = "a"


@dataclass(frozen=True)
class ExtractionRecipe:
    """Per-franchise extraction recipe.

    Attributes:
        franchise_name: Franchise this recipe is registered under.
        primary: Layout tried first.
        alternatives: Layouts tried in order when the primary finds no rows.
        wait_for_selector: Selector the real driver waits for before reading
            the page.
        season_links: How to discover seasons from the franchise page.
    """

    franchise_name: str
    primary: TableLayout
    alternatives: tuple[TableLayout, ...] = field(default_factory=tuple)
    wait_for_selector: str | None = None
    season_links: SeasonLinkSpec | None = None

    def __post_init__(self) -> None:
        if not self.franchise_name:
            raise ConfigError("A recipe needs a franchise_name")
        if not isinstance(self.primary, TableLayout):
            raise ConfigError("primary must be a TableLayout")
        for alt in self.alternatives:
            if not isinstance(alt, TableLayout):
                raise ConfigError("alternatives must be TableLayout instances")

    @property
    def layouts(self) -> tuple[TableLayout, ...]:
        """All layouts in the order they are tried."""
        return (self.primary, *self.alternatives)
