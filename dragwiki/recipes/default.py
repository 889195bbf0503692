"""Default recipe for standard Wikipedia season tables.

Layout: Contestant (th) | Age | Hometown | Real name | ... | Outcome
"""

from __future__ import annotations

from dragwiki.recipes.types import ColumnSpec, ExtractionRecipe, TableLayout

DEFAULT_FRANCHISE = "default"

WIKIPEDIA_LAYOUT = TableLayout(
    table_selector=".wikitable",
    columns={
        "drag_name": ColumnSpec("th", 0),
        "age": ColumnSpec("td", 0, parser="extractAge"),
        "hometown": ColumnSpec("td", 1),
        "real_name": ColumnSpec("td", 2),
        "outcome": ColumnSpec("td", -1, parser="extractOutcome"),
    },
)

DEFAULT_RECIPE = ExtractionRecipe(
    franchise_name=DEFAULT_FRANCHISE,
    primary=WIKIPEDIA_LAYOUT,
)
