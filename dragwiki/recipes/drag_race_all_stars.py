"""Recipe for RuPaul's Drag Race All Stars.

All Stars seasons are sourced from the Fandom wiki, whose table is
Contestant | Photo | Age | Hometown | Original season | Outcome with the
name as a link in a data cell. Older snapshots came from Wikipedia, kept
as an alternative layout.
"""

from __future__ import annotations

from dragwiki.recipes.types import ColumnSpec, ExtractionRecipe, TableLayout

FANDOM_LAYOUT = TableLayout(
    table_selector="table.wikitable",
    columns={
        "drag_name": ColumnSpec("td", 0, selector="a"),
        "age": ColumnSpec("td", 2, parser="extractAge"),
        "hometown": ColumnSpec("td", 3),
        "outcome": ColumnSpec("td", -1, parser="extractOutcome"),
    },
)

WIKIPEDIA_ALL_STARS_LAYOUT = TableLayout(
    table_selector=".wikitable",
    columns={
        "drag_name": ColumnSpec("th", 0),
        "age": ColumnSpec("td", 1, parser="extractAge"),
        "hometown": ColumnSpec("td", 2),
        "outcome": ColumnSpec("td", -1, parser="extractOutcome"),
    },
)

DRAG_RACE_ALL_STARS_RECIPE = ExtractionRecipe(
    franchise_name="RuPaul's Drag Race All Stars",
    primary=FANDOM_LAYOUT,
    alternatives=(WIKIPEDIA_ALL_STARS_LAYOUT,),
)
