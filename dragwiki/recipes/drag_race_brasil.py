"""Recipe for Drag Race Brasil.

Brasil tables put every cell, including the name, in ``<td>``:
Contestant | Age | City | Outcome. There is no real-name column.
"""

from __future__ import annotations

from dragwiki.recipes.types import ColumnSpec, ExtractionRecipe, TableLayout

DRAG_RACE_BRASIL_RECIPE = ExtractionRecipe(
    franchise_name="Drag Race Brasil",
    primary=TableLayout(
        table_selector=".wikitable",
        columns={
            "drag_name": ColumnSpec("td", 0),
            "age": ColumnSpec("td", 1, parser="extractAge"),
            "hometown": ColumnSpec("td", 2),
            "outcome": ColumnSpec("td", 3, parser="extractOutcome"),
        },
    ),
)
