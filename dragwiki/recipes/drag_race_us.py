"""Recipe for RuPaul's Drag Race (US).

US season pages use the standard Wikipedia layout with the contestant name
in a row-header cell. The franchise page lists seasons in its navbox.
"""

from __future__ import annotations

from dragwiki.recipes.default import WIKIPEDIA_LAYOUT
from dragwiki.recipes.types import ExtractionRecipe, SeasonLinkSpec

DRAG_RACE_US_RECIPE = ExtractionRecipe(
    franchise_name="RuPaul's Drag Race",
    primary=WIKIPEDIA_LAYOUT,
    wait_for_selector="table.wikitable",
    season_links=SeasonLinkSpec(
        list_selector="table.wikitable.plainrowheaders th[scope=row]",
        link_selector='a[href*="(season_"]',
    ),
)
