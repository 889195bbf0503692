"""Static seed catalog of franchises and seasons.

The orchestrator upserts these before building a work plan, so a fresh
database can be scraped without any manual data entry. Existing rows are
never overwritten by seeding.
"""

from __future__ import annotations

from dataclasses import dataclass

WIKI = "https://en.wikipedia.org/wiki"
FANDOM = "https://rupaulsdragrace.fandom.com/wiki"


@dataclass(frozen=True)
class SeedSeason:
    """A season known ahead of scraping."""

    name: str
    year: int | None
    source_url: str


@dataclass(frozen=True)
class SeedFranchise:
    """A franchise known ahead of scraping, with its seeded seasons."""

    name: str
    source_url: str | None
    seasons: tuple[SeedSeason, ...] = ()


SEED_FRANCHISES: tuple[SeedFranchise, ...] = (
    SeedFranchise(
        name="RuPaul's Drag Race",
        source_url=f"{WIKI}/RuPaul%27s_Drag_Race",
        seasons=(
            SeedSeason(
                "RuPaul's Drag Race Season 16",
                2024,
                f"{WIKI}/RuPaul%27s_Drag_Race_(season_16)",
            ),
            SeedSeason(
                "RuPaul's Drag Race Season 15",
                2023,
                f"{WIKI}/RuPaul%27s_Drag_Race_(season_15)",
            ),
            SeedSeason(
                "RuPaul's Drag Race Season 14",
                2022,
                f"{WIKI}/RuPaul%27s_Drag_Race_(season_14)",
            ),
        ),
    ),
    SeedFranchise(
        name="RuPaul's Drag Race UK",
        source_url=f"{WIKI}/RuPaul%27s_Drag_Race_UK",
        seasons=(
            SeedSeason(
                "RuPaul's Drag Race UK Series 5",
                2023,
                f"{WIKI}/RuPaul%27s_Drag_Race_UK_(series_5)",
            ),
            SeedSeason(
                "RuPaul's Drag Race UK Series 4",
                2022,
                f"{WIKI}/RuPaul%27s_Drag_Race_UK_(series_4)",
            ),
        ),
    ),
    SeedFranchise(
        name="RuPaul's Drag Race All Stars",
        source_url=f"{FANDOM}/RuPaul%27s_Drag_Race_All_Stars",
        seasons=(
            SeedSeason(
                "RuPaul's Drag Race All Stars Season 8",
                2023,
                f"{FANDOM}/RuPaul%27s_Drag_Race_All_Stars_(Season_8)",
            ),
        ),
    ),
    SeedFranchise(
        name="Drag Race Brasil",
        source_url=f"{WIKI}/Drag_Race_Brasil",
        seasons=(
            SeedSeason(
                "Drag Race Brasil Season 1",
                2023,
                f"{WIKI}/Drag_Race_Brasil_(season_1)",
            ),
        ),
    ),
)
