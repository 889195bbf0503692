"""Deterministic in-memory page fetcher.

Stands in for the browser when Chromium is unavailable. Season pages are
rendered as HTML tables in the recipe's own layout and then parsed by the
same extraction code the real driver uses, so both drivers produce rows of
the same shape. The contestants on a page are chosen by a stable hash of
its URL.
"""

from __future__ import annotations

import asyncio
import hashlib
import html
import logging
import re
from dataclasses import dataclass
from urllib.parse import quote

from bs4 import BeautifulSoup

from dragwiki.fetchers.base import DownloadedImage, DriverKind, PageFetcher, PageHandle
from dragwiki.models import RowRecord
from dragwiki.recipes.types import ColumnSpec, ExtractionRecipe, TableLayout
from dragwiki.wiki_parsing import ExtractionResult, extract_contestant_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleQueen:
    drag_name: str
    real_name: str
    age: int
    hometown: str


SAMPLE_CONTESTANTS: tuple[SampleQueen, ...] = (
    SampleQueen("BenDeLaCreme", "Benjamin Putnam", 42, "Chicago, Illinois"),
    SampleQueen("Bianca Del Rio", "Roy Richard Haylock", 49, "New Orleans, Louisiana"),
    SampleQueen("Adore Delano", "Daniel Anthony Noriega", 34, "Azusa, California"),
    SampleQueen("Courtney Act", "Shane Gilberto Jenek", 42, "Brisbane, Australia"),
    SampleQueen("Trixie Mattel", "Brian Michael Firkus", 35, "Milwaukee, Wisconsin"),
    SampleQueen("Katya", "Brian Joseph McCook", 41, "Marlborough, Massachusetts"),
    SampleQueen("Sasha Velour", "Alexander Hedges Steinberg", 36, "Brooklyn, New York"),
    SampleQueen("Shea Coulee", "Jaren Merrell", 34, "Chicago, Illinois"),
    SampleQueen("Jinkx Monsoon", "Jerick Hoffer", 36, "Seattle, Washington"),
    SampleQueen("Monet X Change", "Kevin Bertin", 33, "Bronx, New York"),
    SampleQueen("The Vivienne", "James Lee Williams", 31, "Liverpool, England"),
    SampleQueen("Lawrence Chaney", "Lawrence Chaney", 24, "Glasgow, Scotland"),
)


# (folder, file stem, alt text)
_GALLERY_LOOKS: tuple[tuple[str, str, str], ...] = (
    ("promo", "promo", "Official promo photo"),
    ("entrance", "entrance_look", "Entrance look"),
    ("finale", "finale_look", "Finale look"),
    ("runway", "look_1", "Runway look"),
    ("runway", "look_2", "Runway look"),
)

_IMAGE_HOST = "https://static.wikia.nocookie.net/rpdr/images"


def _digest(value: str) -> bytes:
    return hashlib.sha1(value.encode("utf-8")).digest()


def sample_rows(url: str) -> list[RowRecord]:
    """Return the deterministic contestant rows served for *url*."""
    digest = _digest(url)
    pool = SAMPLE_CONTESTANTS
    start = digest[0] % len(pool)
    count = 4 + digest[1] % 3
    rows: list[RowRecord] = []
    for position in range(count):
        queen = pool[(start + position) % len(pool)]
        if position == 0:
            outcome = "Winner"
        elif position == 1:
            outcome = "Runner-up"
        else:
            outcome = "Eliminated"
        rows.append(
            RowRecord(
                drag_name=queen.drag_name,
                age=queen.age,
                hometown=queen.hometown,
                real_name=queen.real_name,
                outcome=outcome,
            )
        )
    return rows


# ── Table rendering ────────────────────────────────────────────────────────


def _width(specs: list[ColumnSpec]) -> int:
    positive = [s.index for s in specs if s.index >= 0]
    negative = [-s.index for s in specs if s.index < 0]
    return (max(positive) + 1 if positive else 0) + (max(negative) if negative else 0)


def _wrap(selector: str, text: str, href: str) -> str:
    """Render *text* inside an element matching a simple tag.class selector."""
    tag, _, css_class = selector.partition(".")
    tag = tag or "span"
    attrs = f' class="{css_class}"' if css_class else ""
    if tag == "a":
        attrs += f' href="{href}"'
    return f"<{tag}{attrs}>{text}</{tag}>"


def _field_text(row: RowRecord, field: str) -> str:
    value = getattr(row, field)
    return "" if value is None else html.escape(str(value))


def _table_attrs(selector: str) -> str:
    classes = re.findall(r"\.([\w-]+)", selector)
    ident = re.search(r"#([\w-]+)", selector)
    attrs = f' class="{" ".join(classes)}"' if classes else ""
    if ident:
        attrs += f' id="{ident.group(1)}"'
    return attrs


def render_table(rows: list[RowRecord], layout: TableLayout) -> str:
    """Render *rows* as an HTML table that *layout* extracts back.

    Negative column indexes are honoured by padding each row so that the
    indexed cell sits that many places from the end.
    """
    by_type: dict[str, dict[str, ColumnSpec]] = {"th": {}, "td": {}}
    for field_name, spec in layout.columns.items():
        by_type[spec.cell_type][field_name] = spec
    widths = {
        "th": _width(list(by_type["th"].values())),
        "td": max(_width(list(by_type["td"].values())), 1),
    }

    header = "".join("<th>Column</th>" for _ in range(widths["th"] + widths["td"]))
    lines = [f"<table{_table_attrs(layout.table_selector)}>", f"<tr>{header}</tr>"]
    for row in rows:
        href = quote(row.drag_name.replace(" ", "_"))
        cells: dict[str, list[str]] = {
            cell_type: [""] * width for cell_type, width in widths.items()
        }
        for cell_type, specs in by_type.items():
            for field_name, spec in specs.items():
                slot = spec.index if spec.index >= 0 else widths[cell_type] + spec.index
                text = _field_text(row, field_name)
                if spec.selector:
                    text = _wrap(spec.selector, text, href)
                elif field_name == "drag_name":
                    text = f'<a href="{href}">{text}</a>'
                cells[cell_type][slot] = text
        rendered = "".join(f"<th>{c}</th>" for c in cells["th"])
        rendered += "".join(f"<td>{c}</td>" for c in cells["td"])
        lines.append(f"<tr>{rendered}</tr>")
    lines.append("</table>")
    return "\n".join(lines)


def render_gallery(url: str) -> str:
    """Render a contestant page with a Fandom-style look gallery."""
    slug = re.sub(r"[^a-z0-9]+", "_", url.rstrip("/").rsplit("/", 1)[-1].lower())
    items = []
    for folder, stem, alt in _GALLERY_LOOKS:
        src = (
            f"{_IMAGE_HOST}/{folder}/{slug}_{stem}.jpg"
            "/revision/latest/scale-to-width-down/250"
        )
        items.append(
            f'<div class="wikia-gallery-item"><img src="{src}" alt="{alt}"'
            ' width="250" height="350"></div>'
        )
    promo_large = (
        f"{_IMAGE_HOST}/promo/{slug}_promo.jpg/revision/latest/scale-to-width-down/400"
    )
    return (
        "<html><body>"
        f'<aside class="portable-infobox"><img src="{promo_large}" alt="Promo"></aside>'
        f'<div class="wikia-gallery">{"".join(items)}</div>'
        f'<img src="{_IMAGE_HOST}/site/wiki_logo.png" alt="logo" width="120" height="120">'
        "</body></html>"
    )


# ── Fetcher ────────────────────────────────────────────────────────────────


class SimulatedFetcher(PageFetcher):
    """Serves generated pages with an artificial delay."""

    kind = DriverKind.SIMULATED

    async def _pause(self) -> None:
        if self.config.simulated_delay_s > 0:
            await asyncio.sleep(self.config.simulated_delay_s)

    async def open(
        self,
        url: str,
        *,
        wait_until: str | None = None,
        timeout_ms: int | None = None,
    ) -> PageHandle:
        await self._pause()
        logger.debug("Simulated load of %s", url)
        return PageHandle(url=url, html=render_gallery(url))

    async def extract_table(
        self,
        handle: PageHandle,
        recipe: ExtractionRecipe,
    ) -> ExtractionResult:
        await self._pause()
        handle.html = render_table(sample_rows(handle.url), recipe.primary)
        soup = BeautifulSoup(handle.html, "lxml")
        return extract_contestant_rows(soup, recipe, handle.url)

    async def download(
        self,
        url: str,
        timeout_s: float,
        max_size: int | None = None,
    ) -> DownloadedImage:
        # Resized variants of one original share its bytes.
        original = url.split("/revision/", 1)[0]
        content_type = "image/png" if original.lower().endswith(".png") else "image/jpeg"
        content = b"SIMULATED-IMAGE:" + original.encode("utf-8")
        return DownloadedImage(url=url, content=content, content_type=content_type)
