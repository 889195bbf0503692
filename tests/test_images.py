"""Unit tests for dragwiki.images discovery and the image pipeline."""

from __future__ import annotations

import asyncio

from bs4 import BeautifulSoup

from dragwiki.config import ImageConfig
from dragwiki.images import (
    ImagePipeline,
    ImageScrapeResult,
    discover_images,
    content_extension,
    filter_by_season,
    image_name,
    url_variants,
    ImageCandidate,
)
from dragwiki.models import Contestant
from dragwiki.object_store import LocalObjectStore
from dragwiki.storage import SqliteStorage

PAGE_URL = "https://rupaulsdragrace.fandom.com/wiki/Katya"
IMG = "https://static.wikia.nocookie.net/rpdr/images"


def _make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


GALLERY_PAGE = f"""\
<html><body>
<div class="wikia-gallery">
  <div class="wikia-gallery-item"><img src="{IMG}/a/entrance.jpg" alt="Entrance look"></div>
  <div class="wikia-gallery-item"><img src="data:image/gif;base64,R0lGOD"
       data-src="{IMG}/b/finale.png" alt="Finale look"></div>
  <div class="wikia-gallery-item"><img src="{IMG}/c/clip.gif" alt="Animated"></div>
</div>
<div class="gallery"><img src="{IMG}/a/entrance.jpg" alt="Entrance look"></div>
<img src="{IMG}/d/runway_look.jpg" alt="Runway">
</body></html>
"""


class TestDiscoverImages:
    """Ordered selector strategies and the loose fallback."""

    def test_accumulates_and_deduplicates(self) -> None:
        found = discover_images(_make_soup(GALLERY_PAGE), PAGE_URL, ImageConfig())
        assert [c.url for c in found] == [
            f"{IMG}/a/entrance.jpg",
            f"{IMG}/b/finale.png",
            f"{IMG}/d/runway_look.jpg",
        ]

    def test_loose_fallback_excludes_chrome_and_small(self) -> None:
        html = f"""\
        <img src="{IMG}/site/wiki_logo.png" width="300" height="300">
        <img src="{IMG}/x/tiny.jpg" width="40" height="40">
        <img src="{IMG}/x/portrait.jpg" width="300" height="400">
        <img src="{IMG}/x/unsized.jpg">
        """
        found = discover_images(_make_soup(html), PAGE_URL, ImageConfig())
        assert [c.url for c in found] == [f"{IMG}/x/portrait.jpg"]

    def test_relative_sources_resolved(self) -> None:
        html = '<div class="gallery"><img src="/images/look.jpg"></div>'
        found = discover_images(_make_soup(html), PAGE_URL, ImageConfig())
        assert found[0].url == "https://rupaulsdragrace.fandom.com/images/look.jpg"


class TestFilterBySeason:
    def test_keeps_matching_images(self) -> None:
        candidates = [
            ImageCandidate(url=f"{IMG}/s7_entrance.jpg"),
            ImageCandidate(url=f"{IMG}/as2_entrance.jpg", alt="All Stars 2"),
            ImageCandidate(url=f"{IMG}/promo.jpg", alt="Season 7 promo"),
        ]
        kept = filter_by_season(candidates, "RuPaul's Drag Race Season 7")
        assert [c.url for c in kept] == [f"{IMG}/s7_entrance.jpg", f"{IMG}/promo.jpg"]

    def test_no_match_keeps_everything(self) -> None:
        candidates = [ImageCandidate(url=f"{IMG}/promo.jpg")]
        assert filter_by_season(candidates, "Season 12") == candidates

    def test_hint_without_number(self) -> None:
        candidates = [ImageCandidate(url=f"{IMG}/promo.jpg")]
        assert filter_by_season(candidates, "All Stars") == candidates


class TestUrlVariants:
    def test_fandom_resize_segments(self) -> None:
        url = f"{IMG}/a/look.jpg/revision/latest/scale-to-width-down/250?cb=2020"
        assert url_variants(url) == [
            url,
            f"{IMG}/a/look.jpg/revision/latest?cb=2020",
            f"{IMG}/a/look.jpg",
        ]

    def test_wikimedia_thumb(self) -> None:
        url = "https://upload.wikimedia.org/wikipedia/commons/thumb/a/ab/Katya.jpg/220px-Katya.jpg"
        assert url_variants(url)[-1] == (
            "https://upload.wikimedia.org/wikipedia/commons/a/ab/Katya.jpg"
        )

    def test_plain_url(self) -> None:
        assert url_variants(f"{IMG}/a/look.jpg") == [f"{IMG}/a/look.jpg"]


class TestNaming:
    def test_extension_from_bytes_then_content_type(self) -> None:
        assert content_extension(b"\x89PNG\r\n\x1a\n....", "image/jpeg") == "png"
        assert content_extension(b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/jpeg") == "webp"
        assert content_extension(b"opaque", "image/webp; charset=binary") == "webp"
        assert content_extension(b"opaque", "application/octet-stream") == "jpg"

    def test_image_name(self) -> None:
        assert image_name(ImageCandidate(url="u", alt="Finale Look!"), 0, "jpg") == "finale-look.jpg"
        assert image_name(ImageCandidate(url="u"), 2, "png") == "look-3.png"


def _run(pipeline: ImagePipeline, name: str, url: str) -> ImageScrapeResult:
    return asyncio.run(pipeline.scrape_images(name, url))


class TestImagePipeline:
    """Download, content-addressed storage and persistence."""

    def test_disabled_is_successful_noop(self, make_fetcher, object_store, storage) -> None:
        fetcher = make_fetcher()
        pipeline = ImagePipeline(fetcher, object_store, storage, ImageConfig(enabled=False))
        result = _run(pipeline, "Katya", PAGE_URL)
        assert result.success
        assert result.note
        assert fetcher.opened == []

    def test_identical_bytes_stored_once(self, make_fetcher, object_store, storage) -> None:
        html = f"""\
        <div class="gallery">
          <img src="{IMG}/a/promo.jpg" alt="Promo">
          <img src="{IMG}/b/promo_copy.jpg" alt="Promo copy">
        </div>
        """
        fetcher = make_fetcher(
            pages={PAGE_URL: html},
            images={f"{IMG}/a/promo.jpg": b"same-bytes", f"{IMG}/b/promo_copy.jpg": b"same-bytes"},
        )
        storage.create_contestant(Contestant(drag_name="Katya"))
        pipeline = ImagePipeline(fetcher, object_store, storage, ImageConfig())

        result = _run(pipeline, "Katya", PAGE_URL)

        assert result.success
        assert result.downloaded == 2
        assert len(result.uploaded) == 2
        assert result.uploaded[0].key == result.uploaded[1].key
        assert result.uploaded[0].key.startswith("contestants/katya/")
        assert object_store.puts == 1
        stored = storage.get_contestant_by_name("Katya")
        assert stored is not None
        assert stored.image_count == 1
        assert stored.last_image_scrape_at is not None

    def test_key_ignores_url_extension(self, make_fetcher, object_store, storage) -> None:
        html = f"""\
        <div class="gallery">
          <img src="{IMG}/a/promo.jpg" alt="Promo">
          <img src="{IMG}/b/promo.jpeg" alt="Promo again">
        </div>
        """
        fetcher = make_fetcher(
            pages={PAGE_URL: html},
            images={f"{IMG}/a/promo.jpg": b"same-bytes", f"{IMG}/b/promo.jpeg": b"same-bytes"},
        )
        pipeline = ImagePipeline(fetcher, object_store, storage, ImageConfig())

        result = _run(pipeline, "Katya", PAGE_URL)

        assert [img.key for img in result.uploaded] == [result.uploaded[0].key] * 2
        assert result.uploaded[0].key.endswith(".jpg")
        assert object_store.puts == 1

    def test_falls_back_to_variant(self, make_fetcher, object_store, storage) -> None:
        thumb = f"{IMG}/a/look.jpg/revision/latest/scale-to-width-down/250"
        fetcher = make_fetcher(
            pages={PAGE_URL: f'<div class="gallery"><img src="{thumb}"></div>'},
            images={f"{IMG}/a/look.jpg": b"original"},
        )
        pipeline = ImagePipeline(fetcher, object_store, storage, ImageConfig())
        result = _run(pipeline, "Katya", PAGE_URL)
        assert result.success
        assert fetcher.downloads[-1] == f"{IMG}/a/look.jpg"
        assert result.uploaded[0].original_url == thumb

    def test_partial_failure_still_succeeds(self, make_fetcher, object_store, storage) -> None:
        html = f"""\
        <div class="gallery">
          <img src="{IMG}/a/ok.jpg"><img src="{IMG}/a/missing.jpg">
        </div>
        """
        fetcher = make_fetcher(pages={PAGE_URL: html}, images={f"{IMG}/a/ok.jpg": b"ok"})
        pipeline = ImagePipeline(fetcher, object_store, storage, ImageConfig())
        result = _run(pipeline, "Katya", PAGE_URL)
        assert result.success
        assert result.downloaded == 1
        assert len(result.errors) == 1

    def test_no_images_is_failure(self, make_fetcher, object_store, storage) -> None:
        fetcher = make_fetcher(pages={PAGE_URL: "<p>No pictures</p>"})
        pipeline = ImagePipeline(fetcher, object_store, storage, ImageConfig())
        result = _run(pipeline, "Katya", PAGE_URL)
        assert not result.success
        assert result.errors == ["No images found on the page"]

    def test_page_load_failure(self, make_fetcher, object_store, storage) -> None:
        pipeline = ImagePipeline(make_fetcher(), object_store, storage, ImageConfig())
        result = _run(pipeline, "Katya", PAGE_URL)
        assert not result.success
        assert "Failed to load" in result.errors[0]

    def test_existing_object_not_reuploaded(self, make_fetcher, storage, tmp_path) -> None:
        store = LocalObjectStore(tmp_path, base_url="/images")
        fetcher = make_fetcher(
            pages={PAGE_URL: f'<div class="gallery"><img src="{IMG}/a/x.jpg"></div>'},
            images={f"{IMG}/a/x.jpg": b"bytes"},
        )
        pipeline = ImagePipeline(fetcher, store, storage, ImageConfig())
        first = _run(pipeline, "Katya", PAGE_URL)
        path = tmp_path / first.uploaded[0].key
        mtime = path.stat().st_mtime_ns
        second = _run(pipeline, "Katya", PAGE_URL)
        assert second.uploaded[0].url == first.uploaded[0].url
        assert first.uploaded[0].url.startswith("/images/contestants/katya/")
        assert path.stat().st_mtime_ns == mtime
