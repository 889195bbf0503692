"""Unit tests for dragwiki.reconcile upserts."""

from __future__ import annotations

import pytest

from dragwiki.models import Contestant, RowRecord, Season
from dragwiki.reconcile import ReconcileOutcome, Reconciler
from dragwiki.storage import SqliteStorage


@pytest.fixture()
def reconciler(storage: SqliteStorage) -> Reconciler:
    return Reconciler(storage)


@pytest.fixture()
def season(reconciler: Reconciler) -> Season:
    franchise = reconciler.upsert_franchise("RuPaul's Drag Race")
    assert franchise.franchise_id is not None
    return reconciler.upsert_season("Season 6", franchise.franchise_id, 2014)


class TestUpsertFranchiseAndSeason:
    """Insert-or-leave-unchanged semantics."""

    def test_franchise_not_overwritten(self, reconciler: Reconciler) -> None:
        first = reconciler.upsert_franchise("Drag Race Brasil", "https://a")
        second = reconciler.upsert_franchise("Drag Race Brasil", "https://b")
        assert second.franchise_id == first.franchise_id
        assert second.source_url == "https://a"

    def test_season_not_overwritten(self, reconciler: Reconciler, season: Season) -> None:
        again = reconciler.upsert_season("Season 6", season.franchise_id, 2099, "https://x")
        assert again.season_id == season.season_id
        assert again.year == 2014
        assert again.source_url is None


class TestReconcileRow:
    """Contestant and appearance reconciliation."""

    def test_new_row_creates_contestant_and_appearance(
        self, reconciler: Reconciler, season: Season
    ) -> None:
        row = RowRecord(drag_name="Bianca Del Rio", age=37, outcome="Winner")
        result = reconciler.reconcile_row(row, season)
        assert result.outcome is ReconcileOutcome.CREATED
        assert result.appearance_created
        assert result.contestant.contestant_id is not None

    def test_rescrape_is_idempotent(
        self, reconciler: Reconciler, season: Season, storage: SqliteStorage
    ) -> None:
        row = RowRecord(drag_name="Bianca Del Rio", age=37, outcome="Winner")
        first = reconciler.reconcile_row(row, season)
        second = reconciler.reconcile_row(row, season)
        assert second.outcome is ReconcileOutcome.UNCHANGED
        assert not second.appearance_created
        assert first.contestant.contestant_id is not None
        assert len(storage.list_appearances(first.contestant.contestant_id)) == 1

    def test_fills_blanks_without_overwriting(
        self, reconciler: Reconciler, season: Season, storage: SqliteStorage
    ) -> None:
        storage.create_contestant(Contestant(drag_name="Katya", hometown="Boston"))
        row = RowRecord(
            drag_name="Katya",
            hometown="Marlborough",
            real_name="Brian McCook",
            source_url="https://en.wikipedia.org/wiki/Katya",
        )
        result = reconciler.reconcile_row(row, season)
        assert result.outcome is ReconcileOutcome.UPDATED
        stored = storage.get_contestant_by_name("Katya")
        assert stored is not None
        assert stored.hometown == "Boston"
        assert stored.real_name == "Brian McCook"
        assert stored.metadata_source_url == "https://en.wikipedia.org/wiki/Katya"

    def test_names_match_exactly(
        self, reconciler: Reconciler, season: Season, storage: SqliteStorage
    ) -> None:
        reconciler.reconcile_row(RowRecord(drag_name="RuPaul"), season)
        result = reconciler.reconcile_row(RowRecord(drag_name="Ru Paul"), season)
        assert result.outcome is ReconcileOutcome.CREATED
        assert storage.get_contestant_by_name("RuPaul") is not None
