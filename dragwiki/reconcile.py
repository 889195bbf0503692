"""Reconcile extracted rows against persisted records.

Each stage is idempotent: franchises and seasons are inserted or left as
they are, contestants are matched by exact drag name and only ever have
blank fields filled, and appearances are created once per
contestant/season pair.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from dragwiki.models import Appearance, Contestant, Franchise, RowRecord, Season
from dragwiki.storage import Storage

logger = logging.getLogger(__name__)

# RowRecord attribute -> Contestant column filled when blank
_FILLABLE: tuple[tuple[str, str], ...] = (
    ("real_name", "real_name"),
    ("hometown", "hometown"),
    ("source_url", "metadata_source_url"),
)


class ReconcileOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class RowReconciliation:
    """What reconciling one row did.

    Attributes:
        contestant: The stored contestant after reconciliation.
        outcome: Whether the contestant was created, updated or unchanged.
        appearance_created: False when the appearance already existed.
    """

    contestant: Contestant
    outcome: ReconcileOutcome
    appearance_created: bool


class Reconciler:
    """Upserts franchises, seasons, contestants and appearances."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def upsert_franchise(self, name: str, source_url: str | None = None) -> Franchise:
        """Return the franchise called *name*, creating it if needed."""
        existing = self.storage.get_franchise_by_name(name)
        if existing is not None:
            return existing
        logger.info("Creating franchise %s", name)
        return self.storage.create_franchise(Franchise(name=name, source_url=source_url))

    def upsert_season(
        self,
        name: str,
        franchise_id: int,
        year: int | None = None,
        source_url: str | None = None,
    ) -> Season:
        """Return the season called *name*, creating it if needed.

        Existing seasons keep their franchise, year and URL.
        """
        existing = self.storage.get_season_by_name(name)
        if existing is not None:
            return existing
        logger.info("Creating season %s", name)
        return self.storage.create_season(
            Season(
                name=name,
                franchise_id=franchise_id,
                year=year,
                source_url=source_url,
            )
        )

    def reconcile_contestant(self, row: RowRecord) -> tuple[Contestant, ReconcileOutcome]:
        """Create the contestant for *row*, or fill blanks on the existing one.

        Args:
            row: Extracted contestant row.

        Returns:
            (stored contestant, outcome).
        """
        existing = self.storage.get_contestant_by_name(row.drag_name)
        if existing is None:
            created = self.storage.create_contestant(
                Contestant(
                    drag_name=row.drag_name,
                    real_name=row.real_name,
                    hometown=row.hometown,
                    metadata_source_url=row.source_url,
                )
            )
            return created, ReconcileOutcome.CREATED

        updates: dict[str, object] = {}
        for row_attr, column in _FILLABLE:
            value = getattr(row, row_attr)
            if value and not getattr(existing, column):
                updates[column] = value
        if not updates:
            return existing, ReconcileOutcome.UNCHANGED

        assert existing.contestant_id is not None
        self.storage.update_contestant(existing.contestant_id, **updates)
        for column, value in updates.items():
            setattr(existing, column, value)
        logger.debug("Filled %s for %s", sorted(updates), row.drag_name)
        return existing, ReconcileOutcome.UPDATED

    def reconcile_row(self, row: RowRecord, season: Season) -> RowReconciliation:
        """Upsert the contestant of *row* and its appearance in *season*.

        Args:
            row: Extracted contestant row.
            season: Stored season the row was extracted from.

        Returns:
            A RowReconciliation describing the writes.
        """
        contestant, outcome = self.reconcile_contestant(row)
        assert contestant.contestant_id is not None
        assert season.season_id is not None

        appearance_created = False
        if self.storage.get_appearance(contestant.contestant_id, season.season_id) is None:
            appearance_created = self.storage.create_appearance(
                Appearance(
                    contestant_id=contestant.contestant_id,
                    season_id=season.season_id,
                    age=row.age,
                    outcome=row.outcome,
                )
            )
        return RowReconciliation(
            contestant=contestant,
            outcome=outcome,
            appearance_created=appearance_created,
        )
