"""
SnapshotRepository -- Data-access boundary for the report services.

The engines never fetch data; services ask a repository for already
normalized DTOs.  ``SnapshotRepository`` is the protocol a document-store
backed implementation satisfies; ``InMemorySnapshotRepository`` serves
mapped snapshot files (scripts) and tests.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Protocol, runtime_checkable

from stock_ingestion.snapshot import StockSnapshot
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.dtos import (
    CountRow,
    MovementRow,
    OnHandSnapshot,
    OrderLine,
    ProductMeta,
    SupplierMeta,
)
from stock_kernel.exceptions import SnapshotNotFoundError


@dataclass(frozen=True)
class ReportWindow:
    """Inclusive date window for sales and receipts."""

    start: date
    end: date

    @classmethod
    def last_days(cls, clock: Clock, days: int = 7) -> ReportWindow:
        today = clock.today()
        return cls(start=today - timedelta(days=days), end=today)

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"

    def contains(self, day: date | None) -> bool:
        """Undated rows are windowed aggregates and always count."""
        return day is None or self.start <= day <= self.end


@dataclass(frozen=True)
class CoverageStats:
    """Stock-take and document coverage for a window."""

    areas_total: int = 0
    areas_completed: int = 0
    sales_docs: int = 0
    total_net_sales: Decimal | None = None
    spend_docs: int = 0
    total_spend: Decimal | None = None


@runtime_checkable
class SnapshotRepository(Protocol):
    def counts(self, venue_id: str, department_id: str | None = None) -> Sequence[CountRow]: ...

    def sales(self, venue_id: str, window: ReportWindow | None = None) -> Sequence[MovementRow]: ...

    def receipts(self, venue_id: str, window: ReportWindow | None = None) -> Sequence[MovementRow]: ...

    def products(self, venue_id: str) -> Sequence[ProductMeta]: ...

    def suppliers(self, venue_id: str) -> Sequence[SupplierMeta]: ...

    def on_hand(self, venue_id: str) -> OnHandSnapshot: ...

    def order_lines(self, venue_id: str) -> Sequence[OrderLine]: ...

    def coverage(self, venue_id: str, window: ReportWindow | None = None) -> CoverageStats: ...

    def draft_supplier_ids(self, venue_id: str) -> frozenset[str]: ...


class InMemorySnapshotRepository:
    """Repository over mapped ``StockSnapshot`` objects, keyed by venue."""

    def __init__(
        self,
        snapshots: Mapping[str, StockSnapshot],
        coverage: Mapping[str, CoverageStats] | None = None,
        draft_supplier_ids: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self._snapshots = dict(snapshots)
        self._coverage = dict(coverage or {})
        self._drafts = {k: frozenset(v) for k, v in (draft_supplier_ids or {}).items()}

    def _snapshot(self, venue_id: str) -> StockSnapshot:
        try:
            return self._snapshots[venue_id]
        except KeyError:
            raise SnapshotNotFoundError(venue_id) from None

    def counts(self, venue_id: str, department_id: str | None = None) -> tuple[CountRow, ...]:
        rows = self._snapshot(venue_id).counts
        if department_id is None:
            return rows
        return tuple(r for r in rows if r.department_id == department_id)

    def sales(self, venue_id: str, window: ReportWindow | None = None) -> tuple[MovementRow, ...]:
        rows = self._snapshot(venue_id).sales
        return rows if window is None else tuple(r for r in rows if window.contains(r.occurred_on))

    def receipts(self, venue_id: str, window: ReportWindow | None = None) -> tuple[MovementRow, ...]:
        rows = self._snapshot(venue_id).receipts
        return rows if window is None else tuple(r for r in rows if window.contains(r.occurred_on))

    def products(self, venue_id: str) -> tuple[ProductMeta, ...]:
        return self._snapshot(venue_id).products

    def suppliers(self, venue_id: str) -> tuple[SupplierMeta, ...]:
        return self._snapshot(venue_id).suppliers

    def on_hand(self, venue_id: str) -> OnHandSnapshot:
        return self._snapshot(venue_id).on_hand

    def order_lines(self, venue_id: str) -> tuple[OrderLine, ...]:
        return self._snapshot(venue_id).order_lines

    def coverage(self, venue_id: str, window: ReportWindow | None = None) -> CoverageStats:
        """Configured coverage, or coverage inferred from the snapshot itself."""
        if venue_id in self._coverage:
            return self._coverage[venue_id]
        snapshot = self._snapshot(venue_id)
        departments = {r.department_id for r in snapshot.counts if r.department_id}
        areas = len(departments) or (1 if snapshot.counts else 0)
        return CoverageStats(
            areas_total=areas,
            areas_completed=areas,
            sales_docs=len(self.sales(venue_id, window)),
            spend_docs=len(self.receipts(venue_id, window)),
        )

    def draft_supplier_ids(self, venue_id: str) -> frozenset[str]:
        return self._drafts.get(venue_id, frozenset())
