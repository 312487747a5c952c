"""
Snapshot file loading.

A snapshot file is one JSON object holding the venue data a report run
needs, as named arrays of store documents::

    {
      "venueId": "v1",
      "departments": [{"id": "bar", "name": "Bar"}],
      "counts": [...], "sales": [...], "receipts": [...],
      "products": [...], "suppliers": [...], "onHand": [...],
      "orderLines": [...], "invoiceLines": [...]
    }

Every section is optional.  When ``onHand`` is absent the on-hand
snapshot is derived from ``counts``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from stock_ingestion.adapters import JsonSourceAdapter, SourceAdapter
from stock_ingestion.mapping import (
    map_count_row,
    map_invoice_line,
    map_movement_row,
    map_on_hand,
    map_order_line,
    map_product,
    map_supplier,
    on_hand_from_counts,
)
from stock_kernel.domain.dtos import (
    CountRow,
    MovementRow,
    OnHandSnapshot,
    OrderLine,
    ParsedInvoiceLine,
    ProductMeta,
    SupplierMeta,
)
from stock_kernel.logging_config import get_logger

logger = get_logger("ingestion.snapshot")


@dataclass(frozen=True)
class StockSnapshot:
    """Mapped contents of one snapshot file."""

    venue_id: str | None = None
    counts: tuple[CountRow, ...] = ()
    sales: tuple[MovementRow, ...] = ()
    receipts: tuple[MovementRow, ...] = ()
    products: tuple[ProductMeta, ...] = ()
    suppliers: tuple[SupplierMeta, ...] = ()
    on_hand: OnHandSnapshot = field(default_factory=OnHandSnapshot)
    order_lines: tuple[OrderLine, ...] = ()
    invoice_lines: tuple[ParsedInvoiceLine, ...] = ()
    department_names: dict[str, str] = field(default_factory=dict)


def _department_names(raw: Any) -> dict[str, str]:
    names: dict[str, str] = {}
    if not isinstance(raw, list):
        return names
    for item in raw:
        if isinstance(item, dict) and item.get("id") is not None:
            dept_id = str(item["id"])
            names[dept_id] = str(item.get("name") or dept_id)
    return names


def load_snapshot(path: Path, adapter: SourceAdapter | None = None) -> StockSnapshot:
    """Read a snapshot file and map every section into DTOs."""
    document = (adapter or JsonSourceAdapter()).open(path)

    def section(name: str) -> list[dict[str, Any]]:
        return list(document.records(name))

    department_names = _department_names(document.value("departments"))
    counts = tuple(map_count_row(doc) for doc in section("counts"))
    on_hand_docs = section("onHand")
    on_hand = (
        map_on_hand(on_hand_docs, department_names)
        if on_hand_docs
        else _with_names(on_hand_from_counts(counts), department_names)
    )
    venue_id = document.value("venueId")

    snapshot = StockSnapshot(
        venue_id=str(venue_id) if isinstance(venue_id, (str, int)) else None,
        counts=counts,
        sales=tuple(map_movement_row(doc, "sale") for doc in section("sales")),
        receipts=tuple(map_movement_row(doc, "receipt") for doc in section("receipts")),
        products=tuple(map_product(doc) for doc in section("products")),
        suppliers=tuple(map_supplier(doc) for doc in section("suppliers")),
        on_hand=on_hand,
        order_lines=tuple(map_order_line(doc) for doc in section("orderLines")),
        invoice_lines=tuple(map_invoice_line(doc) for doc in section("invoiceLines")),
        department_names=department_names,
    )
    logger.info("snapshot_loaded", extra={
        "source": str(path),
        "venue": snapshot.venue_id,
        "counts": len(snapshot.counts),
        "products": len(snapshot.products),
        "scopes": len(snapshot.on_hand.scopes),
    })
    return snapshot


def _with_names(snapshot: OnHandSnapshot, names: dict[str, str]) -> OnHandSnapshot:
    if not names:
        return snapshot
    return OnHandSnapshot(scopes=tuple(
        replace(
            scope,
            department_name=names.get(scope.department_id) if scope.department_id else None,
        )
        for scope in snapshot.scopes
    ))
