"""
XLSX export of report results.

One sheet per result kind: "Variance", "Suggested Orders" and
"Reconciliation".  Amounts are written as numbers; absent values
(unknown cost, missing PAR) are left blank rather than written as zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from stock_engines.invoice_reconciliation import ReconcileBuckets
from stock_engines.replenishment import SuggestionResult
from stock_engines.variance import UnifiedResult
from stock_kernel.exceptions import ExportError
from stock_kernel.logging_config import get_logger

logger = get_logger("services.export")

VARIANCE_HEADERS = (
    "SKU", "Name", "Department", "On hand", "Expected", "Variance", "Unit cost",
    "Value", "Sold", "Received", "Shrinkage", "Shrink units", "Shrink value",
    "Real cost/unit",
)
SUGGESTION_HEADERS = (
    "Supplier", "Product ID", "Product", "Department", "Qty", "Pack size",
    "Unit cost", "Needs PAR", "Needs supplier", "Reason",
)
RECONCILIATION_HEADERS = (
    "Bucket", "Name", "Order qty", "Invoice qty", "Order unit cost",
    "Invoice unit price", "Delta %",
)


def _write_rows(ws: Any, headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
    from openpyxl.styles import Font

    ws.append(list(headers))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    ws.freeze_panes = "A2"
    count = 0
    for row in rows:
        ws.append(list(row))
        count += 1
    return count


def _variance_rows(result: UnifiedResult) -> Iterable[tuple[Any, ...]]:
    for r in result.rows:
        yield (
            r.sku, r.name, r.department_id, r.on_hand, r.expected, r.variance,
            r.unit_cost, r.value, r.sales_qty, r.invoice_qty, r.shrinkage,
            r.shrink_units, r.shrink_value, r.real_cost_per_unit,
        )
    yield ()
    totals = result.totals
    yield ("Shortage value", None, None, None, None, None, None, totals.shortage_value)
    yield ("Excess value", None, None, None, None, None, None, totals.excess_value)
    yield ("Shrinkage units", None, None, None, None, None, None, None, None, None, None,
           totals.shrinkage_units)
    yield ("Shrinkage value", None, None, None, None, None, None, None, None, None, None,
           None, totals.shrinkage_value)


def _suggestion_rows(result: SuggestionResult) -> Iterable[tuple[Any, ...]]:
    for bucket in result.all_buckets():
        for line in bucket.lines:
            yield (
                bucket.supplier_name, line.product_id, line.product_name,
                line.dept_name or line.dept_id, line.qty, line.pack_size,
                line.unit_cost, line.needs_par, line.needs_supplier, line.reason,
            )


def _reconciliation_rows(buckets: ReconcileBuckets) -> Iterable[tuple[Any, ...]]:
    for m in buckets.matched_ok:
        yield ("matched", m.name, m.order_qty, m.invoice_qty, m.order_unit_cost,
               m.invoice_unit_price, None)
    for q in buckets.qty_variance:
        yield ("qty variance", q.name, q.order_qty, q.invoice_qty, q.order_unit_cost, None, None)
    for p in buckets.price_variance:
        yield ("price variance", p.name, None, p.qty, p.order_unit_cost,
               p.invoice_unit_price, p.delta_pct)
    for u in buckets.unknown_items:
        yield ("unknown", u.name, None, u.qty, None, u.unit_price, None)
    for mi in buckets.missing_items:
        yield ("missing", mi.name, mi.order_qty, None, mi.order_unit_cost, None, None)
    yield ()
    yield ("Items subtotal", None, None, None, None, buckets.totals.items_sub_total)
    yield ("Charges total", None, None, None, None, buckets.totals.charges_total)
    yield ("Grand total", None, None, None, None, buckets.totals.grand_total)


def export_workbook(
    path: Path,
    *,
    variance: UnifiedResult | None = None,
    suggestions: SuggestionResult | None = None,
    reconciliation: ReconcileBuckets | None = None,
) -> Path:
    """Write the given results to an XLSX workbook, one sheet each.

    Raises:
        ExportError: If nothing was given to export or the file cannot
            be written.
    """
    try:
        import openpyxl
    except ImportError as e:
        raise ImportError("XLSX export requires openpyxl. Install with: pip install openpyxl") from e

    if variance is None and suggestions is None and reconciliation is None:
        raise ExportError(str(path), "no results to export")

    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    sheets: dict[str, int] = {}
    if variance is not None:
        sheets["Variance"] = _write_rows(
            wb.create_sheet("Variance"), VARIANCE_HEADERS, _variance_rows(variance),
        )
    if suggestions is not None:
        sheets["Suggested Orders"] = _write_rows(
            wb.create_sheet("Suggested Orders"), SUGGESTION_HEADERS, _suggestion_rows(suggestions),
        )
    if reconciliation is not None:
        sheets["Reconciliation"] = _write_rows(
            wb.create_sheet("Reconciliation"), RECONCILIATION_HEADERS,
            _reconciliation_rows(reconciliation),
        )

    try:
        wb.save(path)
    except OSError as exc:
        raise ExportError(str(path), exc.strerror or str(exc)) from exc
    finally:
        wb.close()

    logger.info("workbook_exported", extra={"path": str(path), "sheets": sheets})
    return Path(path)
