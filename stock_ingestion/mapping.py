"""
Document mapping: pure transformation from store documents to kernel DTOs.

Store documents accumulated several spellings for the same field over
time (``par`` / ``parLevel``, ``costPrice`` / ``unitCost`` / ``price``,
a supplier as an id, a nested object or a plain name).  Each mapping
function names its accepted spellings in priority order, so the engines
only ever see one field per concept.  ZERO I/O.

Keys are matched case-insensitively at the top level of a document.

Failure modes:
    - DocumentMappingError when a document lacks its identity field
      (sku / product id / order line id / supplier id).  Every other
      field is optional and maps to None when absent or non-numeric.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from stock_engines.replenishment import (
    NO_SUPPLIER_REASON,
    UNASSIGNED_ID,
    UNASSIGNED_NAME,
    SuggestedLine,
    SuggestionResult,
    SupplierBucket,
)
from stock_kernel.domain.dtos import (
    CountRow,
    DepartmentScope,
    LineType,
    MovementRow,
    OnHandSnapshot,
    OrderLine,
    ParsedInvoiceLine,
    ProductMeta,
    SupplierMeta,
)
from stock_kernel.domain.quantities import ONE, ZERO, quantity_or_zero, round_units, to_decimal
from stock_kernel.exceptions import DocumentMappingError

# -----------------------------------------------------------------------------
# Field lookup helpers (pure)
# -----------------------------------------------------------------------------


def _lowered(doc: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k).strip().lower(): v for k, v in doc.items()}


def _pick(doc: Mapping[str, Any], *keys: str) -> Any:
    """First present, non-None, non-blank value among ``keys``."""
    for key in keys:
        value = doc.get(key.lower())
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _require_text(doc: Mapping[str, Any], kind: str, *keys: str) -> str:
    value = _text(_pick(doc, *keys))
    if value is None:
        raise DocumentMappingError(kind, f"missing identity field (one of {', '.join(keys)})")
    return value


def _parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        for parse in (date.fromisoformat, lambda s: datetime.fromisoformat(s).date()):
            try:
                return parse(text)
            except ValueError:
                continue
    return None


def _department_id(doc: Mapping[str, Any]) -> str | None:
    return _text(_pick(doc, "departmentId", "deptId", "department"))


# -----------------------------------------------------------------------------
# Variance inputs
# -----------------------------------------------------------------------------


def map_count_row(document: Mapping[str, Any]) -> CountRow:
    doc = _lowered(document)
    return CountRow(
        sku=_require_text(doc, "count", "sku", "productId", "itemId", "id"),
        on_hand=_pick(doc, "onHand", "countedQty", "countQty", "lastCount", "qty", "quantity"),
        expected=_pick(doc, "expected", "expectedQty", "par", "parLevel"),
        name=_text(_pick(doc, "name", "productName")),
        unit_cost=_pick(doc, "unitCost", "costPrice", "cost", "price"),
        department_id=_department_id(doc),
    )


def map_movement_row(document: Mapping[str, Any], kind: str = "movement") -> MovementRow:
    doc = _lowered(document)
    return MovementRow(
        sku=_require_text(doc, kind, "sku", "productId", "itemId", "id"),
        qty=_pick(doc, "qty", "quantity", "units", "soldQty", "receivedQty"),
        occurred_on=_parse_date(_pick(doc, "occurredOn", "date", "soldAt", "receivedAt")),
    )


# -----------------------------------------------------------------------------
# Reconciliation inputs
# -----------------------------------------------------------------------------


def _line_type(value: Any) -> LineType | None:
    text = _text(value)
    if text is None:
        return None
    try:
        return LineType(text.lower())
    except ValueError:
        return None


def map_invoice_line(document: Mapping[str, Any]) -> ParsedInvoiceLine:
    doc = _lowered(document)
    return ParsedInvoiceLine(
        name=_text(_pick(doc, "name", "description", "productName")) or "",
        qty=_pick(doc, "qty", "quantity"),
        unit_price=_pick(doc, "unitPrice", "price", "unitCost", "cost"),
        code=_text(_pick(doc, "code", "sku", "supplierCode")),
        line_type=_line_type(_pick(doc, "lineType", "type")),
    )


def map_order_line(document: Mapping[str, Any]) -> OrderLine:
    doc = _lowered(document)
    return OrderLine(
        id=_require_text(doc, "order line", "id", "lineId"),
        product_id=_text(_pick(doc, "productId")),
        name=_text(_pick(doc, "name", "productName")),
        qty=_pick(doc, "qty", "quantity"),
        unit_cost=_pick(doc, "unitCost", "cost", "price"),
        code=_text(_pick(doc, "code", "sku")),
    )


# -----------------------------------------------------------------------------
# Replenishment inputs
# -----------------------------------------------------------------------------


def _supplier_fields(doc: Mapping[str, Any]) -> tuple[str | None, str | None]:
    """(supplier_id, supplier_name) from the flat or nested supplier shapes."""
    supplier_id = _text(_pick(doc, "supplierId", "vendorId", "preferredSupplierId"))
    supplier_name = _text(_pick(doc, "supplierName", "vendorName"))
    nested = _pick(doc, "supplier", "vendor")
    if isinstance(nested, Mapping):
        nested = _lowered(nested)
        supplier_id = supplier_id or _text(_pick(nested, "id", "supplierId"))
        supplier_name = supplier_name or _text(_pick(nested, "name"))
    elif supplier_name is None:
        supplier_name = _text(nested)
    return supplier_id, supplier_name


def map_product(document: Mapping[str, Any]) -> ProductMeta:
    doc = _lowered(document)
    dept_par = _pick(doc, "deptPar", "parByDepartment", "departmentPar")
    supplier_id, supplier_name = _supplier_fields(doc)
    return ProductMeta(
        product_id=_require_text(doc, "product", "productId", "id", "sku"),
        name=_text(_pick(doc, "name", "productName")),
        par=_pick(doc, "par", "parLevel"),
        dept_par=dept_par if isinstance(dept_par, Mapping) else {},
        supplier_id=supplier_id,
        supplier_name=supplier_name,
        pack_size=_pick(doc, "packSize", "caseSize", "packQty"),
        unit_cost=_pick(doc, "costPrice", "unitCost", "cost", "price"),
    )


def map_supplier(document: Mapping[str, Any]) -> SupplierMeta:
    doc = _lowered(document)
    return SupplierMeta(
        supplier_id=_require_text(doc, "supplier", "supplierId", "id"),
        name=_text(_pick(doc, "name", "supplierName")),
    )


def map_on_hand(
    documents: Iterable[Mapping[str, Any]],
    department_names: Mapping[str, str] | None = None,
) -> OnHandSnapshot:
    """
    Build an on-hand snapshot from per-product (optionally per-department)
    rows.  If any row names a department the snapshot is department-aware
    and rows without one are ignored; otherwise it is a single venue scope.
    Repeated products within a scope are summed; a row without a quantity
    counts as zero on hand.
    """
    rows: list[tuple[str | None, str, Any]] = []
    for document in documents:
        doc = _lowered(document)
        product_id = _require_text(doc, "on-hand", "productId", "sku", "id")
        rows.append((_department_id(doc), product_id, _pick(
            doc, "onHand", "qty", "quantity", "countedQty", "lastCount",
        )))

    department_aware = any(dept is not None for dept, _, _ in rows)
    grouped: dict[str | None, dict[str, Any]] = {}
    for dept, product_id, raw in rows:
        if department_aware and dept is None:
            continue
        qty = quantity_or_zero(raw)
        scope = grouped.setdefault(dept if department_aware else None, {})
        scope[product_id] = scope.get(product_id, ZERO) + qty

    if not department_aware:
        return OnHandSnapshot.venue(grouped.get(None, {}))
    names = department_names or {}
    return OnHandSnapshot(scopes=tuple(
        DepartmentScope(department_id=dept, on_hand=quantities, department_name=names.get(dept))
        for dept, quantities in grouped.items()
    ))


def on_hand_from_counts(counts: Iterable[CountRow], department_aware: bool = True) -> OnHandSnapshot:
    """Derive the on-hand snapshot from count rows already mapped."""
    return map_on_hand(
        {
            "sku": row.sku,
            "onHand": row.on_hand,
            "departmentId": row.department_id if department_aware else None,
        }
        for row in counts
    )


# -----------------------------------------------------------------------------
# External suggestion results
# -----------------------------------------------------------------------------


def _external_line(raw: Any, supplier_known: bool) -> SuggestedLine | None:
    if not isinstance(raw, Mapping):
        return None
    doc = _lowered(raw)
    product_id = _text(_pick(doc, "productId"))
    if product_id is None:
        return None
    qty = to_decimal(_pick(doc, "qty"))
    unit_cost = to_decimal(_pick(doc, "unitCost", "cost"))
    return SuggestedLine(
        product_id=product_id,
        product_name=_text(_pick(doc, "productName", "name")) or product_id,
        qty=max(ONE, round_units(qty)) if qty is not None else ONE,
        unit_cost=unit_cost if unit_cost is not None and unit_cost > ZERO else None,
        pack_size=to_decimal(_pick(doc, "packSize")),
        needs_par=False,
        needs_supplier=not supplier_known,
        reason=None if supplier_known else NO_SUPPLIER_REASON,
    )


def _external_lines(raw_bucket: Any, supplier_known: bool) -> tuple[SuggestedLine, ...]:
    if not isinstance(raw_bucket, Mapping):
        return ()
    raw_lines = raw_bucket.get("lines")
    if not isinstance(raw_lines, list):
        return ()
    lines = (_external_line(item, supplier_known) for item in raw_lines)
    return tuple(line for line in lines if line is not None)


def normalize_external_suggestions(raw: Any) -> SuggestionResult:
    """
    Adapt a suggestion payload produced outside the engine (for example an
    AI overlay) into the canonical ``SuggestionResult``.

    Expected shape: ``{"buckets": {supplier_id: {"supplierName", "lines"}},
    "unassigned": {"lines"}}``.  Lines without a product id are dropped;
    quantities are whole units, at least 1.
    """
    raw = raw if isinstance(raw, Mapping) else {}
    buckets: list[SupplierBucket] = []
    raw_buckets = raw.get("buckets")
    if isinstance(raw_buckets, Mapping):
        for supplier_id, raw_bucket in raw_buckets.items():
            sid = str(supplier_id)
            name = raw_bucket.get("supplierName") if isinstance(raw_bucket, Mapping) else None
            buckets.append(SupplierBucket(
                supplier_id=sid,
                supplier_name=name if isinstance(name, str) and name.strip() else sid,
                lines=_external_lines(raw_bucket, supplier_known=True),
            ))
    return SuggestionResult(
        buckets=tuple(buckets),
        unassigned=SupplierBucket(
            supplier_id=UNASSIGNED_ID,
            supplier_name=UNASSIGNED_NAME,
            lines=_external_lines(raw.get("unassigned"), supplier_known=False),
        ),
    )
