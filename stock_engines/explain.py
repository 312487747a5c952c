"""
stock_engines.explain -- Context for the external variance-explanation service.

Builds the request payload a text-generation collaborator consumes to
explain one variance row.  No text is generated here.

Zero movement in the window is reported as absent (None) rather than 0,
so the collaborator can say what context is missing instead of reasoning
from a misleading zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from stock_engines.variance import UnifiedResultRow
from stock_kernel.domain.guards import require_instance
from stock_kernel.domain.quantities import ZERO, to_decimal

MISSING_RECEIVED = "recent delivery quantities"
MISSING_SOLD = "recent sales quantities"
MISSING_LAST_DELIVERY = "last delivery date"


@dataclass(frozen=True)
class ExplainRequest:
    item_name: str
    department_id: str | None
    variance_qty: Decimal
    variance_value: Decimal | None
    par: Decimal | None
    last_count_qty: Decimal
    theoretical_on_hand: Decimal
    recent_sold_qty: Decimal | None
    recent_received_qty: Decimal | None
    last_delivery_at: date | datetime | None
    missing: tuple[str, ...] = ()


def _nonzero(value: Decimal) -> Decimal | None:
    return None if value == ZERO else value


def build_explain_request(
    row: UnifiedResultRow,
    *,
    par: Decimal | None = None,
    last_delivery_at: date | datetime | None = None,
) -> ExplainRequest:
    """Assemble the explanation context for one variance row."""
    require_instance("row", row, UnifiedResultRow)
    sold = _nonzero(row.sales_qty)
    received = _nonzero(row.invoice_qty)

    missing: list[str] = []
    if received is None:
        missing.append(MISSING_RECEIVED)
    if sold is None:
        missing.append(MISSING_SOLD)
    if last_delivery_at is None:
        missing.append(MISSING_LAST_DELIVERY)

    return ExplainRequest(
        item_name=row.name or row.sku,
        department_id=row.department_id,
        variance_qty=row.variance,
        variance_value=row.value,
        par=to_decimal(par),
        last_count_qty=row.on_hand,
        theoretical_on_hand=row.theoretical_on_hand,
        recent_sold_qty=sold,
        recent_received_qty=received,
        last_delivery_at=last_delivery_at,
        missing=tuple(missing),
    )
