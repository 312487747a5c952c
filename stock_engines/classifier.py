"""
stock_engines.classifier -- Charge-type classification of invoice lines.

Responsibility:
    Assign a LineType to an invoice line from its display name, using
    ordered keyword rules.  Also provides the line-total helper shared by
    the invoice reconciler.

    ``classify_name`` is the name-only entry point; ``classify_line``
    takes any line-like value exposing a name, either as a ``name``
    attribute or a ``"name"`` key.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ``stock_engines.invoice_reconciliation``.

Invariants enforced:
    - Rules are tested in fixed priority order; the first matching
      category wins (so "fuel surcharge" is freight, not surcharge).
    - Total: every line gets a type; anything unmatched is PRODUCT.
    - Matching is case-insensitive substring matching on the name.

Failure modes:
    - None.  A missing name classifies as PRODUCT.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from stock_kernel.domain.dtos import LineType, ParsedInvoiceLine
from stock_kernel.domain.quantities import ZERO

# Ordered: first match wins.
CHARGE_RULES: tuple[tuple[LineType, tuple[str, ...]], ...] = (
    (LineType.FREIGHT, (
        "freight", "delivery", "courier", "transport", "fuel surcharge", "logistics",
    )),
    (LineType.SURCHARGE, ("surcharge", "card fee", "handling fee")),
    (LineType.ULLAGE, ("ullage", "breakage", "spillage", "wastage", "damaged")),
    (LineType.DEPOSIT_RETURNABLE, (
        "keg deposit", "deposit", "returnable", "chep pallet", "pallet deposit",
    )),
    (LineType.DISCOUNT, ("discount", "promo", "promotion", "rebate")),
    (LineType.TAX, ("gst", "vat", "tax")),
)


def classify_name(name: str | None) -> LineType:
    """Classify a raw display name."""
    lowered = (name or "").lower()
    for line_type, keywords in CHARGE_RULES:
        if any(keyword in lowered for keyword in keywords):
            return line_type
    return LineType.PRODUCT


def classify_line(line: Any) -> LineType:
    """
    Classify one invoice line by its display name.

    Accepts a ParsedInvoiceLine, any object with a ``name`` attribute, or
    a mapping with a ``"name"`` key.  The line's own ``line_type`` is
    ignored here; callers that honour pre-tagged lines use
    :func:`effective_line_type`.
    """
    if isinstance(line, Mapping):
        name = line.get("name")
    else:
        name = getattr(line, "name", None)
    return classify_name(name if isinstance(name, str) else None)


def effective_line_type(line: ParsedInvoiceLine) -> LineType:
    """Pre-assigned type if present, otherwise the classified type."""
    return line.line_type if line.line_type is not None else classify_line(line)


def line_total(line: ParsedInvoiceLine | None) -> Decimal:
    """qty x unit price; zero when either is absent."""
    if line is None or line.qty is None or line.unit_price is None:
        return ZERO
    return line.qty * line.unit_price
