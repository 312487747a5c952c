"""
stock_engines.invoice_reconciliation -- Invoice vs order line reconciliation.

Responsibility:
    Match the product lines of a received invoice against the expected
    lines of the order it delivers, bucket the discrepancies, and total
    the non-product charges (freight, deposits, ullage, ...).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Uses ``stock_engines.classifier`` for charge typing.
    Consumed by ``stock_services.invoice_reconciliation_service``.

Invariants enforced:
    - Every product line lands in exactly one of matched_ok, unknown_items,
      or the variance buckets.  qty_variance and price_variance are
      non-exclusive: one pair can appear in both.
    - Matching is by code first (case-insensitive), then by normalized
      name.  When several order lines share a key, the first one wins.
    - price_delta_pct never divides by zero: a positive invoice price
      against a zero order price is a 100% deviation.
    - grand_total == items_sub_total + charges_total exactly.  Totals
      are not rounded.

Failure modes:
    - InvalidInputError if parsed_lines/order_lines are not sequences of
      the expected DTO types.  Absent quantities and prices are zero.

Usage:
    from stock_engines.invoice_reconciliation import InvoiceReconciler
    from stock_kernel.domain.dtos import OrderLine, ParsedInvoiceLine

    buckets = InvoiceReconciler().reconcile(
        parsed_lines=[ParsedInvoiceLine(name="Lime", qty=10, unit_price="2.10")],
        order_lines=[OrderLine(id="ol-1", name="Lime", qty=10, unit_cost="2.00")],
    )
    assert buckets.price_variance[0].delta_pct == Decimal("0.05")
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from stock_engines.classifier import effective_line_type, line_total
from stock_engines.tracer import traced_engine
from stock_kernel.domain.dtos import LineType, OrderLine, ParsedInvoiceLine
from stock_kernel.domain.guards import require_sequence
from stock_kernel.domain.quantities import ONE, ZERO, quantity_or_zero, to_decimal
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.invoice_reconciliation")

DEFAULT_PRICE_TOLERANCE_PCT = Decimal("0.02")

_WHITESPACE = re.compile(r"\s+")


class MatchKey(str, Enum):
    """Which index produced an invoice/order pairing."""

    CODE = "code"
    NAME = "name"


@dataclass(frozen=True)
class ReconcileOptions:
    """Reconciliation options.  Tolerance is a fraction (0.02 == 2%)."""

    price_tolerance_pct: Decimal | None = None

    @property
    def tolerance(self) -> Decimal:
        """Effective tolerance, defaulted and clamped to [0, 1]."""
        value = to_decimal(self.price_tolerance_pct)
        if value is None:
            return DEFAULT_PRICE_TOLERANCE_PCT
        return min(max(value, ZERO), ONE)


@dataclass(frozen=True)
class MatchedLine:
    name: str
    order_qty: Decimal
    order_unit_cost: Decimal
    invoice_qty: Decimal
    invoice_unit_price: Decimal
    order_line_id: str
    match_key: MatchKey


@dataclass(frozen=True)
class QtyVarianceLine:
    name: str
    order_qty: Decimal
    invoice_qty: Decimal
    order_unit_cost: Decimal
    order_line_id: str
    match_key: MatchKey

    @property
    def qty_delta(self) -> Decimal:
        """Invoiced minus ordered; negative means short-delivered."""
        return self.invoice_qty - self.order_qty


@dataclass(frozen=True)
class PriceVarianceLine:
    name: str
    order_unit_cost: Decimal
    invoice_unit_price: Decimal
    qty: Decimal
    delta_pct: Decimal
    order_line_id: str
    match_key: MatchKey


@dataclass(frozen=True)
class MissingLine:
    """An order line nothing on the invoice accounted for."""

    name: str
    order_qty: Decimal
    order_unit_cost: Decimal
    order_line_id: str


@dataclass(frozen=True)
class ChargeBucket:
    """Invoice lines of one charge type and their summed line totals."""

    lines: tuple[ParsedInvoiceLine, ...] = ()
    total: Decimal = ZERO


@dataclass(frozen=True)
class ChargeSummary:
    """Per-type charge buckets plus the overall charge total."""

    freight: ChargeBucket = field(default_factory=ChargeBucket)
    surcharge: ChargeBucket = field(default_factory=ChargeBucket)
    ullage: ChargeBucket = field(default_factory=ChargeBucket)
    deposit_returnable: ChargeBucket = field(default_factory=ChargeBucket)
    discount: ChargeBucket = field(default_factory=ChargeBucket)
    tax: ChargeBucket = field(default_factory=ChargeBucket)
    other: ChargeBucket = field(default_factory=ChargeBucket)
    total: Decimal = ZERO

    def bucket(self, line_type: LineType) -> ChargeBucket:
        if line_type is LineType.PRODUCT:
            raise KeyError(line_type)
        return getattr(self, line_type.value)


@dataclass(frozen=True)
class ReconcileTotals:
    items_sub_total: Decimal
    charges_total: Decimal
    grand_total: Decimal


@dataclass(frozen=True)
class ReconcileFlags:
    has_deposits: bool = False
    has_ullage: bool = False
    has_freight: bool = False


@dataclass(frozen=True)
class ReconcileBuckets:
    """Result of ``reconcile_invoice``."""

    matched_ok: tuple[MatchedLine, ...]
    qty_variance: tuple[QtyVarianceLine, ...]
    price_variance: tuple[PriceVarianceLine, ...]
    unknown_items: tuple[ParsedInvoiceLine, ...]
    missing_items: tuple[MissingLine, ...]
    charges: ChargeSummary
    totals: ReconcileTotals
    flags: ReconcileFlags
    tolerance: Decimal = DEFAULT_PRICE_TOLERANCE_PCT

    @property
    def is_clean(self) -> bool:
        """True when every ordered line arrived as ordered and nothing extra did."""
        return not (
            self.qty_variance or self.price_variance
            or self.unknown_items or self.missing_items
        )


def normalize_name(value: str | None) -> str:
    """Lower-case, collapse internal whitespace, trim."""
    return _WHITESPACE.sub(" ", (value or "").lower()).strip()


def normalize_code(value: str | None) -> str:
    return (value or "").strip().lower()


def price_delta_pct(order_unit_cost: Decimal, invoice_unit_price: Decimal) -> Decimal:
    """Relative price deviation; a zero order price reads as 0% or 100%."""
    if order_unit_cost > ZERO:
        return abs(invoice_unit_price - order_unit_cost) / order_unit_cost
    return ONE if invoice_unit_price > ZERO else ZERO


class _OrderIndex:
    """First-wins lookup of order lines by code and by normalized name."""

    def __init__(self, order_lines: Sequence[OrderLine]) -> None:
        self.by_code: dict[str, int] = {}
        self.by_name: dict[str, int] = {}
        for position, line in enumerate(order_lines):
            code = normalize_code(line.code)
            if code:
                self.by_code.setdefault(code, position)
            name = normalize_name(line.display_name)
            if name:
                self.by_name.setdefault(name, position)

    def find(self, line: ParsedInvoiceLine) -> tuple[int, MatchKey] | None:
        code = normalize_code(line.code)
        if code and code in self.by_code:
            return self.by_code[code], MatchKey.CODE
        name = normalize_name(line.name)
        if name and name in self.by_name:
            return self.by_name[name], MatchKey.NAME
        return None


class InvoiceReconciler:
    """
    Pure function reconciler for a received invoice.

    Contract:
        No I/O, fully deterministic.  Lines without a pre-assigned type
        are classified by name.  Product lines are matched against the
        order; every other type is a charge.
    Guarantees:
        - Output order follows invoice line order (order line order for
          missing_items).
        - ``missing_items`` lists order lines that were neither matched
          (by code or name) nor named by any invoice product line.
    Non-goals:
        - Does not parse invoice text; lines arrive already extracted.
        - Does not allocate charges onto product costs.
    """

    @traced_engine(
        "invoice_reconciliation", "1.0",
        fingerprint_fields=("parsed_lines", "order_lines", "options"),
    )
    def reconcile(
        self,
        parsed_lines: Sequence[ParsedInvoiceLine],
        order_lines: Sequence[OrderLine],
        options: ReconcileOptions | None = None,
    ) -> ReconcileBuckets:
        """
        Reconcile invoice lines against order lines.

        Args:
            parsed_lines: Lines read off the invoice.
            order_lines: The order's expected lines.
            options: Price tolerance (fraction, defaults to 0.02).

        Returns:
            ReconcileBuckets.

        Raises:
            InvalidInputError: If an argument is not a sequence of the
                expected line type.
        """
        parsed_lines = require_sequence("parsed_lines", parsed_lines, ParsedInvoiceLine)
        order_lines = require_sequence("order_lines", order_lines, OrderLine)
        tolerance = (options or ReconcileOptions()).tolerance

        logger.info("invoice_reconciliation_started", extra={
            "invoice_lines": len(parsed_lines),
            "order_lines": len(order_lines),
            "tolerance": str(tolerance),
        })

        product_lines: list[ParsedInvoiceLine] = []
        charge_lines: dict[LineType, list[ParsedInvoiceLine]] = {}
        for line in parsed_lines:
            line_type = effective_line_type(line)
            if line.line_type is not line_type:
                line = dataclasses.replace(line, line_type=line_type)
            if line_type is LineType.PRODUCT:
                product_lines.append(line)
            else:
                charge_lines.setdefault(line_type, []).append(line)

        index = _OrderIndex(order_lines)
        matched_ok: list[MatchedLine] = []
        qty_variance: list[QtyVarianceLine] = []
        price_variance: list[PriceVarianceLine] = []
        unknown_items: list[ParsedInvoiceLine] = []
        matched_positions: set[int] = set()
        seen_names: set[str] = set()

        for line in product_lines:
            seen_names.add(normalize_name(line.name))
            found = index.find(line)
            if found is None:
                unknown_items.append(line)
                continue

            position, key = found
            matched_positions.add(position)
            order_line = order_lines[position]
            order_qty = quantity_or_zero(order_line.qty)
            order_unit = quantity_or_zero(order_line.unit_cost)
            invoice_qty = quantity_or_zero(line.qty)
            invoice_unit = quantity_or_zero(line.unit_price)
            delta = price_delta_pct(order_unit, invoice_unit)

            if order_qty == invoice_qty and delta <= tolerance:
                matched_ok.append(MatchedLine(
                    name=line.name,
                    order_qty=order_qty,
                    order_unit_cost=order_unit,
                    invoice_qty=invoice_qty,
                    invoice_unit_price=invoice_unit,
                    order_line_id=order_line.id,
                    match_key=key,
                ))
                continue
            if order_qty != invoice_qty:
                qty_variance.append(QtyVarianceLine(
                    name=line.name,
                    order_qty=order_qty,
                    invoice_qty=invoice_qty,
                    order_unit_cost=order_unit,
                    order_line_id=order_line.id,
                    match_key=key,
                ))
            if delta > tolerance:
                price_variance.append(PriceVarianceLine(
                    name=line.name,
                    order_unit_cost=order_unit,
                    invoice_unit_price=invoice_unit,
                    qty=invoice_qty,
                    delta_pct=delta,
                    order_line_id=order_line.id,
                    match_key=key,
                ))

        missing_items = tuple(
            MissingLine(
                name=order_line.display_name,
                order_qty=quantity_or_zero(order_line.qty),
                order_unit_cost=quantity_or_zero(order_line.unit_cost),
                order_line_id=order_line.id,
            )
            for position, order_line in enumerate(order_lines)
            if position not in matched_positions
            and normalize_name(order_line.display_name) not in seen_names
        )

        charges = self._summarize_charges(charge_lines)
        items_sub_total = sum((line_total(line) for line in product_lines), ZERO)
        totals = ReconcileTotals(
            items_sub_total=items_sub_total,
            charges_total=charges.total,
            grand_total=items_sub_total + charges.total,
        )
        flags = ReconcileFlags(
            has_deposits=bool(charges.deposit_returnable.lines),
            has_ullage=bool(charges.ullage.lines),
            has_freight=bool(charges.freight.lines),
        )

        logger.info("invoice_reconciliation_completed", extra={
            "matched_ok": len(matched_ok),
            "qty_variance": len(qty_variance),
            "price_variance": len(price_variance),
            "unknown_items": len(unknown_items),
            "missing_items": len(missing_items),
            "charges_total": str(totals.charges_total),
            "grand_total": str(totals.grand_total),
        })

        return ReconcileBuckets(
            matched_ok=tuple(matched_ok),
            qty_variance=tuple(qty_variance),
            price_variance=tuple(price_variance),
            unknown_items=tuple(unknown_items),
            missing_items=missing_items,
            charges=charges,
            totals=totals,
            flags=flags,
            tolerance=tolerance,
        )

    def _summarize_charges(
        self,
        charge_lines: dict[LineType, list[ParsedInvoiceLine]],
    ) -> ChargeSummary:
        buckets: dict[str, ChargeBucket] = {}
        grand = ZERO
        for line_type in LineType:
            if line_type is LineType.PRODUCT:
                continue
            lines = tuple(charge_lines.get(line_type, ()))
            total = sum((line_total(line) for line in lines), ZERO)
            buckets[line_type.value] = ChargeBucket(lines=lines, total=total)
            grand += total
        return ChargeSummary(total=grand, **buckets)


def reconcile_invoice(
    parsed_lines: Sequence[ParsedInvoiceLine],
    order_lines: Sequence[OrderLine],
    options: ReconcileOptions | None = None,
) -> ReconcileBuckets:
    """Module-level convenience wrapper around ``InvoiceReconciler``."""
    return InvoiceReconciler().reconcile(parsed_lines, order_lines, options)
