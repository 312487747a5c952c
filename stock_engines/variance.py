"""
stock_engines.variance -- Count variance, shrinkage and cost-tier burden.

Responsibility:
    Reconcile counted inventory against expected inventory, attribute the
    monetary impact, infer shrinkage from windowed sales and receipts, and
    spread the cost of lost units across the units that remain.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ``stock_services.variance_report_service`` and by the
    explanation-context builder (``stock_engines.explain``).

Invariants enforced:
    - variance = on_hand - expected, exactly.
    - theoretical = expected + received - sold; shrinkage = theoretical - on_hand.
      Variance and shrinkage are independent signals.
    - shrink_units = max(0, -shrinkage); shrink_value = shrink_units * unit_cost
      (zero when unit_cost is unknown).
    - Unknown unit_cost propagates as ``value is None``, never zero.
    - real_cost_per_unit == landed_cost_per_unit whenever shrink_units == 0
      or on_hand <= 0.
    - Totals are rounded (half up, ``totals_places``) at the aggregate
      boundary only; row values are never rounded.
    - Determinism: identical inputs produce identical outputs; no clock access.

Failure modes:
    - InvalidInputError if counts/sales/invoices are not sequences of
      the expected DTO types.  Nothing else raises.

Usage:
    from stock_engines.variance import VarianceCalculator
    from stock_kernel.domain.dtos import CountRow, MovementRow

    result = VarianceCalculator().compute_unified(
        counts=[CountRow(sku="GIN-1L", on_hand=8, expected=10, unit_cost="32.5")],
        sales=[MovementRow(sku="GIN-1L", qty=3)],
        invoices=[MovementRow(sku="GIN-1L", qty=1)],
    )
    print(result.totals.shortage_value)  # Decimal("65.00")
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from stock_engines.tracer import traced_engine
from stock_kernel.domain.dtos import CountRow, ExpectedMode, MovementRow
from stock_kernel.domain.guards import require_sequence
from stock_kernel.domain.quantities import ZERO, quantity_or_zero, round_money
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.variance")


@dataclass(frozen=True)
class VarianceOptions:
    """Options for a unified variance computation."""

    expected_mode: ExpectedMode = ExpectedMode.PAR
    totals_places: int = 2


@dataclass(frozen=True)
class UnifiedResultRow:
    """
    Per-SKU variance, shrinkage and cost tiers.

    Cost tiers:
        list_cost_per_unit    catalog unit cost
        landed_cost_per_unit  list cost plus allocated freight (currently equal)
        real_cost_per_unit    landed cost with shrinkage burden carried by survivors
    """

    sku: str
    on_hand: Decimal
    expected: Decimal
    variance: Decimal
    sales_qty: Decimal
    invoice_qty: Decimal
    shrinkage: Decimal
    shrink_units: Decimal
    shrink_value: Decimal
    name: str | None = None
    department_id: str | None = None
    unit_cost: Decimal | None = None
    value: Decimal | None = None
    list_cost_per_unit: Decimal | None = None
    landed_cost_per_unit: Decimal | None = None
    real_cost_per_unit: Decimal | None = None

    @property
    def theoretical_on_hand(self) -> Decimal:
        """What stock should be now given receipts and sales."""
        return self.expected + self.invoice_qty - self.sales_qty

    @property
    def is_shortage(self) -> bool:
        return self.variance < ZERO

    @property
    def is_excess(self) -> bool:
        return self.variance > ZERO


@dataclass(frozen=True)
class UnifiedTotals:
    """Aggregate magnitudes, rounded at the boundary."""

    shortage_value: Decimal
    excess_value: Decimal
    shrinkage_units: Decimal
    shrinkage_value: Decimal


@dataclass(frozen=True)
class UnifiedResult:
    """Result of ``compute_unified``."""

    rows: tuple[UnifiedResultRow, ...]
    shortages: tuple[UnifiedResultRow, ...]
    excesses: tuple[UnifiedResultRow, ...]
    totals: UnifiedTotals
    expected_mode: ExpectedMode = ExpectedMode.PAR

    def row_for(self, sku: str) -> UnifiedResultRow | None:
        for row in self.rows:
            if row.sku == sku:
                return row
        return None


@dataclass
class _MergedCount:
    """Accumulator for count rows sharing a SKU."""

    sku: str
    on_hand: Decimal | None
    expected: Decimal | None
    name: str | None
    unit_cost: Decimal | None
    department_id: str | None
    department_conflict: bool = False

    def absorb(self, row: CountRow) -> None:
        if row.on_hand is not None:
            self.on_hand = quantity_or_zero(self.on_hand) + row.on_hand
        if row.expected is not None:
            self.expected = quantity_or_zero(self.expected) + row.expected
        if self.name is None:
            self.name = row.name
        if self.unit_cost is None:
            self.unit_cost = row.unit_cost
        if row.department_id != self.department_id:
            self.department_conflict = True


def _sum_by_sku(rows: Sequence[MovementRow]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for row in rows:
        totals[row.sku] = totals.get(row.sku, ZERO) + quantity_or_zero(row.qty)
    return totals


def _merge_counts(counts: Sequence[CountRow]) -> list[_MergedCount]:
    merged: dict[str, _MergedCount] = {}
    for row in counts:
        existing = merged.get(row.sku)
        if existing is None:
            merged[row.sku] = _MergedCount(
                sku=row.sku,
                on_hand=row.on_hand,
                expected=row.expected,
                name=row.name,
                unit_cost=row.unit_cost,
                department_id=row.department_id,
            )
        else:
            existing.absorb(row)
    return list(merged.values())


def burdened_unit_cost(
    landed_cost_per_unit: Decimal | None,
    on_hand: Decimal,
    shrink_units: Decimal,
) -> Decimal | None:
    """
    Spread the cost of lost units across the units that remain.

    real = landed * (on_hand + shrink_units) / on_hand, when there are
    survivors and losses; otherwise the landed cost unchanged.
    """
    if landed_cost_per_unit is None:
        return None
    if on_hand > ZERO and shrink_units > ZERO:
        return landed_cost_per_unit * (on_hand + shrink_units) / on_hand
    return landed_cost_per_unit


class VarianceCalculator:
    """
    Pure function calculator for count variance.

    Contract:
        No I/O, no storage access, fully deterministic.
        All reference data passed as parameters.
    Guarantees:
        - One result row per distinct SKU in ``counts``, in first-seen order.
          Duplicate count rows for a SKU are summed; their department is
          kept only when all of them agree.
        - Sales and receipts are summed per SKU before use; movement for
          SKUs that were not counted is ignored.
        - ``shortages`` holds rows with variance < 0, ``excesses`` rows with
          variance > 0, both in row order.
    Non-goals:
        - Does not choose how ``expected`` is derived (par, moving average,
          sales-driven); that is an upstream policy echoed in the result.
        - Does not allocate freight; ``landed_cost_per_unit`` is a
          pass-through of the list cost.
        - Does not format currency.
    """

    @traced_engine("variance", "1.0", fingerprint_fields=("counts", "sales", "invoices", "options"))
    def compute_unified(
        self,
        counts: Sequence[CountRow],
        sales: Sequence[MovementRow],
        invoices: Sequence[MovementRow],
        options: VarianceOptions | None = None,
    ) -> UnifiedResult:
        """
        Compute per-SKU variance, shrinkage and cost tiers, plus totals.

        Args:
            counts: Counted rows (on hand + expected baseline).
            sales: Units sold in the window.
            invoices: Units received in the window.
            options: Expected-mode tag and totals precision.

        Returns:
            UnifiedResult with rows, shortages, excesses and rounded totals.

        Raises:
            InvalidInputError: If an argument is not a sequence of the
                expected row type.
        """
        counts = require_sequence("counts", counts, CountRow)
        sales = require_sequence("sales", sales, MovementRow)
        invoices = require_sequence("invoices", invoices, MovementRow)
        opts = options or VarianceOptions()

        logger.info("unified_variance_started", extra={
            "count_rows": len(counts),
            "sales_rows": len(sales),
            "invoice_rows": len(invoices),
            "expected_mode": opts.expected_mode.value,
        })

        sold = _sum_by_sku(sales)
        received = _sum_by_sku(invoices)

        rows: list[UnifiedResultRow] = []
        for merged in _merge_counts(counts):
            rows.append(self._compute_row(merged, sold, received))

        shortages = tuple(r for r in rows if r.variance < ZERO)
        excesses = tuple(r for r in rows if r.variance > ZERO)
        totals = self._totals(rows, shortages, excesses, opts.totals_places)

        logger.info("unified_variance_completed", extra={
            "row_count": len(rows),
            "shortage_count": len(shortages),
            "excess_count": len(excesses),
            "shortage_value": str(totals.shortage_value),
            "excess_value": str(totals.excess_value),
            "shrinkage_units": str(totals.shrinkage_units),
            "shrinkage_value": str(totals.shrinkage_value),
        })

        return UnifiedResult(
            rows=tuple(rows),
            shortages=shortages,
            excesses=excesses,
            totals=totals,
            expected_mode=opts.expected_mode,
        )

    def _compute_row(
        self,
        merged: _MergedCount,
        sold: dict[str, Decimal],
        received: dict[str, Decimal],
    ) -> UnifiedResultRow:
        s = sold.get(merged.sku, ZERO)
        r = received.get(merged.sku, ZERO)
        expected = quantity_or_zero(merged.expected)
        on_hand = quantity_or_zero(merged.on_hand)
        unit_cost = merged.unit_cost

        variance = on_hand - expected
        value = variance * unit_cost if unit_cost is not None else None

        theoretical = expected + r - s
        shrinkage = theoretical - on_hand  # negative => loss
        shrink_units = max(ZERO, -shrinkage)
        shrink_value = shrink_units * unit_cost if unit_cost is not None else ZERO

        list_cost = unit_cost
        landed_cost = list_cost
        real_cost = burdened_unit_cost(landed_cost, on_hand, shrink_units)

        return UnifiedResultRow(
            sku=merged.sku,
            name=merged.name,
            department_id=None if merged.department_conflict else merged.department_id,
            unit_cost=unit_cost,
            on_hand=on_hand,
            expected=expected,
            variance=variance,
            value=value,
            sales_qty=s,
            invoice_qty=r,
            shrinkage=shrinkage,
            shrink_units=shrink_units,
            shrink_value=shrink_value,
            list_cost_per_unit=list_cost,
            landed_cost_per_unit=landed_cost,
            real_cost_per_unit=real_cost,
        )

    def _totals(
        self,
        rows: Sequence[UnifiedResultRow],
        shortages: Sequence[UnifiedResultRow],
        excesses: Sequence[UnifiedResultRow],
        places: int,
    ) -> UnifiedTotals:
        shortage_value = sum(
            (abs(min(r.value, ZERO)) for r in shortages if r.value is not None),
            ZERO,
        )
        excess_value = sum(
            (max(r.value, ZERO) for r in excesses if r.value is not None),
            ZERO,
        )
        shrinking = [r for r in rows if r.shrinkage < ZERO]
        shrinkage_units = sum((r.shrink_units for r in shrinking), ZERO)
        shrinkage_value = sum((r.shrink_value for r in shrinking), ZERO)

        return UnifiedTotals(
            shortage_value=round_money(shortage_value, places),
            excess_value=round_money(excess_value, places),
            shrinkage_units=round_money(shrinkage_units, places),
            shrinkage_value=round_money(shrinkage_value, places),
        )


def compute_unified(
    counts: Sequence[CountRow],
    sales: Sequence[MovementRow],
    invoices: Sequence[MovementRow],
    options: VarianceOptions | None = None,
) -> UnifiedResult:
    """Module-level convenience wrapper around ``VarianceCalculator``."""
    return VarianceCalculator().compute_unified(counts, sales, invoices, options)
