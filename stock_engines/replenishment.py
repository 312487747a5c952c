"""
stock_engines.replenishment -- Suggested order quantities by supplier.

Responsibility:
    Compute per-product (optionally per-department) replenishment need from
    PAR and on-hand quantities, round it to pack size, and bucket the
    resulting lines by preferred supplier.  Also provides the "ALL"
    department roll-up, draft planning and supplier abbreviations used
    when suggestions become draft orders.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ``stock_services.suggested_order_service``.  Alternative
    suggestion sources (e.g. an external AI overlay) are adapted into
    ``SuggestionResult`` by the ingestion layer, not computed here.

Invariants enforced:
    - PAR precedence: dept_par[department] -> par -> default_par_if_missing.
      A PAR source counts only when it is a finite number >= 0.
    - needed = max(0, used_par - on_hand); nothing is emitted when
      needed <= 0, and no emitted line ever has qty <= 0.
    - Pack rounding: qty = ceil(needed / pack) * pack when round_to_pack
      and pack_size > 0; otherwise whole units per ``unit_rounding``.
    - needs_supplier is True for every line routed to ``unassigned``.
    - Within a bucket, a (product_id, department_id) pair appears at most
      once; later duplicates are dropped, not merged.
    - Deterministic ordering: buckets by supplier name (case-insensitive)
      then id; lines by product name (case-insensitive), product id, then
      snapshot department order.

Failure modes:
    - InvalidInputError for structurally malformed arguments.
    - Missing catalog data never raises; it degrades to needs_par /
      needs_supplier flags.

Usage:
    from stock_engines.replenishment import ReplenishmentSuggester
    from stock_kernel.domain.dtos import OnHandSnapshot, ProductMeta

    result = ReplenishmentSuggester().build_suggested_orders(
        products=[ProductMeta(product_id="p1", name="Lime", par=24, pack_size=12,
                              supplier_id="s1")],
        on_hand=OnHandSnapshot.venue({"p1": 10}),
        suppliers=[],
    )
    assert result.bucket_for("s1").lines[0].qty == Decimal("24")
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from stock_engines.tracer import traced_engine
from stock_kernel.domain.dtos import (
    DepartmentScope,
    OnHandSnapshot,
    ProductMeta,
    SupplierMeta,
)
from stock_kernel.domain.guards import require_instance, require_sequence
from stock_kernel.domain.quantities import (
    ZERO,
    ceil_to_multiple,
    ceil_units,
    round_units,
    to_decimal,
)
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.replenishment")

UNASSIGNED_ID = "unassigned"
UNASSIGNED_NAME = "Unassigned"
DEFAULT_PAR_IF_MISSING = Decimal("6")
NO_SUPPLIER_REASON = "No preferred supplier set"


class UnitRounding(str, Enum):
    """Whole-unit rounding used when pack rounding does not apply."""

    NEAREST = "nearest"
    UP = "up"


@dataclass(frozen=True)
class SuggestOptions:
    round_to_pack: bool = True
    default_par_if_missing: Decimal = DEFAULT_PAR_IF_MISSING
    unit_rounding: UnitRounding = UnitRounding.NEAREST

    def __post_init__(self) -> None:
        default = to_decimal(self.default_par_if_missing)
        object.__setattr__(
            self, "default_par_if_missing",
            DEFAULT_PAR_IF_MISSING if default is None or default < ZERO else default,
        )
        if not isinstance(self.unit_rounding, UnitRounding):
            object.__setattr__(self, "unit_rounding", UnitRounding(self.unit_rounding))


@dataclass(frozen=True)
class SuggestedLine:
    """One product to order, for one department (or the whole venue)."""

    product_id: str
    product_name: str
    qty: Decimal
    needs_par: bool
    needs_supplier: bool
    unit_cost: Decimal | None = None
    pack_size: Decimal | None = None
    reason: str | None = None
    dept_id: str | None = None
    dept_name: str | None = None
    qty_dept: Decimal | None = None


@dataclass(frozen=True)
class SupplierBucket:
    supplier_id: str
    supplier_name: str
    lines: tuple[SuggestedLine, ...] = ()

    @property
    def is_unassigned(self) -> bool:
        return self.supplier_id == UNASSIGNED_ID


@dataclass(frozen=True)
class SuggestionResult:
    """Supplier buckets plus the always-present ``unassigned`` bucket."""

    buckets: tuple[SupplierBucket, ...]
    unassigned: SupplierBucket

    def bucket_for(self, supplier_id: str) -> SupplierBucket | None:
        if supplier_id == UNASSIGNED_ID:
            return self.unassigned
        for bucket in self.buckets:
            if bucket.supplier_id == supplier_id:
                return bucket
        return None

    def all_buckets(self) -> tuple[SupplierBucket, ...]:
        return (*self.buckets, self.unassigned)

    def all_lines(self) -> tuple[SuggestedLine, ...]:
        return tuple(line for bucket in self.all_buckets() for line in bucket.lines)


@dataclass(frozen=True)
class DraftPlanEntry:
    supplier_id: str
    supplier_name: str
    line_count: int
    reference_prefix: str


@dataclass(frozen=True)
class DraftPlan:
    """Which suppliers get a new draft and which merge into an existing one."""

    will_create: tuple[DraftPlanEntry, ...] = ()
    will_merge: tuple[DraftPlanEntry, ...] = ()


def _valid_par(value: Decimal | None) -> Decimal | None:
    if value is None or value < ZERO:
        return None
    return value


def resolve_par(product: ProductMeta | None, department_id: str | None) -> Decimal | None:
    """Most specific explicitly-set PAR for this scope, or None."""
    if product is None:
        return None
    if department_id is not None:
        dept_par = _valid_par(product.dept_par.get(department_id))
        if dept_par is not None:
            return dept_par
    return _valid_par(product.par)


def order_quantity(needed: Decimal, pack_size: Decimal | None, options: SuggestOptions) -> Decimal:
    """Round a positive need to an orderable quantity."""
    if options.round_to_pack and pack_size is not None and pack_size > ZERO:
        return ceil_to_multiple(needed, pack_size)
    if options.unit_rounding is UnitRounding.UP:
        return ceil_units(needed)
    return round_units(needed)


def _display_number(value: Decimal) -> str:
    return format(value.normalize(), "f")


def _line_sort_key(entry: tuple[SuggestedLine, int]) -> tuple[str, str, int]:
    line, scope_order = entry
    return (line.product_name.casefold(), line.product_id, scope_order)


def _bucket_sort_key(bucket: SupplierBucket) -> tuple[str, str]:
    return (bucket.supplier_name.casefold(), bucket.supplier_id)


class ReplenishmentSuggester:
    """
    Pure function suggester for replenishment orders.

    Contract:
        No I/O, fully deterministic.  Considers only products present in
        a scope of the on-hand snapshot; products unknown to the catalog
        still get a line, named by their id and flagged for remediation.
    Guarantees:
        - Supplier name resolution: supplier directory -> product's
          supplier_name -> the literal supplier id.
        - ``reason`` reports the missing supplier first; otherwise the
          defaulted PAR, if any.
    Non-goals:
        - Does not decide how often suggestions are recomputed.
        - Does not apply minimum order quantities.
    """

    @traced_engine(
        "replenishment", "1.0",
        fingerprint_fields=("products", "on_hand", "suppliers", "options"),
    )
    def build_suggested_orders(
        self,
        products: Sequence[ProductMeta],
        on_hand: OnHandSnapshot,
        suppliers: Sequence[SupplierMeta] = (),
        options: SuggestOptions | None = None,
    ) -> SuggestionResult:
        """
        Compute suggested order lines bucketed by supplier.

        Args:
            products: Catalog metadata (PAR, supplier, pack size, cost).
            on_hand: On-hand quantities for the venue or per department.
            suppliers: Supplier directory, for bucket names.
            options: Pack rounding, default PAR and unit rounding policy.

        Returns:
            SuggestionResult.

        Raises:
            InvalidInputError: If an argument has the wrong structure.
        """
        products = require_sequence("products", products, ProductMeta)
        on_hand = require_instance("on_hand", on_hand, OnHandSnapshot)
        suppliers = require_sequence("suppliers", suppliers, SupplierMeta)
        opts = options or SuggestOptions()

        logger.info("suggested_orders_started", extra={
            "products": len(products),
            "scopes": len(on_hand.scopes),
            "department_aware": on_hand.is_department_aware,
            "round_to_pack": opts.round_to_pack,
            "default_par_if_missing": str(opts.default_par_if_missing),
        })

        catalog: dict[str, ProductMeta] = {}
        for product in products:
            catalog.setdefault(product.product_id, product)
        supplier_names: dict[str, str | None] = {}
        for supplier in suppliers:
            supplier_names.setdefault(supplier.supplier_id, supplier.name)

        routed: dict[str, list[tuple[SuggestedLine, int]]] = {}
        bucket_names: dict[str, str] = {}
        seen: dict[str, set[tuple[str, str | None]]] = {}
        dropped_duplicates = 0

        for scope_order, scope in enumerate(on_hand.scopes):
            for product_id, quantity in scope.on_hand.items():
                product = catalog.get(product_id)
                line = self._suggest_line(product_id, product, quantity, scope, opts)
                if line is None:
                    continue

                supplier_id = product.supplier_id if product is not None else None
                if supplier_id is None:
                    bucket_id = UNASSIGNED_ID
                else:
                    bucket_id = supplier_id
                    if bucket_id not in bucket_names:
                        bucket_names[bucket_id] = (
                            supplier_names.get(supplier_id)
                            or product.supplier_name
                            or supplier_id
                        )

                key = (line.product_id, line.dept_id)
                keys = seen.setdefault(bucket_id, set())
                if key in keys:
                    dropped_duplicates += 1
                    continue
                keys.add(key)
                routed.setdefault(bucket_id, []).append((line, scope_order))

        unassigned = SupplierBucket(
            supplier_id=UNASSIGNED_ID,
            supplier_name=UNASSIGNED_NAME,
            lines=self._finish_lines(routed.pop(UNASSIGNED_ID, [])),
        )
        buckets = sorted(
            (
                SupplierBucket(
                    supplier_id=bucket_id,
                    supplier_name=bucket_names[bucket_id],
                    lines=self._finish_lines(entries),
                )
                for bucket_id, entries in routed.items()
            ),
            key=_bucket_sort_key,
        )
        result = SuggestionResult(
            buckets=tuple(b for b in buckets if b.lines),
            unassigned=unassigned,
        )

        logger.info("suggested_orders_completed", extra={
            "supplier_buckets": len(result.buckets),
            "lines": len(result.all_lines()),
            "unassigned_lines": len(unassigned.lines),
            "dropped_duplicates": dropped_duplicates,
        })
        return result

    def _suggest_line(
        self,
        product_id: str,
        product: ProductMeta | None,
        quantity: Decimal,
        scope: DepartmentScope,
        opts: SuggestOptions,
    ) -> SuggestedLine | None:
        explicit_par = resolve_par(product, scope.department_id)
        used_par = explicit_par if explicit_par is not None else opts.default_par_if_missing
        needed = max(ZERO, used_par - quantity)
        if needed <= ZERO:
            return None

        pack_size = product.pack_size if product is not None else None
        qty = order_quantity(needed, pack_size, opts)
        if qty <= ZERO:
            return None

        needs_par = explicit_par is None
        needs_supplier = product is None or product.supplier_id is None
        if needs_supplier:
            reason = NO_SUPPLIER_REASON
        elif needs_par:
            prefix = "Dept PAR" if scope.department_id is not None else "PAR"
            reason = f"{prefix} missing; used default {_display_number(used_par)}"
        else:
            reason = None

        unit_cost = product.unit_cost if product is not None else None
        return SuggestedLine(
            product_id=product_id,
            product_name=(product.name if product is not None else None) or product_id,
            qty=qty,
            unit_cost=unit_cost if unit_cost is not None and unit_cost > ZERO else None,
            pack_size=pack_size,
            needs_par=needs_par,
            needs_supplier=needs_supplier,
            reason=reason,
            dept_id=scope.department_id,
            dept_name=scope.department_name,
            qty_dept=qty if scope.department_id is not None else None,
        )

    def _finish_lines(self, entries: list[tuple[SuggestedLine, int]]) -> tuple[SuggestedLine, ...]:
        return tuple(line for line, _ in sorted(entries, key=_line_sort_key) if line.qty > ZERO)


def build_suggested_orders(
    products: Sequence[ProductMeta],
    on_hand: OnHandSnapshot,
    suppliers: Sequence[SupplierMeta] = (),
    options: SuggestOptions | None = None,
) -> SuggestionResult:
    """Module-level convenience wrapper around ``ReplenishmentSuggester``."""
    return ReplenishmentSuggester().build_suggested_orders(products, on_hand, suppliers, options)


# ---------------------------------------------------------------------------
# Department roll-up and draft planning
# ---------------------------------------------------------------------------


def _roll_up_bucket(bucket: SupplierBucket) -> SupplierBucket:
    merged: dict[str, SuggestedLine] = {}
    for line in bucket.lines:
        existing = merged.get(line.product_id)
        if existing is None:
            merged[line.product_id] = replace(
                line, dept_id=None, dept_name=None, qty_dept=None,
            )
            continue
        merged[line.product_id] = replace(
            existing,
            qty=existing.qty + line.qty,
            needs_par=existing.needs_par or line.needs_par,
            needs_supplier=existing.needs_supplier or line.needs_supplier,
            reason=existing.reason or line.reason,
        )
    lines = sorted(merged.values(), key=lambda l: (l.product_name.casefold(), l.product_id))
    return replace(bucket, lines=tuple(lines))


def roll_up_departments(result: SuggestionResult) -> SuggestionResult:
    """
    Collapse per-department lines into one venue-wide ("ALL") line per
    product within each supplier bucket.  Quantities are summed and the
    remediation flags are OR-ed; department fields are cleared.
    """
    require_instance("result", result, SuggestionResult)
    return SuggestionResult(
        buckets=tuple(_roll_up_bucket(b) for b in result.buckets),
        unassigned=_roll_up_bucket(result.unassigned),
    )


def supplier_abbreviation(name: str | None, fallback: str | None = None) -> str:
    """Three-letter upper-case code used on draft order references."""
    for candidate in (name, fallback):
        text = (candidate or "").strip()
        if text:
            return text[:3].upper()
    return "SUP"


def plan_drafts(
    result: SuggestionResult,
    existing_draft_supplier_ids: Iterable[str] = (),
) -> DraftPlan:
    """
    Split suppliers with orderable lines into new drafts and merges.

    The unassigned bucket never produces a draft: it has no supplier to
    order from.  Both lists are sorted by supplier name, then id.
    """
    require_instance("result", result, SuggestionResult)
    existing = set(existing_draft_supplier_ids)
    will_create: list[DraftPlanEntry] = []
    will_merge: list[DraftPlanEntry] = []
    for bucket in result.buckets:
        count = sum(1 for line in bucket.lines if line.product_id and line.qty > ZERO)
        if count == 0:
            continue
        entry = DraftPlanEntry(
            supplier_id=bucket.supplier_id,
            supplier_name=bucket.supplier_name,
            line_count=count,
            reference_prefix=supplier_abbreviation(bucket.supplier_name, bucket.supplier_id),
        )
        (will_merge if bucket.supplier_id in existing else will_create).append(entry)

    def sort_key(entry: DraftPlanEntry) -> tuple[str, str]:
        return (entry.supplier_name.casefold(), entry.supplier_id)

    return DraftPlan(
        will_create=tuple(sorted(will_create, key=sort_key)),
        will_merge=tuple(sorted(will_merge, key=sort_key)),
    )
