"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable input structures the stock engines consume:
    CountRow, MovementRow (sales and receipts), ParsedInvoiceLine,
    OrderLine, ProductMeta, SupplierMeta, DepartmentScope and
    OnHandSnapshot, plus the LineType vocabulary for invoice lines.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Built by the ingestion layer (or directly by callers); engines accept
    nothing else.

Invariants enforced:
    - Numeric fields are normalized once, here, via ``to_decimal``.
      Absent or non-finite values become None; they are never coerced
      to a misleading zero.  Scalar quantity defaults are applied by
      the engines, which own that policy.
    - An on-hand entry whose quantity is absent is kept at zero: the
      product was counted, so it still takes part in replenishment.
    - Mapping fields (dept_par, on_hand) are frozen into read-only
      proxies so snapshots cannot be mutated after construction.

Failure modes:
    - None.  Construction never raises for missing optional data.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from stock_kernel.domain.quantities import quantity_or_zero, to_decimal


def _freeze_numbers(values: Mapping[str, Any] | None) -> Mapping[str, Decimal]:
    """Normalize a str->number mapping, dropping entries that are not numeric."""
    frozen: dict[str, Decimal] = {}
    for key, raw in (values or {}).items():
        number = to_decimal(raw)
        if number is not None:
            frozen[str(key)] = number
    return MappingProxyType(frozen)


def _freeze_quantities(values: Mapping[str, Any] | None) -> Mapping[str, Decimal]:
    """Normalize a str->quantity mapping; absent quantities become zero."""
    return MappingProxyType({
        str(key): quantity_or_zero(raw) for key, raw in (values or {}).items()
    })


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class LineType(str, Enum):
    """Charge-type tag of an invoice line."""

    PRODUCT = "product"
    FREIGHT = "freight"
    SURCHARGE = "surcharge"
    ULLAGE = "ullage"
    DEPOSIT_RETURNABLE = "deposit_returnable"
    DISCOUNT = "discount"
    TAX = "tax"
    OTHER = "other"


class ExpectedMode(str, Enum):
    """Upstream policy that produced a count row's expected quantity."""

    PAR = "par"
    MOVING_AVG = "moving_avg"
    SALES_DRIVEN = "sales_driven"


# ---------------------------------------------------------------------------
# Variance inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CountRow:
    """One counted SKU with its expected (theoretical/par) baseline."""

    sku: str
    on_hand: Decimal | None = None
    expected: Decimal | None = None
    name: str | None = None
    unit_cost: Decimal | None = None
    department_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "on_hand", to_decimal(self.on_hand))
        object.__setattr__(self, "expected", to_decimal(self.expected))
        object.__setattr__(self, "unit_cost", to_decimal(self.unit_cost))


@dataclass(frozen=True)
class MovementRow:
    """Windowed quantity moved for a SKU (units sold, or units received)."""

    sku: str
    qty: Decimal | None = None
    occurred_on: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "qty", to_decimal(self.qty))


SalesRow = MovementRow
InvoiceRow = MovementRow


# ---------------------------------------------------------------------------
# Reconciliation inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedInvoiceLine:
    """One line read off a supplier invoice."""

    name: str
    qty: Decimal | None = None
    unit_price: Decimal | None = None
    code: str | None = None
    line_type: LineType | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", "" if self.name is None else str(self.name))
        object.__setattr__(self, "qty", to_decimal(self.qty))
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))
        object.__setattr__(self, "code", _clean_text(self.code))
        if self.line_type is not None and not isinstance(self.line_type, LineType):
            object.__setattr__(self, "line_type", LineType(self.line_type))


@dataclass(frozen=True)
class OrderLine:
    """One expected-delivery line of a submitted order."""

    id: str
    product_id: str | None = None
    name: str | None = None
    qty: Decimal | None = None
    unit_cost: Decimal | None = None
    code: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "qty", to_decimal(self.qty))
        object.__setattr__(self, "unit_cost", to_decimal(self.unit_cost))
        object.__setattr__(self, "code", _clean_text(self.code))

    @property
    def display_name(self) -> str:
        """Name shown for this line; falls back to product id, then line id."""
        return self.name or self.product_id or self.id


# ---------------------------------------------------------------------------
# Replenishment inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProductMeta:
    """
    Catalog metadata for a product.

    PAR precedence: ``dept_par[department]`` -> ``par`` -> caller default.
    """

    product_id: str
    name: str | None = None
    par: Decimal | None = None
    dept_par: Mapping[str, Decimal] = field(default_factory=dict)
    supplier_id: str | None = None
    supplier_name: str | None = None
    pack_size: Decimal | None = None
    unit_cost: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "par", to_decimal(self.par))
        object.__setattr__(self, "dept_par", _freeze_numbers(self.dept_par))
        object.__setattr__(self, "supplier_id", _clean_text(self.supplier_id))
        object.__setattr__(self, "supplier_name", _clean_text(self.supplier_name))
        object.__setattr__(self, "pack_size", to_decimal(self.pack_size))
        object.__setattr__(self, "unit_cost", to_decimal(self.unit_cost))


@dataclass(frozen=True)
class SupplierMeta:
    """Supplier directory entry."""

    supplier_id: str
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _clean_text(self.name))


@dataclass(frozen=True)
class DepartmentScope:
    """
    On-hand quantities for one department.

    ``department_id`` is None for the implicit department-blind venue scope.
    """

    department_id: str | None
    on_hand: Mapping[str, Decimal] = field(default_factory=dict)
    department_name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "on_hand", _freeze_quantities(self.on_hand))


@dataclass(frozen=True)
class OnHandSnapshot:
    """On-hand quantities by product, for one venue scope or per department."""

    scopes: tuple[DepartmentScope, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "scopes", tuple(self.scopes))

    @classmethod
    def venue(cls, on_hand: Mapping[str, Any]) -> OnHandSnapshot:
        """Department-blind snapshot: one implicit scope for the whole venue."""
        return cls(scopes=(DepartmentScope(department_id=None, on_hand=on_hand),))

    @classmethod
    def by_department(
        cls,
        on_hand: Mapping[str, Mapping[str, Any]],
        department_names: Mapping[str, str] | None = None,
    ) -> OnHandSnapshot:
        """One scope per department, in the mapping's order."""
        names = department_names or {}
        return cls(scopes=tuple(
            DepartmentScope(
                department_id=dept_id,
                on_hand=quantities,
                department_name=names.get(dept_id),
            )
            for dept_id, quantities in on_hand.items()
        ))

    @property
    def is_department_aware(self) -> bool:
        return any(scope.department_id is not None for scope in self.scopes)

    def department_ids(self) -> Iterable[str]:
        return tuple(s.department_id for s in self.scopes if s.department_id is not None)
