"""
Pure domain layer.

This module contains pure data transfer objects and numeric accessors
with NO dependencies on:
- Storage
- Time/clock
- I/O

All domain objects are immutable and deterministic.
"""

from stock_kernel.domain.dtos import (
    CountRow,
    DepartmentScope,
    ExpectedMode,
    InvoiceRow,
    LineType,
    MovementRow,
    OnHandSnapshot,
    OrderLine,
    ParsedInvoiceLine,
    ProductMeta,
    SalesRow,
    SupplierMeta,
)
from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.guards import require_instance, require_sequence
from stock_kernel.domain.quantities import (
    ONE,
    ZERO,
    ceil_to_multiple,
    ceil_units,
    quantity_or_zero,
    round_money,
    round_units,
    to_decimal,
)

__all__ = [
    # DTOs
    "CountRow",
    "DepartmentScope",
    "ExpectedMode",
    "InvoiceRow",
    "LineType",
    "MovementRow",
    "OnHandSnapshot",
    "OrderLine",
    "ParsedInvoiceLine",
    "ProductMeta",
    "SalesRow",
    "SupplierMeta",
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Guards
    "require_instance",
    "require_sequence",
    # Quantities
    "ONE",
    "ZERO",
    "ceil_to_multiple",
    "ceil_units",
    "quantity_or_zero",
    "round_money",
    "round_units",
    "to_decimal",
]
