"""
Pytest fixtures for the stock engine test suite.

Provides:
- Structured logging configuration and a ``captured_logs`` fixture
- DTO builders for the recurring fixture catalog (gin, tonic, limes)
- A deterministic clock and an in-memory snapshot repository
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from stock_config import get_active_config
from stock_ingestion.snapshot import StockSnapshot
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.dtos import (
    CountRow,
    MovementRow,
    OnHandSnapshot,
    OrderLine,
    ParsedInvoiceLine,
    ProductMeta,
    SupplierMeta,
)
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stock_services.repository import InMemorySnapshotRepository

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stock_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            compute_unified(...)
            logs = captured_logs()
            assert any(r["message"] == "unified_variance_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


FIXED_NOW = datetime(2025, 10, 20, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def engine_config():
    return get_active_config()


@pytest.fixture
def gin_and_tonic_counts():
    return [
        CountRow(sku="GIN-1L", name="Gin 1L", on_hand=8, expected=10, unit_cost="32.5",
                 department_id="bar"),
        CountRow(sku="TON-200", name="Tonic 200ml", on_hand=40, expected=30, unit_cost="1.3",
                 department_id="bar"),
    ]


@pytest.fixture
def gin_and_tonic_sales():
    return [MovementRow(sku="GIN-1L", qty=3), MovementRow(sku="TON-200", qty=5)]


@pytest.fixture
def gin_and_tonic_receipts():
    return [MovementRow(sku="GIN-1L", qty=1), MovementRow(sku="TON-200", qty=20)]


@pytest.fixture
def catalog():
    return [
        ProductMeta(product_id="lime", name="Lime", par=24, pack_size=12, unit_cost="0.40",
                    supplier_id="fresh", supplier_name="Fresh Co"),
        ProductMeta(product_id="gin", name="Gin 1L", par=6, dept_par={"bar": 10},
                    supplier_id="spirits", unit_cost="32.5"),
        ProductMeta(product_id="straws", name="Straws"),
    ]


@pytest.fixture
def suppliers():
    return [
        SupplierMeta(supplier_id="fresh", name="Fresh Produce"),
        SupplierMeta(supplier_id="spirits", name="Acme Spirits"),
    ]


@pytest.fixture
def sample_snapshot(gin_and_tonic_counts, gin_and_tonic_sales, gin_and_tonic_receipts,
                    catalog, suppliers):
    return StockSnapshot(
        venue_id="v1",
        counts=tuple(gin_and_tonic_counts),
        sales=tuple(gin_and_tonic_sales),
        receipts=tuple(gin_and_tonic_receipts),
        products=tuple(catalog),
        suppliers=tuple(suppliers),
        on_hand=OnHandSnapshot.by_department(
            {"bar": {"lime": 10, "gin": 4}, "kitchen": {"lime": 20, "straws": 2}},
            department_names={"bar": "Bar", "kitchen": "Kitchen"},
        ),
        order_lines=(
            OrderLine(id="ol-1", name="Lime", qty=10, unit_cost="2.00"),
            OrderLine(id="ol-2", name="Gin 1L", qty=2, unit_cost="32.50", code="GIN-1L"),
        ),
        invoice_lines=(
            ParsedInvoiceLine(name="Lime", qty=10, unit_price="2.00"),
            ParsedInvoiceLine(name="Delivery fee", qty=1, unit_price="15"),
        ),
    )


@pytest.fixture
def repository(sample_snapshot):
    return InMemorySnapshotRepository({"v1": sample_snapshot})
