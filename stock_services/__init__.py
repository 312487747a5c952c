"""
stock_services -- Package init and public API.

Responsibility:
    Orchestration services that compose the pure calculation engines
    (stock_engines/) with repository access, configuration and the clock.
    This is the **only** layer that fetches data, reads configuration on
    behalf of engines, or uses wall-clock time.

Architecture position:
    Services -- orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_layer_boundaries.py):
        stock_services/ -> stock_engines/  (allowed)
        stock_services/ -> stock_kernel/   (allowed)
        stock_engines/  -> stock_services/ (FORBIDDEN)
        stock_kernel/   -> stock_services/ (FORBIDDEN)

Failure modes:
    - SnapshotNotFoundError when a repository has no data for a venue.
    - ConfigError when no explicit config is passed and the packaged
      defaults cannot be loaded.
"""

from stock_kernel.logging_config import get_logger

logger = get_logger("services")

from stock_services.export import export_workbook
from stock_services.invoice_reconciliation_service import InvoiceReconciliationService
from stock_services.repository import (
    CoverageStats,
    InMemorySnapshotRepository,
    ReportWindow,
    SnapshotRepository,
)
from stock_services.serialization import to_jsonable
from stock_services.suggested_order_service import SuggestedOrders, SuggestedOrderService
from stock_services.variance_report_service import VarianceReport, VarianceReportService

__all__ = [
    "CoverageStats",
    "InMemorySnapshotRepository",
    "InvoiceReconciliationService",
    "ReportWindow",
    "SnapshotRepository",
    "SuggestedOrderService",
    "SuggestedOrders",
    "VarianceReport",
    "VarianceReportService",
    "export_workbook",
    "to_jsonable",
]
