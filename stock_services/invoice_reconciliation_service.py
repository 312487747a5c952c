"""
InvoiceReconciliationService -- Service wrapper for invoice reconciliation.

Composes InvoiceReconciler (pure engine) with the venue's order lines and
the configured price tolerance.

Architecture: stock_services -- imperative shell.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from stock_config import get_active_config
from stock_config.bridges import reconcile_options
from stock_config.schema import EngineConfig
from stock_engines.invoice_reconciliation import InvoiceReconciler, ReconcileBuckets
from stock_kernel.domain.dtos import OrderLine, ParsedInvoiceLine
from stock_kernel.logging_config import LogContext, get_logger
from stock_services.repository import SnapshotRepository

logger = get_logger("services.invoice_reconciliation")


class InvoiceReconciliationService:
    """Service that reconciles a received invoice against its order.

    Contract:
        - ``reconcile()`` uses the repository's order lines unless the
          caller passes them explicitly.

    Non-goals:
        - Does NOT extract invoice lines from documents (OCR, CSV).
        - Does NOT post receipts or adjust stock.
    """

    def __init__(
        self,
        repository: SnapshotRepository,
        config: EngineConfig | None = None,
        reconciler: InvoiceReconciler | None = None,
    ) -> None:
        self._repository = repository
        self._config = config or get_active_config()
        self._reconciler = reconciler or InvoiceReconciler()

    def reconcile(
        self,
        venue_id: str,
        invoice_lines: Sequence[ParsedInvoiceLine],
        order_lines: Sequence[OrderLine] | None = None,
    ) -> ReconcileBuckets:
        with LogContext.bind(venue_id=venue_id, run_id=str(uuid.uuid4())):
            lines = order_lines if order_lines is not None else self._repository.order_lines(venue_id)
            buckets = self._reconciler.reconcile(
                parsed_lines=invoice_lines,
                order_lines=lines,
                options=reconcile_options(self._config),
            )
            if not buckets.is_clean:
                logger.warning("invoice_discrepancies_found", extra={
                    "qty_variance": len(buckets.qty_variance),
                    "price_variance": len(buckets.price_variance),
                    "unknown_items": len(buckets.unknown_items),
                    "missing_items": len(buckets.missing_items),
                })
        return buckets
