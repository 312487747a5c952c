"""
VarianceReportService -- Service wrapper for stock variance reports.

Composes VarianceCalculator and assess_data_quality (pure engines) with
repository access, clock injection for the reporting window, and the
active engine configuration.

Architecture: stock_services -- imperative shell.
    Fetching happens here; the engines are called with plain data.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date

from stock_config import get_active_config
from stock_config.bridges import variance_options
from stock_config.schema import EngineConfig
from stock_engines.data_quality import (
    DataQualityAssessment,
    DataQualityInputs,
    assess_data_quality,
)
from stock_engines.explain import ExplainRequest, build_explain_request
from stock_engines.variance import UnifiedResult, VarianceCalculator
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.logging_config import LogContext, get_logger
from stock_services.repository import ReportWindow, SnapshotRepository

logger = get_logger("services.variance_report")


@dataclass(frozen=True)
class VarianceReport:
    venue_id: str
    department_id: str | None
    window: ReportWindow
    result: UnifiedResult
    data_quality: DataQualityAssessment
    config_checksum: str


class VarianceReportService:
    """Service that builds variance reports for a venue.

    Contract:
        - ``build_report()`` computes the unified variance for a venue
          (optionally one department) over a trailing window, and grades
          the data it was built from.
        - ``explain_context()`` assembles the explanation payload for one SKU.

    Non-goals:
        - Does NOT persist reports (caller decides).
        - Does NOT generate explanation text.
    """

    def __init__(
        self,
        repository: SnapshotRepository,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        calculator: VarianceCalculator | None = None,
        window_days: int = 7,
    ) -> None:
        self._repository = repository
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._calculator = calculator or VarianceCalculator()
        self._window_days = window_days

    def window(self) -> ReportWindow:
        return ReportWindow.last_days(self._clock, self._window_days)

    def build_report(
        self,
        venue_id: str,
        department_id: str | None = None,
    ) -> VarianceReport:
        """Compute the variance report for a venue.

        Args:
            venue_id: Venue to report on.
            department_id: Restrict counts to one department.

        Returns:
            VarianceReport with the engine result and a data-quality grade.
        """
        window = self.window()
        with LogContext.bind(venue_id=venue_id, department_id=department_id, run_id=str(uuid.uuid4())):
            logger.info("variance_report_started", extra={"window": window.label})

            result = self._calculator.compute_unified(
                counts=self._repository.counts(venue_id, department_id),
                sales=self._repository.sales(venue_id, window),
                invoices=self._repository.receipts(venue_id, window),
                options=variance_options(self._config),
            )

            coverage = self._repository.coverage(venue_id, window)
            quality = assess_data_quality(DataQualityInputs(
                areas_total=coverage.areas_total,
                areas_completed=coverage.areas_completed,
                sales_docs=coverage.sales_docs,
                total_net_sales=coverage.total_net_sales,
                spend_docs=coverage.spend_docs,
                total_spend=coverage.total_spend,
                total_shrink_value=result.totals.shrinkage_value,
            ))

            logger.info("variance_report_completed", extra={
                "rows": len(result.rows),
                "data_quality": quality.level.value,
            })

        return VarianceReport(
            venue_id=venue_id,
            department_id=department_id,
            window=window,
            result=result,
            data_quality=quality,
            config_checksum=self._config.checksum,
        )

    def explain_context(self, report: VarianceReport, sku: str) -> ExplainRequest | None:
        """Explanation payload for one SKU of a built report, or None if absent."""
        row = report.result.row_for(sku)
        if row is None:
            return None
        product = next(
            (p for p in self._repository.products(report.venue_id) if p.product_id == sku),
            None,
        )
        par = None
        if product is not None:
            if row.department_id is not None:
                par = product.dept_par.get(row.department_id)
            if par is None:
                par = product.par
        return build_explain_request(
            row,
            par=par,
            last_delivery_at=self._last_delivery(report.venue_id, sku, report.window),
        )

    def _last_delivery(self, venue_id: str, sku: str, window: ReportWindow) -> date | None:
        days = [
            r.occurred_on
            for r in self._repository.receipts(venue_id, window)
            if r.sku == sku and r.occurred_on is not None
        ]
        return max(days) if days else None
