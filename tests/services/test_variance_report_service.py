"""
Tests for VarianceReportService.

Covers:
- Windowed sales and receipts from the repository
- Department filtering
- Data-quality grading from coverage
- Explanation context
- Log context binding
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from stock_engines.data_quality import DataQualityLevel
from stock_ingestion.snapshot import StockSnapshot
from stock_kernel.domain.dtos import CountRow, MovementRow, ProductMeta
from stock_kernel.exceptions import SnapshotNotFoundError
from stock_services.repository import CoverageStats, InMemorySnapshotRepository
from stock_services.variance_report_service import VarianceReportService


class TestBuildReport:
    def test_report_for_venue(self, repository, clock, engine_config):
        service = VarianceReportService(repository, clock=clock, config=engine_config)
        report = service.build_report("v1")

        assert report.venue_id == "v1"
        assert report.window.end == date(2025, 10, 20)
        assert report.window.start == date(2025, 10, 13)
        assert report.result.row_for("GIN-1L").variance == Decimal("-2")
        assert report.result.totals.shortage_value == Decimal("65.00")
        assert report.config_checksum == engine_config.checksum

    def test_data_quality_from_inferred_coverage(self, repository, clock, engine_config):
        report = VarianceReportService(repository, clock=clock, config=engine_config).build_report("v1")

        assert report.data_quality.level == DataQualityLevel.OK
        assert len(report.data_quality.flags) == 2

    def test_configured_coverage(self, sample_snapshot, clock, engine_config):
        repository = InMemorySnapshotRepository(
            {"v1": sample_snapshot},
            coverage={"v1": CoverageStats(
                areas_total=2, areas_completed=2, sales_docs=5,
                total_net_sales=Decimal("900"), spend_docs=1, total_spend=Decimal("300"),
            )},
        )
        report = VarianceReportService(repository, clock=clock, config=engine_config).build_report("v1")

        assert report.data_quality.level == DataQualityLevel.GOOD

    def test_department_filter(self, repository, clock, engine_config):
        service = VarianceReportService(repository, clock=clock, config=engine_config)

        assert len(service.build_report("v1", department_id="bar").result.rows) == 2
        assert service.build_report("v1", department_id="kitchen").result.rows == ()

    def test_window_excludes_old_movements(self, clock, engine_config):
        today = clock.now().date()
        snapshot = StockSnapshot(
            venue_id="v2",
            counts=(CountRow(sku="A", on_hand=5, expected=5, unit_cost="1"),),
            sales=(
                MovementRow(sku="A", qty=2, occurred_on=today - timedelta(days=1)),
                MovementRow(sku="A", qty=40, occurred_on=today - timedelta(days=30)),
            ),
        )
        repository = InMemorySnapshotRepository({"v2": snapshot})
        report = VarianceReportService(repository, clock=clock, config=engine_config).build_report("v2")

        assert report.result.rows[0].sales_qty == Decimal("2")

    def test_unknown_venue(self, repository, clock, engine_config):
        service = VarianceReportService(repository, clock=clock, config=engine_config)
        with pytest.raises(SnapshotNotFoundError) as exc_info:
            service.build_report("nowhere")
        assert exc_info.value.venue_id == "nowhere"

    def test_logs_carry_venue_context(self, repository, clock, engine_config, captured_logs):
        VarianceReportService(repository, clock=clock, config=engine_config).build_report(
            "v1", department_id="bar",
        )

        completed = next(r for r in captured_logs() if r["message"] == "variance_report_completed")
        assert completed["venue_id"] == "v1"
        assert completed["department_id"] == "bar"
        assert "run_id" in completed
        engine_log = next(r for r in captured_logs() if r["message"] == "unified_variance_completed")
        assert engine_log["run_id"] == completed["run_id"]

    def test_uses_packaged_config_by_default(self, repository, clock):
        report = VarianceReportService(repository, clock=clock).build_report("v1")
        assert report.config_checksum


class TestExplainContext:
    def setup_method(self):
        self.today = date(2025, 10, 20)
        snapshot = StockSnapshot(
            venue_id="v3",
            counts=(CountRow(sku="gin", name="Gin 1L", on_hand=8, expected=10,
                             unit_cost="32.5", department_id="bar"),),
            sales=(MovementRow(sku="gin", qty=3, occurred_on=self.today),),
            receipts=(
                MovementRow(sku="gin", qty=1, occurred_on=date(2025, 10, 15)),
                MovementRow(sku="gin", qty=1, occurred_on=date(2025, 10, 18)),
            ),
            products=(ProductMeta(product_id="gin", par=6, dept_par={"bar": 10}),),
        )
        self.repository = InMemorySnapshotRepository({"v3": snapshot})

    def test_context_for_sku(self, clock, engine_config):
        service = VarianceReportService(self.repository, clock=clock, config=engine_config)
        report = service.build_report("v3")
        request = service.explain_context(report, "gin")

        assert request.item_name == "Gin 1L"
        assert request.par == Decimal("10")
        assert request.last_delivery_at == date(2025, 10, 18)
        assert request.recent_received_qty == Decimal("2")
        assert request.missing == ()

    def test_unknown_sku(self, clock, engine_config):
        service = VarianceReportService(self.repository, clock=clock, config=engine_config)
        report = service.build_report("v3")
        assert service.explain_context(report, "rum") is None
