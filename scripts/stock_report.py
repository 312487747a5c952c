#!/usr/bin/env python3
"""
Run the stock engines over a JSON snapshot file.

Loads the snapshot through the ingestion layer, resolves the engine
configuration, runs one report and prints it as JSON.  Optionally writes
the result to an XLSX workbook.

Usage:
    python3 scripts/stock_report.py variance  snapshot.json
    python3 scripts/stock_report.py variance  snapshot.json --department bar
    python3 scripts/stock_report.py reconcile snapshot.json --tolerance 0.05
    python3 scripts/stock_report.py suggest   snapshot.json --xlsx out.xlsx
    python3 scripts/stock_report.py suggest   snapshot.json --config engine.yaml --log-level INFO
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from stock_config import get_active_config
from stock_ingestion.snapshot import load_snapshot
from stock_kernel.domain.clock import DeterministicClock, SystemClock
from stock_kernel.domain.quantities import to_decimal
from stock_kernel.exceptions import StockKernelError
from stock_kernel.logging_config import configure_logging, get_logger
from stock_services import (
    InMemorySnapshotRepository,
    InvoiceReconciliationService,
    SuggestedOrderService,
    VarianceReportService,
    export_workbook,
    to_jsonable,
)

logger = get_logger("scripts.stock_report")

VENUE_FALLBACK = "venue"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stock variance and replenishment reports")
    parser.add_argument("command", choices=("variance", "reconcile", "suggest"))
    parser.add_argument("snapshot", type=Path, help="JSON snapshot file")
    parser.add_argument("--config", type=Path, default=None,
                        help="Engine config YAML (defaults to the packaged defaults)")
    parser.add_argument("--department", default=None,
                        help="variance: restrict counts to one department")
    parser.add_argument("--window-days", type=int, default=7,
                        help="variance: trailing sales/receipt window in days")
    parser.add_argument("--as-of", default=None,
                        help="variance: window end date (YYYY-MM-DD), default today")
    parser.add_argument("--tolerance", default=None,
                        help="reconcile: price tolerance fraction, overrides config")
    parser.add_argument("--xlsx", type=Path, default=None, help="Also write an XLSX workbook")
    parser.add_argument("--log-level", default="WARNING",
                        choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(level=getattr(logging, args.log_level), stream=sys.stderr)

    try:
        config = get_active_config(args.config)
        snapshot = load_snapshot(args.snapshot)
        venue_id = snapshot.venue_id or VENUE_FALLBACK
        repository = InMemorySnapshotRepository({venue_id: snapshot})

        if args.command == "variance":
            clock = SystemClock()
            if args.as_of:
                clock = DeterministicClock(datetime.fromisoformat(args.as_of))
            service = VarianceReportService(
                repository, clock=clock, config=config, window_days=args.window_days,
            )
            report = service.build_report(venue_id, department_id=args.department)
            output, xlsx = report, {"variance": report.result}

        elif args.command == "reconcile":
            if args.tolerance is not None:
                tolerance = to_decimal(args.tolerance)
                if tolerance is None:
                    print(f"Invalid --tolerance: {args.tolerance}", file=sys.stderr)
                    return 2
                config = replace(
                    config,
                    reconciliation=replace(config.reconciliation, price_tolerance_pct=tolerance),
                )
            service = InvoiceReconciliationService(repository, config=config)
            buckets = service.reconcile(venue_id, snapshot.invoice_lines)
            output, xlsx = buckets, {"reconciliation": buckets}

        else:
            plan = SuggestedOrderService(repository, config=config).suggest(venue_id)
            output, xlsx = plan, {"suggestions": plan.by_department}

        print(json.dumps(to_jsonable(output), indent=2))
        if args.xlsx is not None:
            export_workbook(args.xlsx, **xlsx)
    except StockKernelError as exc:
        logger.error("stock_report_failed", extra={"error_code": exc.code})
        print(f"{exc.code}: {exc}", file=sys.stderr)
        return 1
    except FileNotFoundError as exc:
        print(f"File not found: {exc.filename}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
