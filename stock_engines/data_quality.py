"""
stock_engines.data_quality -- Honest trust flags for a variance report.

Responsibility:
    Turn raw coverage statistics (stock-take areas, sales documents,
    invoices, detected shrinkage) into human-readable flags and a single
    trust level for the report they accompany.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ``stock_services.variance_report_service``.

Invariants enforced:
    - Always returns at least one flag; a clean report gets a single
      "looks good" flag.
    - Level is LIMITED whenever stock coverage, sales or invoices are
      absent outright; otherwise OK when more than one flag fired, else
      GOOD.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from stock_kernel.domain.quantities import ZERO
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.data_quality")

DATA_LOOKS_GOOD = "Data looks good: this report is based on complete, recent information."


class DataQualityLevel(str, Enum):
    GOOD = "good"
    OK = "ok"
    LIMITED = "limited"


@dataclass(frozen=True)
class DataQualityInputs:
    """Coverage statistics for the reporting window."""

    areas_total: int = 0
    areas_completed: int = 0
    sales_docs: int = 0
    total_net_sales: Decimal | None = None
    spend_docs: int = 0
    total_spend: Decimal | None = None
    total_shrink_value: Decimal | None = None


@dataclass(frozen=True)
class DataQualityAssessment:
    level: DataQualityLevel
    flags: tuple[str, ...]


def _stock_coverage_flag(inputs: DataQualityInputs) -> str | None:
    if inputs.areas_total == 0:
        return "No areas configured yet; stock coverage is incomplete."
    if inputs.areas_completed == 0:
        return "No areas fully completed in this window; stocktake still in progress."
    if inputs.areas_completed < inputs.areas_total:
        return (
            f"{inputs.areas_completed}/{inputs.areas_total} areas completed; "
            "results may not reflect the whole venue."
        )
    return None


def assess_data_quality(inputs: DataQualityInputs) -> DataQualityAssessment:
    """Flag what limits the trustworthiness of a report and grade it."""
    flags: list[str] = []

    coverage = _stock_coverage_flag(inputs)
    if coverage:
        flags.append(coverage)

    if inputs.sales_docs == 0:
        flags.append("No sales records found for this period; GP and performance are limited.")
    elif inputs.total_net_sales is None:
        flags.append("Sales records exist, but no net sales value was found.")

    if inputs.spend_docs == 0:
        flags.append("No invoices imported for this period; landed GP is estimated only.")
    elif inputs.total_spend is None:
        flags.append("Invoices exist, but no spend total was found.")

    if inputs.total_shrink_value is not None and inputs.total_shrink_value > ZERO:
        flags.append(
            "Shrinkage detected this period; review variance to see which "
            "products are leaking margin."
        )

    if not flags:
        flags.append(DATA_LOOKS_GOOD)

    if (
        inputs.areas_total == 0
        or inputs.areas_completed == 0
        or inputs.sales_docs == 0
        or inputs.spend_docs == 0
    ):
        level = DataQualityLevel.LIMITED
    elif len(flags) > 1:
        level = DataQualityLevel.OK
    else:
        level = DataQualityLevel.GOOD

    logger.debug("data_quality_assessed", extra={
        "level": level.value,
        "flag_count": len(flags),
    })
    return DataQualityAssessment(level=level, flags=tuple(flags))
