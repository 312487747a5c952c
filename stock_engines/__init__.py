"""
Module: stock_engines
Responsibility:
    Package entrypoint that re-exports all public symbols from the pure
    calculation engine sub-modules.  This is the canonical import surface
    for higher layers (stock_services, scripts).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel (and sibling engine modules).
    MUST NOT import stock_config, stock_ingestion or stock_services.

Invariants enforced:
    - Purity: engines never read the clock, the environment or storage.
      Every input, including options, is passed in explicitly.
    - Decimal-only arithmetic: quantities and money use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - InvalidInputError (stock_kernel.exceptions) for structurally
      malformed arguments.  Per-row anomalies are data, never raised.

Audit relevance:
    Every engine invocation is traced via the ``@traced_engine`` decorator
    (see ``stock_engines.tracer``), emitting STOCK_ENGINE_TRACE log
    records that include engine name, version, input fingerprint, and
    duration.

Usage:
    from stock_engines import (
        VarianceCalculator,
        InvoiceReconciler,
        ReplenishmentSuggester,
        classify_line,
    )
"""

from stock_kernel.logging_config import get_logger

logger = get_logger("engines")

from stock_engines.classifier import (
    CHARGE_RULES,
    classify_line,
    classify_name,
    effective_line_type,
    line_total,
)
from stock_engines.data_quality import (
    DataQualityAssessment,
    DataQualityInputs,
    DataQualityLevel,
    assess_data_quality,
)
from stock_engines.explain import ExplainRequest, build_explain_request
from stock_engines.invoice_reconciliation import (
    DEFAULT_PRICE_TOLERANCE_PCT,
    ChargeBucket,
    ChargeSummary,
    InvoiceReconciler,
    MatchedLine,
    MatchKey,
    MissingLine,
    PriceVarianceLine,
    QtyVarianceLine,
    ReconcileBuckets,
    ReconcileFlags,
    ReconcileOptions,
    ReconcileTotals,
    normalize_name,
    price_delta_pct,
    reconcile_invoice,
)
from stock_engines.replenishment import (
    UNASSIGNED_ID,
    UNASSIGNED_NAME,
    DraftPlan,
    DraftPlanEntry,
    ReplenishmentSuggester,
    SuggestedLine,
    SuggestionResult,
    SuggestOptions,
    SupplierBucket,
    UnitRounding,
    build_suggested_orders,
    plan_drafts,
    resolve_par,
    roll_up_departments,
    supplier_abbreviation,
)
from stock_engines.tracer import compute_input_fingerprint, traced_engine
from stock_engines.variance import (
    UnifiedResult,
    UnifiedResultRow,
    UnifiedTotals,
    VarianceCalculator,
    VarianceOptions,
    burdened_unit_cost,
    compute_unified,
)

__all__ = [
    # Classifier
    "CHARGE_RULES",
    "classify_line",
    "classify_name",
    "effective_line_type",
    "line_total",
    # Data quality
    "DataQualityAssessment",
    "DataQualityInputs",
    "DataQualityLevel",
    "assess_data_quality",
    # Explain
    "ExplainRequest",
    "build_explain_request",
    # Invoice reconciliation
    "DEFAULT_PRICE_TOLERANCE_PCT",
    "ChargeBucket",
    "ChargeSummary",
    "InvoiceReconciler",
    "MatchedLine",
    "MatchKey",
    "MissingLine",
    "PriceVarianceLine",
    "QtyVarianceLine",
    "ReconcileBuckets",
    "ReconcileFlags",
    "ReconcileOptions",
    "ReconcileTotals",
    "normalize_name",
    "price_delta_pct",
    "reconcile_invoice",
    # Replenishment
    "UNASSIGNED_ID",
    "UNASSIGNED_NAME",
    "DraftPlan",
    "DraftPlanEntry",
    "ReplenishmentSuggester",
    "SuggestedLine",
    "SuggestionResult",
    "SuggestOptions",
    "SupplierBucket",
    "UnitRounding",
    "build_suggested_orders",
    "plan_drafts",
    "resolve_par",
    "roll_up_departments",
    "supplier_abbreviation",
    # Tracer
    "compute_input_fingerprint",
    "traced_engine",
    # Variance
    "UnifiedResult",
    "UnifiedResultRow",
    "UnifiedTotals",
    "VarianceCalculator",
    "VarianceOptions",
    "burdened_unit_cost",
    "compute_unified",
]
