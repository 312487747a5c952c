"""
Config -> Engine Bridges.

Functions that convert an ``EngineConfig`` into the option objects the
engines accept.  These live in stock_config (the producer) because the
engines must never import stock_config.

Usage:
    from stock_config import get_active_config
    from stock_config.bridges import suggest_options

    config = get_active_config()
    options = suggest_options(config)
"""

from __future__ import annotations

from stock_config.schema import EngineConfig
from stock_engines.invoice_reconciliation import ReconcileOptions
from stock_engines.replenishment import SuggestOptions, UnitRounding
from stock_engines.variance import VarianceOptions
from stock_kernel.domain.dtos import ExpectedMode


def variance_options(config: EngineConfig) -> VarianceOptions:
    return VarianceOptions(
        expected_mode=ExpectedMode(config.variance.expected_mode),
        totals_places=config.variance.totals_places,
    )


def reconcile_options(config: EngineConfig) -> ReconcileOptions:
    return ReconcileOptions(price_tolerance_pct=config.reconciliation.price_tolerance_pct)


def suggest_options(config: EngineConfig) -> SuggestOptions:
    settings = config.replenishment
    return SuggestOptions(
        round_to_pack=settings.round_to_pack,
        default_par_if_missing=settings.default_par_if_missing,
        unit_rounding=UnitRounding(settings.unit_rounding),
    )
