"""
Configuration Validator (``stock_config.validator``).

Responsibility
--------------
Range-checks a parsed ``EngineConfig`` before it is handed to services.

Invariants enforced
-------------------
* Price tolerance is a number in [0, 1].
* Default PAR is a number >= 0.
* ``round_to_pack`` is a boolean.
* ``unit_rounding`` and ``expected_mode`` are known policy names.
* ``totals_places`` is an integer in [0, 6].

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> configuration
  MUST NOT be used.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from stock_config.schema import EngineConfig
from stock_engines.replenishment import UnitRounding
from stock_kernel.domain.dtos import ExpectedMode

_MAX_TOTALS_PLACES = 6


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)


def validate_engine_config(config: EngineConfig) -> ConfigValidationResult:
    """Validate every section of an engine config."""
    result = ConfigValidationResult()
    _validate_variance(config, result)
    _validate_reconciliation(config, result)
    _validate_replenishment(config, result)
    return result


def _validate_variance(config: EngineConfig, result: ConfigValidationResult) -> None:
    modes = {m.value for m in ExpectedMode}
    if config.variance.expected_mode not in modes:
        result.add_error(
            f"variance.expected_mode must be one of {sorted(modes)}, "
            f"got {config.variance.expected_mode!r}"
        )
    places = config.variance.totals_places
    if places is None or not 0 <= places <= _MAX_TOTALS_PLACES:
        result.add_error(
            f"variance.totals_places must be an integer in [0, {_MAX_TOTALS_PLACES}]"
        )


def _validate_reconciliation(config: EngineConfig, result: ConfigValidationResult) -> None:
    tolerance = config.reconciliation.price_tolerance_pct
    if tolerance is None or not Decimal(0) <= tolerance <= Decimal(1):
        result.add_error("reconciliation.price_tolerance_pct must be a number in [0, 1]")


def _validate_replenishment(config: EngineConfig, result: ConfigValidationResult) -> None:
    settings = config.replenishment
    if settings.default_par_if_missing is None or settings.default_par_if_missing < 0:
        result.add_error("replenishment.default_par_if_missing must be a number >= 0")
    if not isinstance(settings.round_to_pack, bool):
        result.add_error("replenishment.round_to_pack must be true or false")
    roundings = {r.value for r in UnitRounding}
    if settings.unit_rounding not in roundings:
        result.add_error(
            f"replenishment.unit_rounding must be one of {sorted(roundings)}, "
            f"got {settings.unit_rounding!r}"
        )
