"""
EngineConfig schema.

Typed, frozen view of the engine defaults YAML.  Values are parsed but
not range-checked here; ``stock_config.validator`` owns that.  Numeric
fields that could not be parsed are None so the validator can report
them by name.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class VarianceSettings:
    expected_mode: str = "par"
    totals_places: int | None = 2


@dataclass(frozen=True)
class ReconciliationSettings:
    price_tolerance_pct: Decimal | None = Decimal("0.02")


@dataclass(frozen=True)
class ReplenishmentSettings:
    default_par_if_missing: Decimal | None = Decimal("6")
    round_to_pack: bool = True
    unit_rounding: str = "nearest"


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine defaults, as loaded.

    ``checksum`` is the SHA-256 of the canonical JSON of the source
    document, so two configs with equal checksums drive identical runs.
    """

    config_id: str
    version: int
    variance: VarianceSettings
    reconciliation: ReconciliationSettings
    replenishment: ReplenishmentSettings
    checksum: str = ""
    source_path: str | None = None
