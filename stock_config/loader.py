"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads the engine defaults YAML file and parses it into the typed
``stock_config.schema`` dataclasses.  This is internal tooling: the
single public entry point for runtime config is
``stock_config.get_active_config()``.

Invariants enforced
-------------------
* YAML is read with ``yaml.safe_load`` only.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing or unreadable file  -> ``ConfigLoadError``.
* Malformed YAML, or a top level that is not a mapping  -> ``ConfigLoadError``.
* Out-of-range values are NOT detected here; see ``validator.py``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    EngineConfig,
    ReconciliationSettings,
    ReplenishmentSettings,
    VarianceSettings,
)
from stock_kernel.domain.quantities import to_decimal
from stock_kernel.exceptions import ConfigLoadError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigLoadError: if the file cannot be read, is not valid YAML,
            or does not contain a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigLoadError(str(path), exc.strerror or str(exc)) from exc
    except yaml.YAMLError as exc:
        raise ConfigLoadError(str(path), f"invalid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(str(path), f"expected a mapping, got {type(data).__name__}")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigLoadError(name, f"section '{name}' must be a mapping")
    return section


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    number = to_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def parse_variance(data: dict[str, Any]) -> VarianceSettings:
    return VarianceSettings(
        expected_mode=str(data.get("expected_mode", "par")),
        totals_places=_int_or_none(data.get("totals_places", 2)),
    )


def parse_reconciliation(data: dict[str, Any]) -> ReconciliationSettings:
    return ReconciliationSettings(
        price_tolerance_pct=to_decimal(data.get("price_tolerance_pct", "0.02")),
    )


def parse_replenishment(data: dict[str, Any]) -> ReplenishmentSettings:
    return ReplenishmentSettings(
        default_par_if_missing=to_decimal(data.get("default_par_if_missing", 6)),
        round_to_pack=data.get("round_to_pack", True),
        unit_rounding=str(data.get("unit_rounding", "nearest")),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_engine_config(data: dict[str, Any], source_path: str | None = None) -> EngineConfig:
    """Parse a loaded YAML document into an ``EngineConfig``."""
    return EngineConfig(
        config_id=str(data.get("config_id", "stock-engine-defaults")),
        version=_int_or_none(data.get("version", 1)) or 1,
        variance=parse_variance(_section(data, "variance")),
        reconciliation=parse_reconciliation(_section(data, "reconciliation")),
        replenishment=parse_replenishment(_section(data, "replenishment")),
        checksum=compute_checksum(data),
        source_path=source_path,
    )


def load_engine_config(path: Path) -> EngineConfig:
    """Load and parse one engine config file (unvalidated)."""
    return parse_engine_config(load_yaml_file(path), source_path=str(path))
