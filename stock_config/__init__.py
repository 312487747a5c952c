"""
stock_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Engines never read configuration; services
    resolve it here and pass engine options in explicitly (see
    ``stock_config.bridges``).

Architecture position:
    Configuration -- YAML-driven defaults, validated at load time.
    This package sits above ``stock_kernel`` / ``stock_engines`` and below
    ``stock_services``.  Engines MUST NEVER import from ``stock_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Validation: a config that fails validation is never returned.
    - Deterministic checksum: the same YAML always yields the same checksum.

Failure modes:
    - ``ConfigLoadError`` -- file missing, unreadable or malformed.
    - ``ConfigValidationError`` -- values out of range.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``STOCK_CONFIG_TRACE`` log entry containing the config_id, version,
    checksum and source path, tying every report to the configuration
    that produced it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stock_config.loader import load_engine_config
from stock_config.schema import EngineConfig
from stock_config.validator import validate_engine_config
from stock_kernel.exceptions import ConfigValidationError

_logger = logging.getLogger("stock_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "engine.yaml"


def get_active_config(config_path: Path | str | None = None) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to an engine config YAML file.
            Defaults to the packaged ``defaults/engine.yaml``.

    Returns:
        A validated, frozen ``EngineConfig``.

    Raises:
        ConfigLoadError: If the file cannot be loaded.
        ConfigValidationError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_engine_config(path)

    validation = validate_engine_config(config)
    if not validation.is_valid:
        raise ConfigValidationError(validation.errors)

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source_path": config.source_path,
        },
    )
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "EngineConfig", "get_active_config"]
