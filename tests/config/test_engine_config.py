"""
Tests for engine configuration loading, validation and bridging.

Covers:
- Packaged defaults
- Override files and partial sections
- Load and validation failures
- Checksums and the STOCK_CONFIG_TRACE record
- Config -> engine option bridges
"""

from decimal import Decimal

import pytest

from stock_config import DEFAULT_CONFIG_PATH, get_active_config
from stock_config.bridges import reconcile_options, suggest_options, variance_options
from stock_config.loader import compute_checksum, load_yaml_file, parse_engine_config
from stock_config.validator import validate_engine_config
from stock_engines.replenishment import UnitRounding
from stock_kernel.domain.dtos import ExpectedMode
from stock_kernel.exceptions import ConfigLoadError, ConfigValidationError


def _write(tmp_path, text, name="engine.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestDefaults:
    def test_packaged_defaults(self):
        config = get_active_config()

        assert config.config_id == "stock-engine-defaults"
        assert config.version == 1
        assert config.variance.expected_mode == "par"
        assert config.variance.totals_places == 2
        assert config.reconciliation.price_tolerance_pct == Decimal("0.02")
        assert config.replenishment.default_par_if_missing == Decimal("6")
        assert config.replenishment.round_to_pack is True
        assert config.replenishment.unit_rounding == "nearest"
        assert config.source_path == str(DEFAULT_CONFIG_PATH)

    def test_defaults_validate(self):
        assert validate_engine_config(get_active_config()).is_valid

    def test_checksum_stable(self):
        assert get_active_config().checksum == get_active_config().checksum
        assert len(get_active_config().checksum) == 64

    def test_trace_emitted(self, captured_logs):
        config = get_active_config()

        trace = next(r for r in captured_logs() if r["message"] == "STOCK_CONFIG_TRACE")
        assert trace["config_id"] == config.config_id
        assert trace["config_version"] == 1
        assert trace["checksum"] == config.checksum


class TestOverrides:
    def test_override_file(self, tmp_path):
        path = _write(tmp_path, """
config_id: bar-group
version: 3
variance:
  expected_mode: moving_avg
  totals_places: 3
reconciliation:
  price_tolerance_pct: 0.05
replenishment:
  default_par_if_missing: 2
  round_to_pack: false
  unit_rounding: up
""")
        config = get_active_config(path)

        assert config.config_id == "bar-group"
        assert config.version == 3
        assert config.variance.expected_mode == "moving_avg"
        assert config.reconciliation.price_tolerance_pct == Decimal("0.05")
        assert config.replenishment.round_to_pack is False

    def test_missing_sections_take_defaults(self, tmp_path):
        path = _write(tmp_path, "config_id: minimal\n")
        config = get_active_config(path)

        assert config.variance.totals_places == 2
        assert config.reconciliation.price_tolerance_pct == Decimal("0.02")
        assert config.replenishment.default_par_if_missing == Decimal("6")

    def test_empty_file_is_defaults(self, tmp_path):
        config = get_active_config(_write(tmp_path, ""))
        assert config.config_id == "stock-engine-defaults"

    def test_checksum_tracks_content(self, tmp_path):
        a = get_active_config(_write(tmp_path, "config_id: a\n", "a.yaml"))
        b = get_active_config(_write(tmp_path, "config_id: b\n", "b.yaml"))
        assert a.checksum != b.checksum

    def test_compute_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestLoadFailures:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigLoadError) as exc_info:
            get_active_config(tmp_path / "absent.yaml")
        assert exc_info.value.code == "CONFIG_LOAD_FAILED"

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigLoadError):
            load_yaml_file(_write(tmp_path, "variance: [unclosed\n"))

    def test_non_mapping_document(self, tmp_path):
        with pytest.raises(ConfigLoadError) as exc_info:
            load_yaml_file(_write(tmp_path, "- one\n- two\n"))
        assert "expected a mapping" in exc_info.value.reason

    def test_non_mapping_section(self):
        with pytest.raises(ConfigLoadError):
            parse_engine_config({"variance": "par"})


class TestValidation:
    @pytest.mark.parametrize("section,body,fragment", [
        ("variance", "expected_mode: guesswork", "variance.expected_mode"),
        ("variance", "totals_places: 9", "variance.totals_places"),
        ("variance", "totals_places: two", "variance.totals_places"),
        ("reconciliation", "price_tolerance_pct: 1.5", "price_tolerance_pct"),
        ("reconciliation", "price_tolerance_pct: lots", "price_tolerance_pct"),
        ("replenishment", "default_par_if_missing: -1", "default_par_if_missing"),
        ("replenishment", "round_to_pack: sometimes", "round_to_pack"),
        ("replenishment", "unit_rounding: down", "unit_rounding"),
    ])
    def test_invalid_values_rejected(self, tmp_path, section, body, fragment):
        path = _write(tmp_path, f"{section}:\n  {body}\n")
        with pytest.raises(ConfigValidationError) as exc_info:
            get_active_config(path)
        assert any(fragment in error for error in exc_info.value.errors)

    def test_all_errors_reported(self, tmp_path):
        path = _write(tmp_path, """
variance:
  expected_mode: guesswork
replenishment:
  unit_rounding: down
""")
        with pytest.raises(ConfigValidationError) as exc_info:
            get_active_config(path)
        assert len(exc_info.value.errors) == 2


class TestBridges:
    def test_default_options(self, engine_config):
        assert variance_options(engine_config).expected_mode is ExpectedMode.PAR
        assert reconcile_options(engine_config).tolerance == Decimal("0.02")
        opts = suggest_options(engine_config)
        assert opts.round_to_pack is True
        assert opts.default_par_if_missing == Decimal("6")
        assert opts.unit_rounding is UnitRounding.NEAREST

    def test_override_options(self, tmp_path):
        config = get_active_config(_write(tmp_path, """
variance:
  expected_mode: sales_driven
  totals_places: 0
replenishment:
  unit_rounding: up
"""))
        assert variance_options(config).expected_mode is ExpectedMode.SALES_DRIVEN
        assert variance_options(config).totals_places == 0
        assert suggest_options(config).unit_rounding is UnitRounding.UP
