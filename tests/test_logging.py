"""Tests for stock_kernel.logging_config: JSON lines, context binding, setup."""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from io import StringIO

import pytest

from stock_kernel.domain.dtos import ExpectedMode
from stock_kernel.exceptions import InvalidInputError, SnapshotNotFoundError
from stock_kernel.logging_config import (
    CONTEXT_FIELDS,
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _isolated_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def log_lines():
    """Install the JSON handler on a StringIO and return a reader for its lines."""
    stream = StringIO()
    configure_logging(level=logging.DEBUG, stream=stream)

    def read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return read


class TestJsonLines:
    def test_envelope(self, log_lines):
        get_logger("engines.variance").info("unified_variance_started")

        [record] = log_lines()
        assert record["message"] == "unified_variance_started"
        assert record["level"] == "INFO"
        assert record["logger"] == "stock_kernel.engines.variance"
        assert record["ts"].endswith("+00:00")

    def test_extra_fields_and_types(self, log_lines):
        get_logger("services").info("suggested", extra={
            "lines": 4,
            "bucket": "Acme Spirits",
            "shrink_value": Decimal("97.50"),
            "expected_mode": ExpectedMode.MOVING_AVG,
        })

        [record] = log_lines()
        assert record["lines"] == 4
        assert record["bucket"] == "Acme Spirits"
        assert record["shrink_value"] == "97.50"
        assert record["expected_mode"] == "moving_avg"

    def test_bound_context_appears_on_records(self, log_lines):
        logger = get_logger("services")
        with LogContext.bind(venue_id="v1", run_id="run-7"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = log_lines()
        assert inside["venue_id"] == "v1"
        assert inside["run_id"] == "run-7"
        assert "venue_id" not in outside
        assert "run_id" not in outside

    def test_plain_exception(self, log_lines):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("scripts").error("failed", exc_info=True)

        [record] = log_lines()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_stock_error_code_and_attributes(self, log_lines):
        try:
            raise InvalidInputError("counts", "sequence of CountRow", "int")
        except InvalidInputError:
            get_logger("engines").error("engine_input_error", exc_info=True)

        [record] = log_lines()
        assert record["exc_code"] == "INVALID_INPUT"
        assert record["exc_argument"] == "counts"
        assert record["exc_received"] == "int"

    def test_snapshot_not_found_carries_venue(self, log_lines):
        try:
            raise SnapshotNotFoundError("v9")
        except SnapshotNotFoundError:
            get_logger("services").warning("no_snapshot", exc_info=True)

        [record] = log_lines()
        assert record["exc_code"] == "SNAPSHOT_NOT_FOUND"
        assert record["exc_venue_id"] == "v9"

    def test_level_filtering(self):
        stream = StringIO()
        configure_logging(stream=stream)
        logger = get_logger("engines")
        logger.debug("dropped")
        logger.warning("kept")

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["message"] == "kept"


class TestLogContext:
    def test_set_ignores_none_and_unknown(self):
        LogContext.set(correlation_id="req-1", venue_id=None, shelf="top")
        assert LogContext.get_all() == {"correlation_id": "req-1"}

    def test_set_is_additive(self):
        LogContext.set(correlation_id="req-1")
        LogContext.set(department_id="bar")
        assert LogContext.get_all() == {"correlation_id": "req-1", "department_id": "bar"}

    def test_every_field_round_trips(self):
        LogContext.set(**{name: f"{name}-value" for name in CONTEXT_FIELDS})
        assert LogContext.get_all() == {name: f"{name}-value" for name in CONTEXT_FIELDS}

    def test_clear(self):
        LogContext.set(correlation_id="req-1", run_id="r")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_nested_bind_restores_outer_values(self):
        LogContext.set(venue_id="outer")
        with LogContext.bind(venue_id="inner", department_id="bar"):
            assert LogContext.get_all() == {"venue_id": "inner", "department_id": "bar"}
        assert LogContext.get_all() == {"venue_id": "outer"}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(run_id="temp"):
                raise RuntimeError("engine failed")
        assert "run_id" not in LogContext.get_all()

    def test_context_is_per_thread(self):
        LogContext.set(venue_id="main")

        def worker(label: str) -> dict[str, str]:
            with LogContext.bind(correlation_id=label):
                return LogContext.get_all()

        with ThreadPoolExecutor(max_workers=2) as executor:
            seen = list(executor.map(worker, ["a", "b"]))

        assert seen == [{"correlation_id": "a"}, {"correlation_id": "b"}]
        assert LogContext.get_all() == {"venue_id": "main"}


class TestConfigureLogging:
    def test_second_call_is_ignored(self):
        first = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=logging.StreamHandler(StringIO()))

        handlers = logging.getLogger("stock_kernel").handlers
        assert handlers == [first]
        assert isinstance(first.formatter, StructuredFormatter)

    def test_reset_allows_reconfiguration(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        reset_logging()
        replacement = logging.StreamHandler(StringIO())
        configure_logging(handler=replacement)

        assert logging.getLogger("stock_kernel").handlers == [replacement]

    def test_foreign_handlers_survive_reset(self):
        foreign = logging.NullHandler()
        root = logging.getLogger("stock_kernel")
        root.addHandler(foreign)
        try:
            configure_logging(handler=logging.StreamHandler(StringIO()))
            reset_logging()
            assert root.handlers == [foreign]
        finally:
            root.removeHandler(foreign)

    def test_records_do_not_reach_python_root(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("stock_kernel").propagate is False
