"""Tests for cashflow_kernel.logging_config."""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from cashflow_kernel.domain.records import Collection
from cashflow_kernel.exceptions import StorageError
from cashflow_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def stream():
    """Fresh structured logging into a StringIO; session config restored after."""
    reset_logging()
    out = StringIO()
    configure_logging(level=logging.DEBUG, stream=out)
    yield out
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())


def _lines(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestStructuredOutput:
    def test_fixed_keys(self, stream):
        get_logger("domain.allocation").info("totals_computed")

        (line,) = _lines(stream)
        assert line["level"] == "INFO"
        assert line["logger"] == "cashflow_kernel.domain.allocation"
        assert line["message"] == "totals_computed"
        assert line["ts"].endswith("+00:00")

    def test_extra_values_are_json_safe(self, stream):
        get_logger("t").info(
            "record_appended",
            extra={"amount": Decimal("-12.50"), "collection_enum": Collection.OUTFLOWS},
        )

        line = _lines(stream)[0]
        assert line["amount"] == "-12.50"
        assert line["collection_enum"] == "outflows"

    def test_context_fields_and_precedence(self, stream):
        LogContext.set(record_id="from-context", collection="inflows")
        get_logger("t").info("x", extra={"record_id": "from-extra", "count": 2})

        line = _lines(stream)[0]
        assert line["record_id"] == "from-context"
        assert line["collection"] == "inflows"
        assert line["count"] == 2

    def test_kernel_error_fields(self, stream):
        try:
            raise StorageError("cashflow.records.inflows", "disk full")
        except StorageError:
            get_logger("t").error("kv_write_failed", exc_info=True)

        line = _lines(stream)[0]
        assert line["exc_type"] == "StorageError"
        assert line["exc_code"] == "STORAGE_ERROR"
        assert line["exc_key"] == "cashflow.records.inflows"
        assert line["exc_reason"] == "disk full"
        assert "Traceback" in line["traceback"]


class TestLogContext:
    def test_bind_restores_previous_fields(self):
        LogContext.set(op_id="outer")

        with LogContext.bind(op_id="inner", record_id="r-1"):
            assert LogContext.get_all() == {"op_id": "inner", "record_id": "r-1"}

        assert LogContext.get_all() == {"op_id": "outer"}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(collection="outflows"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_none_leaves_field_unchanged(self):
        LogContext.set(actor_id="maria")
        LogContext.set(actor_id=None, correlation_id="c-1")
        assert LogContext.get_all() == {"actor_id": "maria", "correlation_id": "c-1"}

    def test_unknown_field_refused(self):
        with pytest.raises(TypeError):
            LogContext.set(user="maria")


class TestConfigureLogging:
    def test_second_call_is_noop(self, stream):
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("cashflow_kernel").handlers) == 1

    def test_level_by_name(self):
        reset_logging()
        out = StringIO()
        try:
            configure_logging(level="warning", stream=out)
            get_logger("t").info("hidden")
            get_logger("t").warning("shown")
            assert [line["message"] for line in _lines(out)] == ["shown"]
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG, stream=StringIO())

    def test_unknown_level_refused(self):
        reset_logging()
        try:
            with pytest.raises(ValueError):
                configure_logging(level="chatty", stream=StringIO())
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG, stream=StringIO())

    def test_reset_removes_handlers(self, stream):
        reset_logging()
        root = logging.getLogger("cashflow_kernel")
        assert root.handlers == []
        assert root.propagate is True
