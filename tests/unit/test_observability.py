"""Unit tests for structured logging utilities in ``observability``.

Validates the null handler, trace binding, and event construction behaviour
the runtime and adapters rely on.
"""

from __future__ import annotations

import logging

import pytest

from lib_typed_config import bind_trace_id, get_logger
from lib_typed_config.observability import TRACE_ID, log_debug, log_info, make_event


def test_null_handler_present() -> None:
    """Package logger should always include a NullHandler to avoid surprises."""

    logger = get_logger()
    assert logger.name == "lib_typed_config"
    assert any(isinstance(handler, logging.NullHandler) for handler in logger.handlers)


def test_trace_id_in_log(caplog: pytest.LogCaptureFixture) -> None:
    """Structured logs should include the bound trace identifier and contextual fields."""

    caplog.set_level(logging.INFO, logger="lib_typed_config")
    bind_trace_id("trace-123")
    try:
        log_info("config_loaded", layer="source: [type: map]", source=None)
    finally:
        bind_trace_id(None)
    record = caplog.records[-1]
    assert record.getMessage() == "config_loaded"
    assert getattr(record, "context") == {"trace_id": "trace-123", "layer": "source: [type: map]", "source": None}


def test_debug_entries_are_filtered_by_level(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="lib_typed_config")
    log_debug("layer_created", layer="root")
    assert not [record for record in caplog.records if record.getMessage() == "layer_created"]


def test_bind_trace_id_clears_context() -> None:
    """Clearing the trace ID should reset the context variable to None."""

    bind_trace_id("trace-temp")
    bind_trace_id(None)
    assert TRACE_ID.get() is None


def test_make_event_merges_optional_payload() -> None:
    """make_event should merge optional metadata without mutating base keys."""

    assert make_event("root", None, {"items": 3}) == {"layer": "root", "source": None, "items": 3}
    assert make_event("root", "[type: JSON]") == {"layer": "root", "source": "[type: JSON]"}
