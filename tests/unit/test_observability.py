"""Unit tests for structured logging utilities in ``observability``.

Validates the null handler, trace binding, event construction, and the events
emitted while a provider is built.
"""

from __future__ import annotations

import logging

import pytest

from lib_layered_yaml import bind_trace_id, get_logger, new_yaml
from lib_layered_yaml.observability import TRACE_ID, log_info, make_event


def test_null_handler_present() -> None:
    """Package logger should always include a NullHandler to avoid surprises."""

    logger = get_logger()
    assert any(isinstance(handler, logging.NullHandler) for handler in logger.handlers)


def test_trace_id_in_log(caplog: pytest.LogCaptureFixture) -> None:
    """Structured logs should include the bound trace identifier and contextual fields."""

    caplog.set_level(logging.INFO, logger="lib_layered_yaml")
    bind_trace_id("trace-123")
    try:
        log_info("merge-complete", provider="YAML", origin=None)
    finally:
        bind_trace_id(None)
    record = caplog.records[-1]
    assert getattr(record, "context") == {"trace_id": "trace-123", "provider": "YAML", "origin": None}


def test_bind_trace_id_clears_context() -> None:
    """Clearing the trace ID should reset the context variable to None."""

    bind_trace_id("trace-temp")
    bind_trace_id(None)
    assert TRACE_ID.get() is None


def test_make_event_merges_optional_payload() -> None:
    """make_event should merge optional metadata without mutating base keys."""

    assert make_event("YAML", "base.yaml", {"keys": 3}) == {"provider": "YAML", "origin": "base.yaml", "keys": 3}


def test_provider_build_is_logged_without_variable_values(caplog: pytest.LogCaptureFixture) -> None:
    """Construction logs report counts, never expanded secrets."""

    caplog.set_level(logging.DEBUG, logger="lib_layered_yaml")
    new_yaml("password: ${SECRET}\n", name="secrets", lookup={"SECRET": "hunter2"}.get)
    messages = [record.getMessage() for record in caplog.records]
    assert "provider_built" in messages
    assert all("hunter2" not in repr(getattr(record, "context", {})) for record in caplog.records)
