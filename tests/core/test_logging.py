from __future__ import annotations

import logging

from lms.core.logging import _ContainerFormatter, setup_logging
from lms.middleware.request_context import (
    RequestContextFilter,
    actor_id_var,
    request_id_var,
)


def _record(level: int = logging.INFO, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="lms.store.entity_store",
        level=level,
        pathname="entity_store.py",
        lineno=7,
        msg="hello",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_uvicorn_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING


def test_setup_logging_allows_uvicorn_at_error() -> None:
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_setup_logging_attaches_filters_to_handler() -> None:
    context_filter = RequestContextFilter()
    setup_logging("info", filters=[context_filter])
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert context_filter in handlers[0].filters


def test_context_filter_copies_context_vars() -> None:
    req_token = request_id_var.set("req-42")
    actor_token = actor_id_var.set("s1")
    try:
        record = _record()
        assert RequestContextFilter().filter(record) is True
    finally:
        request_id_var.reset(req_token)
        actor_id_var.reset(actor_token)
    assert record.request_id == "req-42"  # type: ignore[attr-defined]
    assert record.actor_id == "s1"  # type: ignore[attr-defined]


def test_context_filter_keeps_explicit_actor_id() -> None:
    actor_token = actor_id_var.set("s1")
    try:
        record = _record(actor_id="t9")
        RequestContextFilter().filter(record)
    finally:
        actor_id_var.reset(actor_token)
    assert record.actor_id == "t9"  # type: ignore[attr-defined]


def test_context_filter_defaults_outside_a_request() -> None:
    record = _record()
    RequestContextFilter().filter(record)
    assert record.request_id == "-"  # type: ignore[attr-defined]
    assert record.actor_id is None  # type: ignore[attr-defined]


def test_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(_record(logging.INFO))
    assert "hello" in output
    assert "[entity_store.py:" not in output


def test_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.WARNING))
    assert "hello" in output
    assert "[entity_store.py:7]" in output


def test_formatter_appends_context_tags() -> None:
    output = _ContainerFormatter().format(
        _record(logging.WARNING, request_id="req-1", actor_id="s1", collection="progress")
    )
    assert "request_id=req-1 actor_id=s1 collection=progress" in output


def test_formatter_skips_placeholder_request_id() -> None:
    output = _ContainerFormatter().format(_record(request_id="-"))
    assert "request_id" not in output
