"""Tests for the structured log format."""

import logging

from daybook.core.logging import StructuredFormatter, get_logger, log_with_context


def _record(msg, **extra):
    record = logging.LogRecord("daybook.core.test", logging.WARNING, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_request_id_and_context_are_rendered():
    line = StructuredFormatter().format(
        _record("Action failed", request_id="abc123", context={"action_kind": "create_task"})
    )

    assert "level=WARNING" in line
    assert "logger=daybook.core.test" in line
    assert "request_id=abc123" in line
    assert 'msg="Action failed"' in line
    assert line.endswith("action_kind=create_task")


def test_missing_request_id_is_omitted():
    line = StructuredFormatter().format(_record("hello"))

    assert "request_id" not in line
    assert "msg=hello" in line


def test_loggers_share_the_package_handler():
    logger = get_logger("daybook.core.retrieval")
    outside = get_logger("tests.helper")

    assert logger.name == "daybook.core.retrieval"
    assert outside.name == "daybook.tests.helper"
    assert logging.getLogger("daybook").handlers


def test_log_with_context_lifts_request_id():
    records = []

    class _Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    logger = get_logger("daybook.core.test_context")
    handler = _Collect()
    logger.addHandler(handler)
    try:
        log_with_context(logger, logging.WARNING, "boom", request_id="r1", action_index=2)
    finally:
        logger.removeHandler(handler)

    assert records[0].request_id == "r1"
    assert records[0].context == {"action_index": 2}
