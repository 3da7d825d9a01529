"""Tests for structured logging pipeline utilities."""

from __future__ import annotations

import io
import json
import logging
from logging.handlers import QueueListener
from queue import Queue
from typing import Any, cast

import pytest

from did_v1 import logging_pipeline


def _capture(listener: QueueListener) -> io.StringIO:
    stream_handler = cast(logging.StreamHandler[Any], listener.handlers[0])
    buffer = io.StringIO()
    stream_handler.setStream(buffer)
    return buffer


def test_configure_structured_logging_emits_json() -> None:
    """Configure structured logging and verify JSON payloads are emitted."""

    logger = logging.getLogger("did-v1-test.json")
    listener = logging_pipeline.configure_structured_logging(
        logger, session_id="session-123", level=logging.INFO
    )
    buffer = _capture(listener)

    logger.info(
        "Sending to ledger",
        extra={"did": "did:v1:test:nym:z6Mk", "operation_type": "CreateWebLedgerRecord", "url": "u"},
    )
    logging_pipeline.shutdown_listeners([listener])

    payload = json.loads(buffer.getvalue().strip())
    assert payload["message"] == "Sending to ledger"
    assert payload["session_id"] == "session-123"
    assert payload["level"] == "INFO"
    assert payload["did"] == "did:v1:test:nym:z6Mk"
    assert payload["operation_type"] == "CreateWebLedgerRecord"
    assert payload["context"] == {"url": "u"}


def test_configure_structured_logging_generates_session_id() -> None:
    """When the session id is omitted a random identifier is emitted."""

    logger = logging.getLogger("did-v1-test.session")
    listener = logging_pipeline.configure_structured_logging(logger)
    buffer = _capture(listener)

    logger.info("auto-session")
    logging_pipeline.shutdown_listeners([listener])

    payload = json.loads(buffer.getvalue())
    assert isinstance(payload["session_id"], str)
    assert payload["session_id"]
    assert "did" not in payload


def test_exceptions_are_rendered() -> None:
    logger = logging.getLogger("did-v1-test.exc")
    listener = logging_pipeline.configure_structured_logging(logger)
    buffer = _capture(listener)

    try:
        raise RuntimeError("ledger down")
    except RuntimeError:
        logger.exception("Ledger transport error")
    logging_pipeline.shutdown_listeners([listener])

    payload = json.loads(buffer.getvalue())
    assert "RuntimeError: ledger down" in payload["exception"]


def test_full_queue_drops_records() -> None:
    record_queue: Queue[logging.LogRecord] = Queue(maxsize=1)
    handler = logging_pipeline.BoundedQueueHandler(record_queue)
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", (), None)

    handler.emit(record)
    handler.emit(record)

    assert record_queue.qsize() == 1


def test_shutdown_listeners_logs_failures(caplog: pytest.LogCaptureFixture) -> None:
    """Listener shutdown failures should emit warnings."""

    class _FailingListener(QueueListener):
        def __init__(self) -> None:
            super().__init__(Queue(), logging.StreamHandler())

        def stop(self) -> None:
            raise RuntimeError("stop failure")

    with caplog.at_level(logging.WARNING):
        logging_pipeline.shutdown_listeners([_FailingListener()])

    assert "Failed to stop logging listener" in caplog.text
