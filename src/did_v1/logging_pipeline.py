"""Structured JSON logging for driver and CLI runs."""

from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from queue import Full, Queue
from typing import IO, Iterable, override
from uuid import uuid4

LOGGER = logging.getLogger(__name__)

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_KEYS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

# Promoted to top-level JSON fields when present in ``extra``.
_PROMOTED_KEYS: tuple[str, ...] = ("did", "operation_type")


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line.

    ``did`` and ``operation_type`` extras become top-level fields; every
    other extra lands under ``context``.
    """

    def __init__(self, *, session_id: str | None = None) -> None:
        super().__init__()
        self._session_id = session_id

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "session_id": getattr(record, "session_id", None) or self._session_id,
        }
        context: dict[str, object] = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_KEYS or key == "session_id":
                continue
            if key in _PROMOTED_KEYS:
                payload[key] = value
            else:
                context[key] = value
        payload["context"] = context

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["exception"] = record.exc_text

        return json.dumps(payload, default=str)


class BoundedQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that drops records when the queue is full."""

    @override
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except Full:
            self.handleError(record)

    @override
    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        """Pass records through unformatted so exceptions reach the JSON formatter."""
        return record

    @override
    def handleError(self, record: logging.LogRecord) -> None:
        return


def configure_structured_logging(
    logger: logging.Logger,
    *,
    session_id: str | None = None,
    level: int = logging.INFO,
    stream: IO[str] | None = None,
    max_queue: int = 1024,
) -> logging.handlers.QueueListener:
    """Attach a bounded queue handler emitting JSON lines to ``logger``.

    Args:
        logger: Target logger, usually ``logging.getLogger("did_v1")``.
        session_id: Identifier stamped on every record; random when omitted.
        level: Logging verbosity level.
        stream: Output stream; ``sys.stderr`` when omitted.
        max_queue: Records buffered before new ones are dropped.

    Returns:
        The started queue listener; stop it with :func:`shutdown_listeners`.
    """

    logger.setLevel(level)
    record_queue: Queue[logging.LogRecord] = Queue(maxsize=max_queue)
    logger.addHandler(BoundedQueueHandler(record_queue))

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setFormatter(JsonFormatter(session_id=session_id or str(uuid4())))

    listener = logging.handlers.QueueListener(record_queue, stream_handler)
    listener.start()
    return listener


def shutdown_listeners(listeners: Iterable[logging.handlers.QueueListener]) -> None:
    """Stop all queue listeners while suppressing shutdown errors."""
    for listener in listeners:
        try:
            listener.stop()
        except Exception as exc:  # pragma: no cover
            LOGGER.warning("Failed to stop logging listener", exc_info=exc)
