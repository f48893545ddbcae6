"""Structured key=value logging for the Daybook assistant.

Every module logs through a child of the ``daybook`` logger, which owns the
single stdout handler. Per-turn lines carry a ``request_id``.
"""

import logging
import sys
from typing import Any

ROOT_LOGGER = "daybook"


def _render(value: Any) -> str:
    text = str(value)
    return f'"{text}"' if " " in text or not text else text


class StructuredFormatter(logging.Formatter):
    """Renders ``ts= level= logger= [request_id=] msg= [context...]``."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            fields["request_id"] = request_id
        fields["msg"] = record.getMessage()
        fields.update(getattr(record, "context", None) or {})

        line = " ".join(f"{key}={_render(value)}" for key, value in fields.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)

    try:
        from daybook.core.config import get_settings

        root.setLevel(logging.DEBUG if get_settings().ASSISTANT_ENV == "dev" else logging.INFO)
    except Exception:
        # Settings not loadable yet (missing env)
        root.setLevel(logging.INFO)
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``daybook`` hierarchy (pass ``__name__``)."""
    _configure_root()
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log ``msg`` with extra key=value fields.

    ``request_id`` is lifted into its own field; everything else is appended
    after the message.
    """
    request_id = kwargs.pop("request_id", None)
    logger.log(level, msg, extra={"request_id": request_id, "context": kwargs})
