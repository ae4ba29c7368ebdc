from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Callable, Optional

_STANDARD_RECORD_FIELDS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "request_id"}
_QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore")
_configured = False


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Fields passed through ``extra=`` land under ``context``; a ``ctx_`` prefix
    is stripped so call sites can avoid clashing with LogRecord attributes.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            entry["request_id"] = request_id
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }
        context = {
            key.removeprefix("ctx_"): value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_FIELDS and not key.startswith("_")
        }
        if context:
            entry["context"] = context
        return json.dumps(entry, default=str, ensure_ascii=False)


class RequestIdFilter(logging.Filter):
    """Stamps each record with the current request id, if any."""

    def __init__(self, getter: Callable[[], Optional[str]]):
        super().__init__()
        self._getter = getter

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = self._getter()
        return True


def setup_logging(level: str = "INFO", request_id_getter: Optional[Callable[[], Optional[str]]] = None) -> None:
    """Route all logging, uvicorn's included, through one JSON stdout handler.

    Idempotent: only the first call installs the handler.
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    if request_id_getter is not None:
        handler.addFilter(RequestIdFilter(request_id_getter))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    _configured = True


def reset_logging() -> None:
    """Forget the installed handler so the next ``setup_logging`` call reconfigures."""
    global _configured
    logging.getLogger().handlers.clear()
    _configured = False
