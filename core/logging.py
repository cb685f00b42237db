# core/logging.py
"""JSON logs for the viewer.

Each record is one JSON object. Besides the usual level/logger/message it
carries the id of the HTTP request being served (if any) and the fetch
pipeline extras: ``fetch_seq``, ``timestamp_hint``, ``duration_ms``.
"""

import contextvars
import json
import logging
import os
import re
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

# id запроса API; None для таймерных потоков
request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)

EXTRA_FIELDS = ("fetch_seq", "timestamp_hint", "duration_ms")

_SECRET_RE = re.compile(r"(token|password|secret|key)([\s=:]+)\S+", re.IGNORECASE)
_PRETTY = os.getenv("ENV", "development") == "development"


def _scrub(text: str) -> str:
    return _SECRET_RE.sub(r"\1\2***", text)


class JSONFormatter(logging.Formatter):
    """Одна запись — один JSON-объект."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload = {
            "timestamp": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": _scrub(record.getMessage()),
            "request_id": request_id_var.get(),
        }
        payload.update({k: getattr(record, k) for k in EXTRA_FIELDS if hasattr(record, k)})
        if record.exc_info and record.exc_info[0]:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, indent=2 if _PRETTY else None, default=str)


def setup_logging(level: str | None = None) -> None:
    """Ставит JSON-хендлер на root-логгер (один раз) и выставляет уровень."""
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    root = logging.getLogger()
    level_no = logging.getLevelName(name)          # int для известных уровней
    root.setLevel(level_no if isinstance(level_no, int) else logging.INFO)
    if any(isinstance(h.formatter, JSONFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_duration(logger: logging.Logger, message: str, level: int = logging.DEBUG, **extra):
    """Пишет ``message`` с ``duration_ms`` после успешного выполнения блока.

    Если блок бросил исключение, ничего не пишется: отказ логирует вызывающий.
    """
    started = time.perf_counter()
    yield
    extra["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)
    logger.log(level, message, extra=extra)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Привязывает X-Request-ID (входящий или новый uuid4) к логам запроса."""

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
