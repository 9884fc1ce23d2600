# FILE: keycore/logging.py
from __future__ import annotations

import contextvars
import datetime as _dt
import json
import logging
import os
import sys
import traceback
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Set

# ---------- Module-level config (env-driven, safe defaults) ----------
_LOG_SCHEMA = os.environ.get("KEYCORE_LOG_SCHEMA", "keycore.log.v1")
_LOG_SERVICE = os.environ.get("KEYCORE_SERVICE", "keycore")

# Max chars per field (truncate to keep JSON small)
try:
    _MAX_FIELD = max(256, int(os.environ.get("KEYCORE_LOG_MAX_FIELD", "4096")))
except ValueError:
    _MAX_FIELD = 4096

_INCLUDE_STACK = os.environ.get("KEYCORE_LOG_INCLUDE_STACK", "1") == "1"

# Extras under these keys are private key material and never rendered.
_SECRET_KEYS: Set[str] = {
    "d",
    "p",
    "q",
    "dp",
    "dq",
    "crt",
    "private_key",
    "key_value",
}

# Standard LogRecord attributes that are not treated as dynamic meta
_LOG_RECORD_STD_ATTRS: Set[str] = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
}

# ---------- Context management ----------
_log_ctx: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "keycore_log_ctx", default={}
)


@contextmanager
def bound(**fields: Any) -> Iterator[None]:
    """Merge fields into the logging context for the duration of the block."""
    cur = dict(_log_ctx.get())
    for k, v in fields.items():
        if v is None:
            continue
        cur[str(k)] = v
    token = _log_ctx.set(cur)
    try:
        yield
    finally:
        _log_ctx.reset(token)


def context() -> Dict[str, Any]:
    return dict(_log_ctx.get())


# ---------- Helpers ----------
def _ts_iso() -> str:
    # RFC3339 with milliseconds, UTC Z
    now = _dt.datetime.now(_dt.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _compact_json(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), default=str)


def _truncate(v: Any) -> Any:
    if isinstance(v, str) and len(v) > _MAX_FIELD:
        return v[:_MAX_FIELD] + "...<truncated>"
    return v


def scrub_dict(d: Dict[str, Any]) -> Dict[str, Any]:
    """Mask private key material and truncate long values."""
    out: Dict[str, Any] = {}
    for k, v in d.items():
        if str(k).lower() in _SECRET_KEYS:
            out[k] = "***"
        elif isinstance(v, (bytes, bytearray)):
            out[k] = f"<{len(v)} bytes>"
        else:
            out[k] = _truncate(v)
    return out


class JSONFormatter(logging.Formatter):
    """
    One-line JSON formatter with a stable envelope.

    Envelope fields:
      - schema, service, ts, lvl, logger, msg
      - bound context (bound()), e.g. type_url
      - exc_type, exc_message, stack when an exception is attached
      - meta: remaining record extras, scrubbed of key material
    """

    def __init__(self, *, include_stack: bool = True) -> None:
        super().__init__()
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        evt: Dict[str, Any] = {
            "schema": _LOG_SCHEMA,
            "service": _LOG_SERVICE,
            "ts": _ts_iso(),
            "lvl": record.levelname,
            "logger": record.name,
            "msg": _truncate(str(record.getMessage())),
        }
        ctx = context()
        if ctx:
            evt.update(scrub_dict(ctx))

        if record.exc_info and self.include_stack:
            exc_type, exc_val, exc_tb = record.exc_info
            evt["exc_type"] = getattr(exc_type, "__name__", str(exc_type))
            evt["exc_message"] = str(exc_val)[:_MAX_FIELD]
            evt["stack"] = "".join(
                traceback.format_exception(exc_type, exc_val, exc_tb)
            )[:_MAX_FIELD]

        extras = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _LOG_RECORD_STD_ATTRS and not k.startswith("_")
        }
        if extras:
            evt["meta"] = scrub_dict(extras)

        return _compact_json(evt)


def _clear_handlers(logger: logging.Logger) -> None:
    for h in list(logger.handlers):
        logger.removeHandler(h)


def configure_json_logging(
    level: str = "INFO",
    *,
    stream: Any = None,
    include_stack: bool = _INCLUDE_STACK,
    json_output: bool = True,
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """
    Configure a logger for JSON (or plain text) output.

    With no ``logger_name`` the root logger is configured, which is for
    application entry points. A named logger gets its own handler and stops
    propagating, so handlers on the root logger are left alone.
    """
    lvl = getattr(logging, (level or "INFO").upper(), logging.INFO)
    stream = stream or sys.stderr

    h = logging.StreamHandler(stream=stream)
    if json_output:
        h.setFormatter(JSONFormatter(include_stack=include_stack))
    else:
        h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    h.setLevel(lvl)

    target = logging.getLogger(logger_name)
    target.setLevel(lvl)
    _clear_handlers(target)
    target.addHandler(h)
    if logger_name:
        target.propagate = False
    return target


__all__ = [
    "bound",
    "context",
    "scrub_dict",
    "configure_json_logging",
    "JSONFormatter",
]
