"""
Structured JSON log lines on stdout.

Line keys are locked: ts, level, message, request_id, event, module.
Extra keyword arguments are merged into the line as-is.
"""
from __future__ import annotations

import datetime
import json
import logging
from contextvars import ContextVar
from typing import Any, Dict, Optional

from .config import get_log_level

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "audit": logging.INFO,
}


def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _enabled(level: str) -> bool:
    threshold = logging.getLevelName(get_log_level())
    if not isinstance(threshold, int):
        threshold = logging.INFO
    return _LEVELS.get(level, logging.INFO) >= threshold


def emit(level: str, event: str, message: str, module: str, request_id: Optional[str] = None, **extra: Any) -> None:
    level = level.lower()
    if not _enabled(level):
        return
    payload: Dict[str, Any] = {
        "ts": _now_iso(),
        "level": level,
        "message": message,
        "request_id": request_id if request_id is not None else request_id_var.get(),
        "event": event,
        "module": module,
    }
    payload.update(extra)
    print(json.dumps(payload, ensure_ascii=False, default=str), flush=True)
