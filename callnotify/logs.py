from __future__ import annotations

import json
import logging
import os
import sys
import time
from typing import Any

DEBUG = os.getenv("DEBUG") == "1"

logging.basicConfig(
    stream=sys.stdout,
    level=logging.DEBUG if DEBUG else logging.INFO,
    format="%(message)s",
)
LOG = logging.getLogger("callnotify")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}
_SECRET_HINTS = ("secret", "token", "password", "authorization", "api_key")


def _ts() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime()) + f".{int((time.time() % 1) * 1000):03d}Z"


def _redact(key: str, value: Any) -> Any:
    if any(h in key.lower() for h in _SECRET_HINTS):
        return "<redacted>" if value else value
    return value


def log(level: str, msg: str, **kv: Any) -> None:
    """One line per event: ``ts | LEVEL | msg | k=v ...``."""
    parts = [f"{_ts()} | {level.upper():5} | {msg}"]
    if kv:
        try:
            parts.append("| " + " ".join(
                f"{k}={json.dumps(_redact(k, v), ensure_ascii=False, default=str)}"
                for k, v in kv.items()))
        except Exception:
            parts.append("| (kv-encode-failed)")
    LOG.log(_LEVELS.get(level, logging.INFO), " ".join(parts))
