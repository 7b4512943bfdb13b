"""JSON logger used by the composer and the operator scripts.

Each record is emitted as a single JSON object carrying the environment
name and, when set, the composition stage.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        env = getattr(record, "environment", None) or os.environ.get("ENVIRONMENT")
        if env:
            payload["environment"] = env
        stage = getattr(record, "stage", None)
        if stage:
            payload["stage"] = stage
        details = getattr(record, "details", None)
        if isinstance(details, dict) and details:
            payload["details"] = details
        payload["timestamp"] = record.created
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class _Adapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: Dict[str, Any]):  # type: ignore[override]
        extra = self.extra.copy() if isinstance(self.extra, dict) else {}
        if "extra" in kwargs and isinstance(kwargs["extra"], dict):
            extra.update(kwargs["extra"])
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str, environment: Optional[str] = None, level: str = "INFO") -> logging.LoggerAdapter:
    """Return a JSON-formatted logger adapter bound to ``environment``."""
    base = logging.getLogger(name)
    if not base.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
        base.addHandler(handler)
        base.propagate = False
    base.setLevel(getattr(logging, level.upper(), logging.INFO))
    return _Adapter(base, {"environment": environment or os.environ.get("ENVIRONMENT")})
