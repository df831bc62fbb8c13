from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, Optional

LOGGER_NAME = "cold_storage_signer"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_logger = logging.getLogger(LOGGER_NAME)


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Attach a stderr handler emitting one JSON object per line.

    Libraries normally leave handler setup to the application; this is for scripts and
    the factory. Level comes from COLD_SIGNER_LOG_LEVEL when not given.
    """
    lvl = (level or os.getenv("COLD_SIGNER_LOG_LEVEL") or "info").strip().lower()
    _logger.setLevel(_LEVELS.get(lvl, logging.INFO))
    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        _logger.addHandler(handler)
    return _logger


def build_log_context(**fields: Any) -> Dict[str, Any]:
    service = (os.getenv("COLD_SIGNER_SERVICE_NAME") or "cold-storage-signer").strip()
    ctx: Dict[str, Any] = {"service": service}
    ctx.update({k: v for k, v in fields.items() if v is not None})
    return ctx


def log_event(
    event: str,
    *,
    ctx: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
    level: str = "info",
) -> None:
    lvl = _LEVELS.get(level, logging.INFO)
    if not _logger.isEnabledFor(lvl):
        return
    record: Dict[str, Any] = {"ts_ms": int(time.time() * 1000), "event": event}
    record.update(ctx or {})
    if data:
        record["data"] = data
    _logger.log(lvl, json.dumps(record, sort_keys=True, default=str))
