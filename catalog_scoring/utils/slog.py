# =============================================
# File: catalog_scoring/utils/slog.py
# Purpose: JSON-line event log for HTTP requests and recompute runs (stdlib logging)
# =============================================
from __future__ import annotations
import json
import logging
import os
import uuid
from typing import Any, Dict, Optional

LOGGER_NAME = "catalog_scoring"

_logger = logging.getLogger(LOGGER_NAME)
if not _logger.handlers:
    _logger.setLevel(getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(_handler)
    # caplog listens on the root logger
    _logger.propagate = True


def new_request_id() -> str:
    return uuid.uuid4().hex


def _emit(payload: Dict[str, Any], level: int = logging.INFO) -> None:
    _logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def log_event(event: str, **fields: Any) -> None:
    _emit({"event": event, **fields})


def finalize_request_log(
    request_id: str,
    method: str,
    path: str,
    status: int,
    latency_ms: int,
    client_ip: Optional[str],
    ctx: Optional[Dict[str, Any]] = None,
) -> None:
    """One 'request.completed' line; router context keys are merged in last."""
    payload: Dict[str, Any] = {
        "event": "request.completed",
        "request_id": request_id,
        "method": method,
        "path": path,
        "status": status,
        "latency_ms": latency_ms,
        "client_ip": client_ip or "",
    }
    payload.update(ctx or {})
    _emit(payload, logging.WARNING if status >= 500 else logging.INFO)


def log_recompute(outcome: str, family: str, duration_ms: int, **fields: Any) -> None:
    """outcome: completed | skipped | failed"""
    level = logging.ERROR if outcome == "failed" else logging.INFO
    _emit({"event": f"recompute.{outcome}", "family": family, "duration_ms": duration_ms, **fields}, level)
