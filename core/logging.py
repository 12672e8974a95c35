# File: logging.py
# Directory: core
# Purpose: Logging setup plus a structured JSON event helper for services and
#          routes. Ensures payloads are always serializable and timestamped.
#
# Upstream:
#   - ENV: LOG_LEVEL
#   - Imports: datetime, json, logging
#   - Callers: main, services.pod_index
#
# Downstream:
#   - stdout (log aggregation / container logs)
#
# Contents:
#   - setup_logging(level: str | None)
#   - log_event(event_type: str, payload: dict)

import datetime
import json
import logging
import os
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once; LOG_LEVEL wins over the default INFO."""
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)


def _safe(obj: Any) -> Any:
    """
    Ensure object is JSON-serializable.
    If not, fall back to str() wrapped in a dict.
    """
    try:
        json.dumps(obj)
        return obj
    except (TypeError, ValueError):
        return {"_repr": str(obj)}


def log_event(event_type: str, payload: Dict[str, Any]) -> None:
    """
    Emit a structured log line to stdout.
    Example:
      {"timestamp":"2026-10-19T20:11:02.123Z","event":"pod_index_built","details":{...}}
    """
    ts = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None).isoformat() + "Z"
    record = {
        "timestamp": ts,
        "event": event_type,
        "details": _safe(payload),
    }
    print(json.dumps(record, ensure_ascii=False))
