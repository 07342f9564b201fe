"""
insight_pipeline/logging_utils.py

Structured log events shared by the scrape client and the orchestrator.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def elapsed_ms(started_ms: int) -> int:
    return max(0, monotonic_ms() - started_ms)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one event line as sorted compact JSON. Non-JSON values such as
    datetimes and enums are rendered with ``str``; non-ASCII text is kept
    readable.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, ensure_ascii=False, sort_keys=True))
