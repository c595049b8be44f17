"""Structured log events with duration tiers ("slow" / "important")."""
from __future__ import annotations

import logging
import time
from typing import Any

from src.core.config.models import LogThresholds

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def new_operation_id(prefix: str) -> str:
    """Correlation id such as ``plan_lx2k9a1b`` (ms clock in base 36)."""
    return f"{prefix}_{_base36(time.time_ns() // 1_000_000)}"


def preview(text: str, limit: int = 100) -> str:
    text = str(text)
    return (text[:limit] + "…") if len(text) > limit else text


class Stopwatch:
    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._start) * 1000)


def log_event(
    logger: logging.Logger,
    message: str,
    *,
    operation: str,
    operation_id: str,
    thresholds: LogThresholds,
    duration_ms: int | None = None,
    level: int | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Emit one structured record and return its event payload.

    Durations above ``thresholds.slow_ms`` are logged at WARNING and flagged
    ``slow``; above ``thresholds.important_ms`` they are also flagged
    ``important``. An explicit ``level`` always wins.
    """
    event: dict[str, Any] = {"operation": operation, "operation_id": operation_id}
    if duration_ms is not None:
        slow = duration_ms > thresholds.slow_ms
        event["duration_ms"] = duration_ms
        event["slow"] = slow
        event["important"] = duration_ms > thresholds.important_ms
        if level is None:
            level = logging.WARNING if slow else logging.INFO
    event.update(fields)
    if level is None:
        level = logging.INFO
    if logger.isEnabledFor(level):
        kv = " ".join(f"{k}={v}" for k, v in event.items() if k not in ("operation", "operation_id"))
        logger.log(level, "%s [%s %s] %s", message, operation, operation_id, kv, extra={"event": event})
    return event
