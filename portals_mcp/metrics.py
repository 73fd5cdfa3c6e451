"""Minimal in-process metrics recorder (not suitable for multi-process aggregation)."""

from __future__ import annotations

from collections import Counter, OrderedDict
from threading import Lock
from typing import Dict, Optional

MAX_RECENT_DURATIONS = 256


class MetricsRecorder:
    def __init__(self, max_recent_durations: int = MAX_RECENT_DURATIONS) -> None:
        self._lock = Lock()
        self._requests = 0
        self._max_recent_durations = max_recent_durations
        self._request_durations_ms: OrderedDict[str, float] = OrderedDict()
        self._rate_limited = 0
        self._tool_success: Counter[str] = Counter()
        self._tool_error: Counter[str] = Counter()
        self._failure_categories: Counter[str] = Counter()
        self._refreshes = 0
        self._last_refresh: Optional[Dict[str, int]] = None

    def incr_request(self) -> None:
        with self._lock:
            self._requests += 1

    def record_duration(self, request_id: str, duration_ms: float) -> None:
        with self._lock:
            self._request_durations_ms[request_id] = duration_ms
            while len(self._request_durations_ms) > self._max_recent_durations:
                self._request_durations_ms.popitem(last=False)

    def incr_rate_limited(self) -> None:
        with self._lock:
            self._rate_limited += 1

    def record_tool(self, tool: str, *, success: bool, category: Optional[str] = None) -> None:
        with self._lock:
            if success:
                self._tool_success[tool] += 1
            else:
                self._tool_error[tool] += 1
                if category:
                    self._failure_categories[category] += 1

    def record_refresh(self, *, loaded: int, failed: int) -> None:
        with self._lock:
            self._refreshes += 1
            self._last_refresh = {"loaded": loaded, "failed": failed}

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "requests": self._requests,
                "rate_limited": self._rate_limited,
                "tool_success": dict(self._tool_success),
                "tool_error": dict(self._tool_error),
                "failure_categories": dict(self._failure_categories),
                "refreshes": self._refreshes,
                "last_refresh": dict(self._last_refresh) if self._last_refresh else None,
                "recent_request_durations_ms": dict(self._request_durations_ms),
            }

    def reset(self) -> None:
        with self._lock:
            self._requests = 0
            self._request_durations_ms.clear()
            self._rate_limited = 0
            self._tool_success.clear()
            self._tool_error.clear()
            self._failure_categories.clear()
            self._refreshes = 0
            self._last_refresh = None


default_metrics = MetricsRecorder()
