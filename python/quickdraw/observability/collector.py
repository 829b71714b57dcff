# Copyright Rand Arete @ Ananke 2025
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Central metrics collection for quickdraw checks."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .metrics import OUTCOMES, CheckMetrics, DurationStats, FailureMetrics, ShrinkMetrics

logger = logging.getLogger(__name__)

AlertCallback = Callable[[str, Dict[str, Any]], None]


@dataclass
class MetricsCollector:
    """Thread-safe sink for check and shrink metrics.

    Checks of different properties may run in parallel threads and report
    into one collector.

    Attributes:
        max_history: Maximum number of checks and shrinks to keep
        invalid_alert_ratio: Invalid-attempt share that triggers an alert
    """

    max_history: int = 1000
    invalid_alert_ratio: float = 0.5

    _checks: List[CheckMetrics] = field(default_factory=list)
    _shrinks: List[ShrinkMetrics] = field(default_factory=list)
    _failures: List[FailureMetrics] = field(default_factory=list)
    _outcomes: Dict[str, int] = field(default_factory=lambda: {o: 0 for o in OUTCOMES})
    _check_durations: DurationStats = field(default_factory=DurationStats)
    _shrink_durations: DurationStats = field(default_factory=DurationStats)
    _shrink_tries_by_pass: Dict[str, int] = field(default_factory=dict)

    _lock: threading.Lock = field(default_factory=threading.Lock)
    _alert_callbacks: List[AlertCallback] = field(default_factory=list)

    def record_check(self, metrics: CheckMetrics) -> None:
        """Record the outcome of one check."""
        with self._lock:
            self._checks.append(metrics)
            if len(self._checks) > self.max_history:
                self._checks = self._checks[-self.max_history :]
            self._outcomes[metrics.outcome] = self._outcomes.get(metrics.outcome, 0) + 1
            self._check_durations.record(metrics.duration)

            if metrics.outcome == "flaky":
                self._trigger_alert("flaky_property", metrics.to_dict())
            if metrics.attempts and metrics.invalid_ratio > self.invalid_alert_ratio:
                self._trigger_alert("high_invalid_ratio", metrics.to_dict())

    def record_shrink(self, metrics: ShrinkMetrics) -> None:
        """Record the statistics of one shrink search."""
        with self._lock:
            self._shrinks.append(metrics)
            if len(self._shrinks) > self.max_history:
                self._shrinks = self._shrinks[-self.max_history :]
            self._shrink_durations.record(metrics.duration)
            for name, tries in metrics.tries_by_pass.items():
                self._shrink_tries_by_pass[name] = self._shrink_tries_by_pass.get(name, 0) + tries

            if metrics.exhausted:
                self._trigger_alert("shrink_budget_exhausted", metrics.to_dict())

    def record_failure(self, metrics: FailureMetrics) -> None:
        """Record a reported failure and raise a ``property_failed`` alert."""
        with self._lock:
            self._failures.append(metrics)
            if len(self._failures) > self.max_history:
                self._failures = self._failures[-self.max_history :]
            self._trigger_alert("property_failed", metrics.to_dict())

    def register_alert_callback(self, callback: AlertCallback) -> None:
        """Register a callback for alerts.

        Args:
            callback: Function(alert_type, data) to call on alerts
        """
        with self._lock:
            self._alert_callbacks.append(callback)

    def _trigger_alert(self, alert_type: str, data: Dict[str, Any]) -> None:
        """Trigger alert callbacks (called with lock held)."""
        for callback in self._alert_callbacks:
            try:
                callback(alert_type, data)
            except Exception as e:
                logger.warning(f"Alert callback error: {e}")

    def get_checks(self, n: Optional[int] = None) -> List[CheckMetrics]:
        """Get the N most recent checks (all when N is None)."""
        with self._lock:
            return list(self._checks if n is None else self._checks[-n:])

    def get_shrinks(self) -> List[ShrinkMetrics]:
        with self._lock:
            return list(self._shrinks)

    def get_failures(self) -> List[FailureMetrics]:
        with self._lock:
            return list(self._failures)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics.

        Returns:
            Dictionary with aggregate statistics
        """
        with self._lock:
            valid = sum(c.valid for c in self._checks)
            invalid = sum(c.invalid for c in self._checks)
            return {
                "checks": len(self._checks),
                "outcomes": dict(self._outcomes),
                "valid": valid,
                "invalid": invalid,
                "check_durations": self._check_durations.to_dict(),
                "shrinks": len(self._shrinks),
                "shrink_tries": sum(s.tries for s in self._shrinks),
                "shrink_tries_by_pass": dict(self._shrink_tries_by_pass),
                "shrink_durations": self._shrink_durations.to_dict(),
                "failures": [f.to_dict() for f in self._failures],
            }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._checks.clear()
            self._shrinks.clear()
            self._failures.clear()
            self._outcomes = {o: 0 for o in OUTCOMES}
            self._check_durations = DurationStats()
            self._shrink_durations = DurationStats()
            self._shrink_tries_by_pass.clear()


# Collector used by check when none is passed
_global_collector: Optional[MetricsCollector] = None
_global_lock = threading.Lock()


def get_global_collector() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _global_collector
    with _global_lock:
        if _global_collector is None:
            _global_collector = MetricsCollector()
        return _global_collector


def set_global_collector(collector: MetricsCollector) -> None:
    """Set the global metrics collector."""
    global _global_collector
    with _global_lock:
        _global_collector = collector
