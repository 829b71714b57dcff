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
"""Metrics exporters.

Exporters read a MetricsCollector on demand (``export``) or follow its
alerts once attached. Reported failures arrive as ``property_failed``
alerts.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .collector import MetricsCollector

logger = logging.getLogger(__name__)


class MetricsExporter(ABC):
    """Base class for metrics exporters."""

    @abstractmethod
    def export(self, collector: MetricsCollector) -> None:
        """Export metrics from the collector."""

    @abstractmethod
    def export_alert(self, alert_type: str, data: Dict[str, Any]) -> None:
        """Export an alert."""

    def attach(self, collector: MetricsCollector) -> None:
        """Forward the collector's alerts to this exporter."""
        collector.register_alert_callback(self.export_alert)


@dataclass
class LogExporter(MetricsExporter):
    """Export metrics to the logging system.

    Attributes:
        log_level: Logging level for metrics (default: INFO)
        alert_level: Logging level for alerts (default: WARNING)
        format: Output format ('json' or 'text')
    """

    log_level: int = logging.INFO
    alert_level: int = logging.WARNING
    format: str = "json"

    def export(self, collector: MetricsCollector) -> None:
        """Export metrics to logs."""
        summary = collector.get_summary()

        if self.format == "json":
            message = json.dumps(summary, indent=2)
        else:
            message = self._format_text(summary)

        logger.log(self.log_level, f"quickdraw metrics:\n{message}")

    def export_alert(self, alert_type: str, data: Dict[str, Any]) -> None:
        """Export an alert to logs."""
        if self.format == "json":
            message = json.dumps({"alert_type": alert_type, **data})
        else:
            message = f"{alert_type}: {data}"

        logger.log(self.alert_level, f"quickdraw alert: {message}")

    def _format_text(self, summary: Dict[str, Any]) -> str:
        """Format summary as human-readable text."""
        lines = []

        outcomes = summary.get("outcomes", {})
        lines.append("Checks:")
        lines.append(f"  Count: {summary.get('checks', 0)}")
        lines.append(
            "  Passed/Failed/Flaky/Invalid: "
            f"{outcomes.get('passed', 0)}/{outcomes.get('failed', 0)}/"
            f"{outcomes.get('flaky', 0)}/{outcomes.get('invalid', 0)}"
        )
        lines.append(f"  Examples: {summary.get('valid', 0)} valid, {summary.get('invalid', 0)} invalid")
        durations = summary.get("check_durations", {})
        lines.append(
            f"  Duration: mean={durations.get('mean_ms', 0):.3f}ms, "
            f"p99={durations.get('p99_ms', 0):.3f}ms"
        )

        if summary.get("shrinks", 0) > 0:
            lines.append("\nShrinking:")
            lines.append(f"  Searches: {summary.get('shrinks', 0)}")
            lines.append(f"  Candidates: {summary.get('shrink_tries', 0)}")
            lines.append(f"  By pass: {summary.get('shrink_tries_by_pass', {})}")

        failures = summary.get("failures", [])
        if failures:
            lines.append("\nFailures:")
            for f in failures:
                lines.append(f"  {f['property']}: {f['message']} (buffer {f['buffer']})")

        return "\n".join(lines)


@dataclass
class JsonLinesExporter(MetricsExporter):
    """Append metrics and alerts to a JSON-lines file.

    ``property_failed`` alerts carry the minimized buffer in hex, so the
    file keeps every reported failure in a form ``replay`` accepts.

    Attributes:
        path: File the records are appended to
    """

    path: str
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def export(self, collector: MetricsCollector) -> None:
        """Append the collector summary as one record."""
        self._write({"record": "summary", **collector.get_summary()})

    def export_alert(self, alert_type: str, data: Dict[str, Any]) -> None:
        """Append one alert record."""
        self._write({"record": "alert", "alert_type": alert_type, **data})

    def read_failures(self) -> List[Dict[str, Any]]:
        """Failure records written so far, oldest first."""
        if not os.path.exists(self.path):
            return []
        with open(self.path, encoding="utf-8") as f:
            records = [json.loads(line) for line in f if line.strip()]
        return [r for r in records if r.get("alert_type") == "property_failed"]

    def _write(self, record: Dict[str, Any]) -> None:
        line = json.dumps(record, sort_keys=True)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
