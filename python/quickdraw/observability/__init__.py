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
"""Observability for quickdraw checks.

Key Components:
- CheckMetrics: valid/invalid counts, duration and outcome of one check
- ShrinkMetrics: candidates tried and adopted by one shrink search
- FailureMetrics: kind, message and replayable buffer of a reported failure
- MetricsCollector: thread-safe aggregation across checks
- get_global_collector: the collector check records into by default
- MetricsExporter: export to logs or a JSON-lines file

Example:
    >>> from quickdraw.observability import MetricsCollector, LogExporter
    >>> collector = MetricsCollector()
    >>> check(prop, ints(), collector=collector)
    >>> LogExporter(format="text").export(collector)
"""

from .collector import MetricsCollector, get_global_collector, set_global_collector
from .exporter import JsonLinesExporter, LogExporter, MetricsExporter
from .metrics import CheckMetrics, DurationStats, FailureMetrics, ShrinkMetrics

__all__ = [
    "MetricsCollector",
    "get_global_collector",
    "set_global_collector",
    "CheckMetrics",
    "ShrinkMetrics",
    "FailureMetrics",
    "DurationStats",
    "MetricsExporter",
    "LogExporter",
    "JsonLinesExporter",
]
