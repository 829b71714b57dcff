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
"""Metric data structures for quickdraw checks."""

from __future__ import annotations

import statistics
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

OUTCOMES = ("passed", "failed", "flaky", "invalid")


@dataclass
class CheckMetrics:
    """Metrics of one ``check`` call.

    Attributes:
        property_name: Name of the checked property
        valid: Attempts that passed
        invalid: Attempts discarded as invalid
        exhausted: Invalid attempts caused by the entropy budget
        duration: Wall-clock seconds, shrinking included
        outcome: One of "passed", "failed", "flaky" or "invalid"
        timestamp: Time the check finished (time.time())
    """

    property_name: str
    valid: int = 0
    invalid: int = 0
    exhausted: int = 0
    duration: float = 0.0
    outcome: str = "passed"
    timestamp: float = field(default_factory=time.time)

    @property
    def attempts(self) -> int:
        return self.valid + self.invalid

    @property
    def invalid_ratio(self) -> float:
        """Share of attempts that were discarded."""
        if self.attempts == 0:
            return 0.0
        return self.invalid / self.attempts

    def to_dict(self) -> Dict[str, Any]:
        """Export metrics as dictionary."""
        return {
            "property": self.property_name,
            "outcome": self.outcome,
            "valid": self.valid,
            "invalid": self.invalid,
            "exhausted": self.exhausted,
            "invalid_ratio": round(self.invalid_ratio, 4),
            "duration_ms": round(self.duration * 1000, 3),
        }


@dataclass
class ShrinkMetrics:
    """Metrics of one shrink search.

    Attributes:
        property_name: Name of the shrunk property
        tries: Candidates replayed
        shrinks: Candidates adopted
        tries_by_pass: Candidates replayed per pass name
        duration: Wall-clock seconds spent shrinking
        exhausted: True when the attempt or time budget ran out
    """

    property_name: str
    tries: int = 0
    shrinks: int = 0
    tries_by_pass: Dict[str, int] = field(default_factory=dict)
    duration: float = 0.0
    exhausted: bool = False

    @property
    def acceptance_rate(self) -> float:
        """Adopted candidates per replayed candidate."""
        if self.tries == 0:
            return 0.0
        return self.shrinks / self.tries

    def to_dict(self) -> Dict[str, Any]:
        """Export metrics as dictionary."""
        return {
            "property": self.property_name,
            "tries": self.tries,
            "shrinks": self.shrinks,
            "acceptance_rate": round(self.acceptance_rate, 4),
            "tries_by_pass": dict(self.tries_by_pass),
            "duration_ms": round(self.duration * 1000, 3),
            "exhausted": self.exhausted,
        }


@dataclass
class FailureMetrics:
    """A failure found by one ``check`` call.

    Attributes:
        property_name: Name of the failing property
        kind: Outcome kind of the minimized failure
        message: Failure message of the minimized example
        seed: Seed of the attempt that first failed
        buffer_hex: Minimized bit stream, as accepted by ``replay``
        flaky: True when the failure did not reproduce
        timestamp: Time the failure was reported (time.time())
    """

    property_name: str
    kind: str
    message: str = ""
    seed: Optional[int] = None
    buffer_hex: str = ""
    flaky: bool = False
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property": self.property_name,
            "kind": self.kind,
            "message": self.message,
            "seed": self.seed,
            "buffer": self.buffer_hex,
            "flaky": self.flaky,
        }


@dataclass
class DurationStats:
    """Distribution of durations in seconds."""

    durations: List[float] = field(default_factory=list)

    def record(self, duration: float) -> None:
        self.durations.append(duration)

    @property
    def count(self) -> int:
        return len(self.durations)

    @property
    def total(self) -> float:
        return sum(self.durations)

    @property
    def mean(self) -> float:
        return statistics.mean(self.durations) if self.durations else 0.0

    @property
    def p99(self) -> float:
        """99th percentile duration."""
        if not self.durations:
            return 0.0
        sorted_vals = sorted(self.durations)
        idx = int(len(sorted_vals) * 0.99)
        return sorted_vals[min(idx, len(sorted_vals) - 1)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "total_ms": round(self.total * 1000, 3),
            "mean_ms": round(self.mean * 1000, 3),
            "p99_ms": round(self.p99 * 1000, 3),
        }
