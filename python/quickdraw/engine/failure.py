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
"""Failure records and reports.

A FailureRecord is created once per non-passing execution and never
modified. Its ``signature`` (outcome kind, exception type, originating
frame) decides whether two executions failed "the same way"; the shrinker
only adopts candidates with the original signature, and the runner uses it
to detect flaky properties.

Frames belonging to quickdraw itself are filtered out of traces unless the
fault originated there, so a report points at the user's assertion first
while still exposing engine bugs in full.
"""

from __future__ import annotations

import os
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from ..core.bitstream import encode_words

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_TESTS_DIR = os.path.join(_PACKAGE_DIR, "tests")


class OutcomeKind(Enum):
    """Classification of one property execution."""

    PASSED = "passed"
    INVALID = "invalid"
    ASSERTION = "assertion"
    RUNTIME_FAULT = "runtime_fault"

    @property
    def is_failure(self) -> bool:
        return self in (OutcomeKind.ASSERTION, OutcomeKind.RUNTIME_FAULT)


def is_engine_frame(frame: traceback.FrameSummary) -> bool:
    """True for frames executing quickdraw's own (non-test) code."""
    filename = os.path.abspath(frame.filename)
    return filename.startswith(_PACKAGE_DIR + os.sep) and not filename.startswith(_TESTS_DIR + os.sep)


def format_frame(frame: traceback.FrameSummary) -> str:
    return f"{frame.filename}:{frame.lineno} in {frame.name}"


@dataclass(frozen=True)
class FailureRecord:
    """Immutable description of a non-passing execution.

    Attributes:
        kind: INVALID, ASSERTION or RUNTIME_FAULT
        message: The failure message (str of the exception)
        exc_type: Qualified exception type name
        trace: Formatted frames, outermost first
        origin: ``file:line in function`` of the failing site
        internal: True when the innermost frame is inside quickdraw
        words: Bit stream consumed up to the failure
        exception: The original exception object, when one was raised
    """

    kind: OutcomeKind
    message: str
    exc_type: str
    trace: Tuple[str, ...]
    origin: str
    internal: bool
    words: Tuple[int, ...] = ()
    exception: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def signature(self) -> Tuple[OutcomeKind, str, str]:
        return (self.kind, self.exc_type, self.origin)

    @property
    def is_failure(self) -> bool:
        return self.kind.is_failure

    @classmethod
    def from_exception(
        cls,
        kind: OutcomeKind,
        exc: BaseException,
        words: Sequence[int] = (),
        origin: Optional[traceback.FrameSummary] = None,
    ) -> FailureRecord:
        """Build a record from a caught exception.

        Args:
            kind: How the execution is classified
            exc: The exception that ended the execution
            words: Bit stream consumed so far
            origin: Explicit failing site, overriding the traceback's
        """
        frames = traceback.extract_tb(exc.__traceback__)
        user_frames = [f for f in frames if not is_engine_frame(f)]
        internal = bool(frames) and is_engine_frame(frames[-1])

        if origin is None:
            if user_frames:
                origin = user_frames[-1]
            elif frames:
                origin = frames[-1]

        shown = frames if (kind is OutcomeKind.RUNTIME_FAULT and internal) or not user_frames else user_frames
        exc_type = f"{type(exc).__module__}.{type(exc).__qualname__}"
        return cls(
            kind=kind,
            message=str(exc),
            exc_type=exc_type,
            trace=tuple(traceback.format_list(shown)),
            origin=format_frame(origin) if origin is not None else "<unknown>",
            internal=internal,
            words=tuple(words),
            exception=exc,
        )

    def describe(self) -> str:
        label = "panic" if self.kind is OutcomeKind.RUNTIME_FAULT else self.kind.value
        name = self.exc_type.rsplit(".", 1)[-1]
        return f"{label}: {name}: {self.message}" if self.message else f"{label}: {name}"


@dataclass
class FailureReport:
    """User-facing payload of a minimized failure.

    Attributes:
        property_name: Name of the property function
        failure: Failure record of the minimized example
        words: Minimized bit stream, replayable with ``replay``
        draws: (label, value) pairs decoded from the minimized stream
        output: Log lines the property emitted on the minimized example
        seed: Seed of the attempt that first failed
        valid: Passing attempts before the failure
        invalid: Invalid attempts before the failure
        original: Failure record of the unshrunk example
        shrink_tries: Candidates replayed while shrinking
        shrinks: Candidates adopted while shrinking
        flaky: True when the failure did not reproduce on replay
    """

    property_name: str
    failure: FailureRecord
    words: Tuple[int, ...]
    draws: List[Tuple[str, Any]] = field(default_factory=list)
    output: List[str] = field(default_factory=list)
    seed: Optional[int] = None
    valid: int = 0
    invalid: int = 0
    original: Optional[FailureRecord] = None
    shrink_tries: int = 0
    shrinks: int = 0
    flaky: bool = False

    @property
    def buffer(self) -> bytes:
        """Opaque byte form of the minimized stream."""
        return encode_words(self.words)

    @property
    def hex(self) -> str:
        return self.buffer.hex()

    @property
    def values(self) -> List[Any]:
        return [v for _, v in self.draws]

    def format(self) -> str:
        """Render the report the way it is shown to the user."""
        lines: List[str] = []
        if self.flaky:
            lines.append(
                f"[quickdraw] flaky test {self.property_name}, can not reproduce a failure"
            )
        else:
            lines.append(
                f"[quickdraw] {self.property_name} failed after {self.valid} tests: "
                f"{self.failure.describe()}"
            )
        if self.seed is not None:
            lines.append(f"To reproduce, run with seed={self.seed} or replay buffer:")
        else:
            lines.append("To reproduce, replay buffer:")
        lines.append(f"    {self.hex or '<empty>'}")
        if self.shrinks or self.shrink_tries:
            lines.append(f"Shrunk {self.shrinks} times in {self.shrink_tries} tries")
        if self.draws:
            lines.append("Minimal example:")
            for label, value in self.draws:
                lines.append(f"    {label}: {value!r}")
        if self.failure.trace:
            lines.append(f"Traceback ({self.failure.origin}):")
            lines.extend(line.rstrip("\n") for line in self.failure.trace)
        if self.flaky and self.original is not None:
            lines.append(f"Original failure: {self.original.describe()} at {self.original.origin}")
        if self.output:
            lines.append("Failed test output:")
            lines.extend(f"    {line}" for line in self.output)
        return "\n".join(lines)
