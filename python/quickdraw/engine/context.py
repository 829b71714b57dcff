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
"""Draw context and the single execution boundary of a property.

Every property runs as ``prop(t, *values)`` where ``t`` is a T bound to one
bit stream. ``check_once`` is the only place exceptions are turned into
FailureRecords; nothing above it sees a raw exception from user code.

Outcome mapping:
    - InvalidData (filter exhaustion, overrun, entropy budget, ``t.skip``)
      -> INVALID
    - AssertionError (``assert``, ``t.fatal``, ``t.error``) -> ASSERTION
    - any other Exception -> RUNTIME_FAULT

KeyboardInterrupt and SystemExit are not Exceptions and propagate.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Callable, List, Optional, Tuple

from ..core.bitstream import BitStream
from ..core.errors import InvalidData
from ..core.settings import DEFAULT_SETTINGS, Settings
from ..generators.base import Data, Generator
from .failure import FailureRecord, OutcomeKind

logger = logging.getLogger(__name__)

Property = Callable[..., Any]


def _call_site() -> traceback.FrameSummary:
    # stack: [call site, T method, _call_site]
    return traceback.extract_stack(limit=3)[0]


class StopTest(AssertionError):
    """Raised by ``T.fatal`` to end the property with a failure."""

    def __init__(self, message: str, origin: Optional[traceback.FrameSummary] = None):
        super().__init__(message)
        self.origin = origin


class SkipTest(InvalidData):
    """Raised by ``T.skip`` to discard the current attempt."""


class T(Data):
    """Draw context handed to properties.

    Attributes:
        settings: Settings of the running check
        log_output: Echo ``log`` lines and draws through the module logger
        draws: (label, value) pairs of every top-level draw, in order
        output: Lines passed to ``log`` during this execution

    Example:
        >>> def prop(t):
        ...     xs = t.draw(lists_of(ints()), "xs")
        ...     if sorted(sorted(xs)) != sorted(xs):
        ...         t.fatal("sort is not idempotent")
    """

    def __init__(
        self,
        source: BitStream,
        settings: Optional[Settings] = None,
        log_output: bool = False,
    ):
        super().__init__(source)
        self.settings = settings or DEFAULT_SETTINGS
        self.log_output = log_output
        self.draws: List[Tuple[str, Any]] = []
        self.output: List[str] = []
        self._errors: List[Tuple[str, traceback.FrameSummary]] = []

    def draw(self, gen: Generator, label: Optional[str] = None) -> Any:
        """Draw a value and remember it for failure reports.

        Args:
            gen: Generator to draw from
            label: Name shown in reports; defaults to ``#<index>``

        Returns:
            The decoded value (a tuple for generators of arity above one)
        """
        label = label or f"#{len(self.draws)}"
        v = super().draw(gen, label)
        self.draws.append((label, v))
        if self.log_output:
            logger.info("[quickdraw] draw %s: %r", label, v)
        return v

    def log(self, msg: str) -> None:
        self.output.append(msg)
        if self.log_output:
            logger.info("%s", msg)

    def error(self, msg: str) -> None:
        """Record a failure and keep running the property."""
        self._errors.append((msg, _call_site()))
        self.log(msg)

    def fatal(self, msg: str) -> None:
        """Fail the property immediately."""
        origin = _call_site()
        self.log(msg)
        raise StopTest(msg, origin)

    fail = fatal

    def skip(self, msg: str = "") -> None:
        """Discard this attempt as invalid."""
        if msg:
            self.log(msg)
        raise SkipTest(msg or "skipped")

    @property
    def failed(self) -> bool:
        return bool(self._errors)

    def _fail_on_error(self) -> None:
        if self._errors:
            msg, origin = self._errors[0]
            if len(self._errors) > 1:
                msg = f"{msg} (and {len(self._errors) - 1} more errors)"
            raise StopTest(msg, origin)


def _values(t: T, gens: Tuple[Generator, ...]) -> List[Any]:
    args: List[Any] = []
    for i, gen in enumerate(gens):
        v = t.draw(gen, f"arg{i}")
        if gen.arity > 1:
            args.extend(v)
        else:
            args.append(v)
    return args


def check_once(t: T, prop: Property, *gens: Generator) -> Optional[FailureRecord]:
    """Run ``prop`` once against ``t``.

    Returns:
        None when the property passed, else the FailureRecord of the
        execution (which may be INVALID)
    """
    try:
        prop(t, *_values(t, gens))
        t._fail_on_error()
    except InvalidData as exc:
        return FailureRecord.from_exception(OutcomeKind.INVALID, exc, t.source.to_words())
    except StopTest as exc:
        return FailureRecord.from_exception(
            OutcomeKind.ASSERTION, exc, t.source.to_words(), origin=exc.origin
        )
    except AssertionError as exc:
        return FailureRecord.from_exception(OutcomeKind.ASSERTION, exc, t.source.to_words())
    except Exception as exc:
        return FailureRecord.from_exception(OutcomeKind.RUNTIME_FAULT, exc, t.source.to_words())
    return None


def draw_once(gen: Generator, source: BitStream) -> Tuple[Any, Optional[FailureRecord]]:
    """Draw a single value outside of a property, capturing any failure.

    Returns:
        Tuple of (value or None, FailureRecord or None)
    """
    try:
        return gen.value(source), None
    except InvalidData as exc:
        return None, FailureRecord.from_exception(OutcomeKind.INVALID, exc, source.to_words())
    except Exception as exc:
        return None, FailureRecord.from_exception(OutcomeKind.RUNTIME_FAULT, exc, source.to_words())
