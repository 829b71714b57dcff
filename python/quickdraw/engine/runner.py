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
"""Property runner.

``check`` drives one property through three phases:

1. Search: run the property on fresh random streams until ``checks`` valid
   executions passed, too many were invalid, or one failed.
2. Confirm: replay the failing seed; a failure that does not come back with
   the same signature is reported as flaky instead of being shrunk.
3. Shrink: minimize the failing stream, replay the result once more with
   output captured and raise PropertyFailure carrying a FailureReport.

Seeds are explicit. Each attempt gets ``base + attempt`` where the base is
``settings.seed`` or a process-wide seed chosen once from os.urandom, so
every attempt is reproducible from the seed printed in a report. Checks of
different properties may run in parallel threads; they share nothing but the
base seed, which is read-only after it is chosen.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Union

from ..core.bitstream import BufBitStream, RandomBitStream, RecordedBits, decode_words
from ..core.errors import EntropyExhausted, PropertyFailure
from ..core.settings import DEFAULT_SETTINGS, Settings
from ..generators.base import Generator, callable_name, check_arity
from ..observability.collector import MetricsCollector, get_global_collector
from ..observability.metrics import CheckMetrics, FailureMetrics, ShrinkMetrics
from .context import Property, T, check_once
from .failure import FailureRecord, FailureReport, OutcomeKind
from .shrinker import Shrinker

logger = logging.getLogger(__name__)

_seed_lock = threading.Lock()
_base_seed: Optional[int] = None


def base_seed() -> int:
    """Process-wide base seed, chosen on first use."""
    global _base_seed
    with _seed_lock:
        if _base_seed is None:
            _base_seed = int.from_bytes(os.urandom(8), "big") >> 1
            logger.debug("chose base seed %d", _base_seed)
        return _base_seed


@dataclass
class BugSearch:
    """Result of the random search phase.

    Attributes:
        valid: Attempts that passed
        invalid: Attempts discarded as invalid
        exhausted: Invalid attempts caused by the entropy budget
        seed: Seed of the failing attempt, if any
        failure: FailureRecord of the failing attempt, if any
        rec: Recorded bits of the failing attempt, if any
    """

    valid: int = 0
    invalid: int = 0
    exhausted: int = 0
    seed: Optional[int] = None
    failure: Optional[FailureRecord] = None
    rec: Optional[RecordedBits] = None


@dataclass
class CheckResult:
    """Summary of a passing check."""

    property_name: str
    valid: int
    invalid: int
    seed: int
    duration: float


def find_bug(prop: Property, gens: Sequence[Generator], settings: Settings) -> BugSearch:
    """Run random attempts until a failure or until the budgets are spent."""
    base = settings.seed if settings.seed is not None else base_seed()
    result = BugSearch()
    attempt = 0
    while result.valid < settings.checks and result.invalid < settings.max_invalid:
        seed = base + attempt
        attempt += 1
        s = RandomBitStream(seed, settings.max_entropy_words, settings.filter_tries)
        t = T(s, settings, log_output=settings.verbose)
        failure = check_once(t, prop, *gens)
        if failure is None:
            result.valid += 1
        elif failure.kind is OutcomeKind.INVALID:
            result.invalid += 1
            if isinstance(failure.exception, EntropyExhausted):
                result.exhausted += 1
        else:
            result.seed = seed
            result.failure = failure
            result.rec = s.recorded
            break
    return result


def _rerun_seed(
    prop: Property, gens: Sequence[Generator], seed: int, settings: Settings
) -> Optional[FailureRecord]:
    s = RandomBitStream(seed, settings.max_entropy_words, settings.filter_tries)
    return check_once(T(s, settings), prop, *gens)


def _report(
    name: str,
    prop: Property,
    gens: Sequence[Generator],
    words: Sequence[int],
    fallback_words: Sequence[int],
    expected: FailureRecord,
    settings: Settings,
) -> Tuple[Tuple[int, ...], FailureRecord, T]:
    # final replay, with output echoed so the log shows the minimal example;
    # words that do not reproduce are never reported
    logger.warning("[quickdraw] replaying minimal failing example of %s", name)
    for candidate in (words, fallback_words):
        s = BufBitStream(candidate, settings.filter_tries)
        t = T(s, settings, log_output=True)
        failure = check_once(t, prop, *gens)
        if failure is not None and failure.signature == expected.signature:
            return tuple(candidate), failure, t
        logger.warning(
            "[quickdraw] %d-word example of %s did not fail the same way on replay",
            len(candidate),
            name,
        )
    return tuple(fallback_words), expected, t


def check(
    prop: Property,
    *gens: Generator,
    settings: Optional[Settings] = None,
    collector: Optional[MetricsCollector] = None,
) -> CheckResult:
    """Check that ``prop`` holds for values drawn from ``gens``.

    Args:
        prop: Callable taking a T followed by one argument per generator
            slot (generators of arity above one fill several slots)
        gens: Generators of the property arguments
        settings: Check settings; DEFAULT_SETTINGS when omitted
        collector: Sink for check, shrink and failure metrics; the global
            collector when omitted

    Returns:
        CheckResult when every attempt passed

    Raises:
        PropertyFailure: The property failed (the exception carries the
            minimized FailureReport), or too many attempts were invalid
    """
    settings = settings or DEFAULT_SETTINGS
    if collector is None:
        collector = get_global_collector()
    name = callable_name(prop)
    check_arity(prop, 1 + sum(g.arity for g in gens), "property")
    start = time.monotonic()

    found = find_bug(prop, gens, settings)
    base = settings.seed if settings.seed is not None else base_seed()

    if found.failure is None:
        duration = time.monotonic() - start
        if found.valid < settings.checks:
            _record(collector, name, found, "invalid", duration)
            hint = ""
            if found.exhausted == found.invalid:
                hint = " (entropy budget exhausted; raise max_entropy_words)"
            raise PropertyFailure(
                f"[quickdraw] {name}: only {found.valid} valid examples out of "
                f"{found.valid + found.invalid} attempts{hint}"
            )
        _record(collector, name, found, "passed", duration)
        logger.info(
            "[quickdraw] OK %s, passed %d tests (%.3fs)", name, found.valid, duration
        )
        return CheckResult(name, found.valid, found.invalid, base, duration)

    original = found.failure
    logger.warning(
        "[quickdraw] %s failed after %d tests (seed %d): %s",
        name,
        found.valid,
        found.seed,
        original.describe(),
    )

    again = _rerun_seed(prop, gens, found.seed, settings)
    if again is None or again.signature != original.signature:
        report = FailureReport(
            property_name=name,
            failure=again if again is not None and again.is_failure else original,
            words=original.words,
            seed=found.seed,
            valid=found.valid,
            invalid=found.invalid,
            original=original,
            flaky=True,
        )
        _record(collector, name, found, "flaky", time.monotonic() - start)
        _record_failure(collector, report)
        raise PropertyFailure(report.format(), report)

    shrunk = Shrinker(prop, gens, found.rec, original, settings).shrink()
    logger.info(
        "[quickdraw] shrunk %s %d times in %d tries (%.3fs)",
        name,
        shrunk.shrinks,
        shrunk.tries,
        shrunk.duration,
    )

    words, failure, t = _report(
        name, prop, gens, shrunk.words, found.rec.data, shrunk.failure, settings
    )
    report = FailureReport(
        property_name=name,
        failure=failure,
        words=words,
        draws=list(t.draws),
        output=list(t.output),
        seed=found.seed,
        valid=found.valid,
        invalid=found.invalid,
        original=original,
        shrink_tries=shrunk.tries,
        shrinks=shrunk.shrinks,
    )
    collector.record_shrink(
        ShrinkMetrics(
            property_name=name,
            tries=shrunk.tries,
            shrinks=shrunk.shrinks,
            tries_by_pass=dict(shrunk.tries_by_pass),
            duration=shrunk.duration,
            exhausted=shrunk.exhausted,
        )
    )
    _record(collector, name, found, "failed", time.monotonic() - start)
    _record_failure(collector, report)
    raise PropertyFailure(report.format(), report)


def _record(
    collector: MetricsCollector,
    name: str,
    found: BugSearch,
    outcome: str,
    duration: float,
) -> None:
    collector.record_check(
        CheckMetrics(
            property_name=name,
            valid=found.valid,
            invalid=found.invalid,
            exhausted=found.exhausted,
            duration=duration,
            outcome=outcome,
        )
    )


def _record_failure(collector: MetricsCollector, report: FailureReport) -> None:
    collector.record_failure(
        FailureMetrics(
            property_name=report.property_name,
            kind=report.failure.kind.value,
            message=report.failure.message,
            seed=report.seed,
            buffer_hex=report.hex,
            flaky=report.flaky,
        )
    )


def make_check(
    prop: Property,
    *gens: Generator,
    settings: Optional[Settings] = None,
    collector: Optional[MetricsCollector] = None,
) -> Callable[[], CheckResult]:
    """Bind ``prop`` into a zero-argument callable, e.g. a pytest test.

    Example:
        >>> test_reverse = make_check(
        ...     lambda t, xs: t.fatal("!") if xs[::-1][::-1] != xs else None,
        ...     lists_of(ints()),
        ... )
    """

    def run() -> CheckResult:
        return check(prop, *gens, settings=settings, collector=collector)

    run.__name__ = getattr(prop, "__name__", "check")
    run.__qualname__ = getattr(prop, "__qualname__", run.__name__)
    run.__doc__ = prop.__doc__
    return run


def replay(
    prop: Property,
    *gens: Generator,
    buffer: Union[bytes, str, Sequence[int]],
    settings: Optional[Settings] = None,
) -> Tuple[Optional[FailureRecord], T]:
    """Run ``prop`` once over a buffer taken from a FailureReport.

    Args:
        buffer: ``report.buffer`` bytes, ``report.hex`` or ``report.words``

    Returns:
        Tuple of (FailureRecord or None when the property passed, the T the
        property ran with)
    """
    settings = settings or DEFAULT_SETTINGS
    if isinstance(buffer, str):
        words = decode_words(bytes.fromhex(buffer))
    elif isinstance(buffer, (bytes, bytearray)):
        words = decode_words(bytes(buffer))
    else:
        words = list(buffer)
    t = T(BufBitStream(words, settings.filter_tries), settings, log_output=settings.verbose)
    return check_once(t, prop, *gens), t


__all__ = [
    "BugSearch",
    "CheckResult",
    "base_seed",
    "check",
    "find_bug",
    "make_check",
    "replay",
]
