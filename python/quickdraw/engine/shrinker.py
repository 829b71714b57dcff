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
"""Shrink search over recorded bit streams.

The shrinker never looks at decoded values. It rewrites the failing word
sequence into candidates that are strictly simpler (shorter, or equally long
and lexicographically smaller), replays each through the property, and
adopts a candidate only when it fails with the same signature as the
original failure. Groups recorded during replay tell it where sub-draws
begin and end.

Passes per round:
    1. remove_groups: delete a whole call group (list element, optional
       branch, sub-draw)
    2. zero_groups: replace a call group's words with zeros
    3. minimize_blocks: minimize each word on its own
When a round makes no progress the expensive passes run:
    4. lower_float_exp: lower a float exponent while maxing its significand
    5. remove_groups_and_lower: delete a group while decrementing an
       earlier word (a length or a count that the group depended on)
    6. sort_groups: sort runs of adjacent same-label sibling groups
    7. remove_group_spans: delete several adjacent sibling groups at once

The search stops when a full round makes no progress or when the attempt or
time budget runs out; in both cases the best failure found so far is
returned.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from ..core.bitstream import WORD_MASK, BufBitStream, GroupInfo, RecordedBits, encode_words
from ..core.floats import FLOAT_EXP_LABEL, FLOAT_SIGNIF_LABEL
from ..core.primitives import SMALL
from ..core.settings import DEFAULT_SETTINGS, Settings
from ..generators.base import Generator
from .context import Property, T, check_once
from .failure import FailureRecord

logger = logging.getLogger(__name__)

# How many preceding words remove_groups_and_lower tries to decrement.
LOWER_WINDOW = 8


def compare_data(a: Sequence[int], b: Sequence[int]) -> int:
    """Order word sequences: shorter first, then lexicographically.

    Returns:
        -1 if ``a`` is simpler than ``b``, 1 if ``b`` is simpler, else 0
    """
    if len(a) != len(b):
        return -1 if len(a) < len(b) else 1
    for x, y in zip(a, b):
        if x != y:
            return -1 if x < y else 1
    return 0


def without(data: Sequence[int], *groups: GroupInfo) -> List[int]:
    """Copy of ``data`` with the words spanned by ``groups`` removed."""
    drop = [False] * len(data)
    for g in groups:
        for k in range(g.begin, g.end):
            drop[k] = True
    return [u for u, d in zip(data, drop) if not d]


class _Minimizer:
    def __init__(self, best: int, cond: Callable[[int], bool]):
        self.best = best
        self.cond = cond
        self.tried: Set[int] = set()

    def accept(self, u: int) -> bool:
        if u >= self.best or u in self.tried:
            return False
        self.tried.add(u)
        if self.cond(u):
            self.best = u
            return True
        return False

    def run(self) -> int:
        for u in range(min(SMALL, self.best)):
            if self.accept(u):
                return u
        if self.best <= SMALL:
            return self.best

        self.shift_right()
        self.unset_bits()
        self.sort_bits()
        self.binary_search()
        return self.best

    def shift_right(self) -> None:
        while self.accept(self.best >> 1):
            pass

    def unset_bits(self) -> None:
        for i in reversed(range(self.best.bit_length())):
            self.accept(self.best & ~(1 << i))

    def sort_bits(self) -> None:
        # Move set high bits into unset low positions.
        for i in reversed(range(self.best.bit_length())):
            h = 1 << i
            if not self.best & h:
                continue
            for j in range(i):
                lo = 1 << j
                if not self.best & lo and self.accept(self.best ^ (lo | h)):
                    break

    def binary_search(self) -> None:
        if not self.accept(self.best - 1):
            return
        lo, hi = 0, self.best
        while lo < hi:
            mid = lo + (hi - lo) // 2
            if self.accept(mid):
                hi = mid
            else:
                lo = mid + 1


def minimize(u: int, cond: Callable[[int], bool]) -> int:
    """Find a small ``v <= u`` with ``cond(v)`` true.

    ``cond(u)`` is assumed to hold. The result is locally minimal with
    respect to the moves tried, not necessarily globally minimal.

    Example:
        >>> minimize(1000, lambda v: v >= 37)
        37
    """
    return _Minimizer(u, cond).run()


class _BudgetExhausted(Exception):
    pass


@dataclass
class ShrinkResult:
    """Outcome of a shrink search.

    Attributes:
        words: The simplest failing word sequence found
        failure: FailureRecord produced by replaying ``words``
        tries: Candidates replayed
        shrinks: Candidates adopted
        history: Every adopted sequence, starting with the input
        tries_by_pass: Candidates replayed per pass name
        rounds: Completed rounds
        duration: Wall-clock seconds spent
        exhausted: True when the search stopped on its budget
    """

    words: Tuple[int, ...]
    failure: FailureRecord
    tries: int
    shrinks: int
    history: List[Tuple[int, ...]] = field(default_factory=list)
    tries_by_pass: Dict[str, int] = field(default_factory=dict)
    rounds: int = 0
    duration: float = 0.0
    exhausted: bool = False


class Shrinker:
    """Minimizes the bit stream of a failing property execution.

    Args:
        prop: The property, called as ``prop(t, *values)``
        gens: Generators of the property arguments
        rec: Recorded bits of the failing execution
        failure: FailureRecord of the failing execution
        settings: Supplies the attempt and time budgets
    """

    def __init__(
        self,
        prop: Property,
        gens: Sequence[Generator],
        rec: RecordedBits,
        failure: FailureRecord,
        settings: Optional[Settings] = None,
    ):
        self.prop = prop
        self.gens = tuple(gens)
        self.settings = settings or DEFAULT_SETTINGS
        self.rec, self.failure = self._settle(rec.copy(), failure)

        self.tries = 0
        self.shrinks = 0
        self.history: List[Tuple[int, ...]] = [tuple(self.rec.data)]
        self.tries_by_pass: Counter = Counter()
        self._cache: Set[Tuple[int, ...]] = {tuple(self.rec.data)}
        self._deadline = 0.0

    def shrink(self) -> ShrinkResult:
        """Run rounds of passes until no progress or the budget is spent."""
        start = time.monotonic()
        self._deadline = start + self.settings.shrink_time_limit
        rounds = 0
        exhausted = False
        try:
            while True:
                before = self.shrinks
                self._remove_groups()
                self._zero_groups()
                self._minimize_blocks()
                if self.shrinks == before:
                    self._lower_float_exp()
                    self._remove_groups_and_lower()
                    self._sort_groups()
                    self._remove_group_spans()
                rounds += 1
                logger.debug(
                    "shrink round %d: %d words, %d shrinks in %d tries",
                    rounds,
                    len(self.rec.data),
                    self.shrinks,
                    self.tries,
                )
                if self.shrinks == before:
                    break
        except _BudgetExhausted:
            exhausted = True
            logger.debug("shrink budget exhausted after %d tries", self.tries)

        return ShrinkResult(
            words=tuple(self.rec.data),
            failure=self.failure,
            tries=self.tries,
            shrinks=self.shrinks,
            history=list(self.history),
            tries_by_pass=dict(self.tries_by_pass),
            rounds=rounds,
            duration=time.monotonic() - start,
            exhausted=exhausted,
        )

    def replay(self, words: Sequence[int]) -> Tuple[RecordedBits, Optional[FailureRecord]]:
        """Run the property once over ``words``."""
        s = BufBitStream(words, self.settings.filter_tries)
        t = T(s, self.settings)
        return s.recorded, check_once(t, self.prop, *self.gens)

    def accept(self, data: Sequence[int], pass_name: str) -> bool:
        """Adopt ``data`` if it is simpler and fails the same way.

        Returns:
            True when the candidate replaced the current best sequence
        """
        if compare_data(data, self.rec.data) >= 0:
            return False
        key = tuple(data)
        if key in self._cache:
            return False
        self._cache.add(key)
        self._spend()
        self.tries += 1
        self.tries_by_pass[pass_name] += 1

        rec, failure = self.replay(data)
        if failure is None or failure.signature != self.failure.signature:
            if self.settings.debug_shrink:
                logger.debug(
                    "%s rejected %s: %s",
                    pass_name,
                    encode_words(data).hex(),
                    "passed" if failure is None else failure.describe(),
                )
            return False

        self.rec, self.failure = self._settle(rec, failure)
        self.shrinks += 1
        self.history.append(tuple(self.rec.data))
        self._cache.add(tuple(self.rec.data))
        logger.debug("%s accepted candidate of %d words", pass_name, len(self.rec.data))
        return True

    def _settle(
        self, rec: RecordedBits, failure: FailureRecord
    ) -> Tuple[RecordedBits, FailureRecord]:
        """Prune ``rec`` when the pruned words still fail the same way.

        The unpruned recording always replays, so it is kept whenever the
        pruned one decodes differently.
        """
        pruned = rec.copy()
        pruned.prune()
        if pruned.data == rec.data:
            return pruned, failure
        _, again = self.replay(pruned.data)
        if again is not None and again.signature == failure.signature:
            return pruned, again
        logger.debug(
            "pruned sequence of %d words no longer fails; keeping all %d",
            len(pruned.data),
            len(rec.data),
        )
        return rec, failure

    def _spend(self) -> None:
        if self.tries >= self.settings.max_shrink_attempts:
            raise _BudgetExhausted()
        if time.monotonic() > self._deadline:
            raise _BudgetExhausted()

    def _call_groups(self) -> List[Tuple[int, GroupInfo]]:
        return [(i, g) for i, g in enumerate(self.rec.groups) if g.is_call and g.size > 0]

    def _group_at(self, index: int) -> Optional[GroupInfo]:
        if index < len(self.rec.groups):
            return self.rec.groups[index]
        return None

    def _remove_groups(self) -> None:
        for i in reversed(range(len(self.rec.groups))):
            g = self._group_at(i)
            if g is None or not g.is_call or g.size == 0:
                continue
            self.accept(without(self.rec.data, g), "remove_groups")

    def _zero_groups(self) -> None:
        for i in reversed(range(len(self.rec.groups))):
            g = self._group_at(i)
            if g is None or not g.is_call or g.size == 0:
                continue
            buf = list(self.rec.data)
            if not any(buf[g.begin:g.end]):
                continue
            buf[g.begin:g.end] = [0] * g.size
            self.accept(buf, "zero_groups")

    def _minimize_blocks(self) -> None:
        k = len(self.rec.data) - 1
        while k >= 0:
            if k < len(self.rec.data) and self.rec.data[k]:
                minimize(self.rec.data[k], self._block_cond(k))
            k -= 1

    def _block_cond(self, k: int) -> Callable[[int], bool]:
        def cond(u: int) -> bool:
            if k >= len(self.rec.data):
                return False
            buf = list(self.rec.data)
            buf[k] = u
            return self.accept(buf, "minimize_blocks")

        return cond

    def _lower_float_exp(self) -> None:
        for i in reversed(range(len(self.rec.groups))):
            g = self._group_at(i)
            if g is None or g.label != FLOAT_EXP_LABEL or g.size == 0:
                continue
            signif = next(
                (
                    h
                    for h in self.rec.groups[i + 1:]
                    if h.label == FLOAT_SIGNIF_LABEL and h.begin == g.end
                ),
                None,
            )
            last = g.end - 1
            if signif is None or not self.rec.data[last]:
                continue
            buf = list(self.rec.data)
            buf[last] -= 1
            for k in range(signif.begin, signif.end):
                buf[k] = WORD_MASK
            self.accept(buf, "lower_float_exp")

    def _remove_groups_and_lower(self) -> None:
        for i in reversed(range(len(self.rec.groups))):
            g = self._group_at(i)
            if g is None or not g.is_call or g.size == 0:
                continue
            for k in range(g.begin - 1, max(-1, g.begin - 1 - LOWER_WINDOW), -1):
                if not self.rec.data[k]:
                    continue
                buf = list(self.rec.data)
                buf[k] -= 1
                if self.accept(without(buf, g), "remove_groups_and_lower"):
                    break

    def _sibling_runs(self) -> List[List[GroupInfo]]:
        """Runs of adjacent call groups sharing a label and a parent call group."""
        groups = self.rec.groups
        runs: List[List[GroupInfo]] = []
        by_end: Dict[Tuple[int, int, str], List[GroupInfo]] = {}
        enclosing: List[int] = []
        for i, g in enumerate(groups):
            while enclosing and 0 <= groups[enclosing[-1]].end <= g.begin:
                enclosing.pop()
            if g.is_call and g.size > 0:
                parent = next((j for j in reversed(enclosing) if groups[j].is_call), -1)
                run = by_end.pop((parent, g.begin, g.label), None)
                if run is None:
                    run = [g]
                    runs.append(run)
                else:
                    run.append(g)
                by_end[(parent, g.end, g.label)] = run
            enclosing.append(i)
        return [run for run in runs if len(run) > 1]

    def _sort_groups(self) -> None:
        for run in self._sibling_runs():
            data = self.rec.data
            begin, end = run[0].begin, run[-1].end
            if end > len(data):
                continue
            spans = [data[g.begin:g.end] for g in run]
            ordered = sorted(spans, key=lambda sp: (len(sp), sp))
            buf = list(data[:begin])
            for sp in ordered:
                buf.extend(sp)
            buf.extend(data[end:])
            if self.accept(buf, "sort_groups"):
                return

    def _remove_group_spans(self) -> None:
        for run in self._sibling_runs():
            n = len(run)
            while n >= 2:
                for start in range(len(run) - n, -1, -1):
                    if run[-1].end > len(self.rec.data):
                        return
                    if self.accept(without(self.rec.data, *run[start:start + n]), "remove_group_spans"):
                        # group indices are stale after an adoption
                        return
                n //= 2
