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
"""Unit tests for the shrink search."""

import pytest

from quickdraw.core.bitstream import BufBitStream, GroupInfo
from quickdraw.core.primitives import REPEAT_LABEL
from quickdraw.engine.context import T, check_once
from quickdraw.engine.failure import OutcomeKind
from quickdraw.engine.runner import replay
from quickdraw.engine.shrinker import Shrinker, compare_data, minimize, without
from quickdraw.generators import custom, lists_of, lists_of_distinct


def _raw16(data):
    return data.source.draw_bits(16)


RAW16 = custom(_raw16)


def _bit(data):
    return data.source.draw_bits(1)


BIT = custom(_bit)

# continuation coin of 0.5 for collections of default size
COIN = 1 << 52


def _shrinker(prop, words, settings):
    s = BufBitStream(words)
    failure = check_once(T(s, settings), prop, RAW16)
    assert failure is not None and failure.is_failure
    return Shrinker(prop, (RAW16,), s.recorded, failure, settings)


def prop_small(t, v):
    assert v < 1000


def prop_faults(t, v):
    if v >= 1000:
        raise ValueError("too big")
    assert v < 10


class TestOrdering:
    """Tests for compare_data and without."""

    @pytest.mark.parametrize(
        "a, b, expected",
        [
            ([], [], 0),
            ([5], [1, 1], -1),
            ([1, 1], [5], 1),
            ([1, 2], [1, 3], -1),
            ([2, 0], [1, 9], 1),
            ([4, 4], [4, 4], 0),
        ],
    )
    def test_compare(self, a, b, expected):
        assert compare_data(a, b) == expected

    def test_without(self):
        data = [10, 11, 12, 13, 14]
        assert without(data, GroupInfo(1, 3, "g", True)) == [10, 13, 14]
        assert without(data, GroupInfo(0, 1, "a", True), GroupInfo(4, 5, "b", True)) == [11, 12, 13]


class TestMinimize:
    """Tests for the integer minimizer."""

    def test_threshold(self):
        assert minimize(1000, lambda v: v >= 37) == 37

    def test_always_true(self):
        assert minimize(2**64 - 1, lambda v: True) == 0

    def test_zero(self):
        assert minimize(0, lambda v: True) == 0

    def test_bit_pattern(self):
        assert minimize(2**64 - 1, lambda v: v & 0xF0 != 0) == 16

    def test_never_calls_larger_values(self):
        seen = []

        def cond(v):
            seen.append(v)
            return v % 7 == 3

        result = minimize(1000, cond)
        assert result % 7 == 3
        assert all(v < 1000 for v in seen)
        assert len(seen) == len(set(seen))


class TestShrinker:
    """Tests for Shrinker over raw word draws."""

    def test_minimizes_threshold(self, fast_settings):
        result = _shrinker(prop_small, [40000], fast_settings).shrink()
        assert result.words == (1000,)
        assert result.failure.kind is OutcomeKind.ASSERTION
        assert not result.exhausted
        failure, t = replay(prop_small, RAW16, buffer=result.words)
        assert failure is not None and failure.signature == result.failure.signature
        assert t.draws == [("arg0", 1000)]

    def test_keeps_failure_signature(self, fast_settings):
        shrinker = _shrinker(prop_faults, [40000], fast_settings)
        original = shrinker.failure
        assert original.kind is OutcomeKind.RUNTIME_FAULT
        result = shrinker.shrink()
        # values in [10, 1000) fail too, but with an AssertionError
        assert result.words == (1000,)
        assert result.failure.signature == original.signature
        assert result.failure.exc_type.endswith("ValueError")

    def test_history_is_monotone(self, fast_settings):
        result = _shrinker(prop_small, [65535], fast_settings).shrink()
        assert result.history[0] == (65535,)
        assert result.history[-1] == result.words
        assert result.shrinks == len(result.history) - 1
        for before, after in zip(result.history, result.history[1:]):
            assert compare_data(after, before) < 0
        assert sum(result.tries_by_pass.values()) == result.tries

    def test_rejects_candidates_that_are_not_simpler(self, fast_settings):
        shrinker = _shrinker(prop_small, [40000], fast_settings)
        assert not shrinker.accept([40000], "test")
        assert not shrinker.accept([40000, 0], "test")
        assert not shrinker.accept([40001], "test")
        assert shrinker.tries == 0

    def test_rejects_passing_candidates(self, fast_settings):
        shrinker = _shrinker(prop_small, [40000], fast_settings)
        assert not shrinker.accept([5], "test")
        assert shrinker.tries == 1
        assert shrinker.shrinks == 0
        # a repeated candidate is answered from the cache
        assert not shrinker.accept([5], "test")
        assert shrinker.tries == 1

    def test_accepts_simpler_failure(self, fast_settings):
        shrinker = _shrinker(prop_small, [40000], fast_settings)
        assert shrinker.accept([2000], "test")
        assert shrinker.rec.data == [2000]
        assert shrinker.tries_by_pass["test"] == 1

    def test_overrun_candidate_is_discarded(self, fast_settings):
        shrinker = _shrinker(prop_small, [40000], fast_settings)
        assert not shrinker.accept([], "test")
        assert shrinker.shrinks == 0

    def test_attempt_budget(self, fast_settings):
        settings = fast_settings.replace(max_shrink_attempts=0)
        result = _shrinker(prop_small, [40000], settings).shrink()
        assert result.exhausted
        assert result.tries == 0
        assert result.words == (40000,)


class TestShrinkerGroups:
    """Tests for group-aware passes."""

    def test_removes_list_elements(self, fast_settings):
        gen = lists_of(RAW16)

        def prop_short(t, xs):
            assert len(xs) < 2

        # continuation coins of 0.5 and zero elements, then a stop coin
        s = BufBitStream([1 << 52] * 6 + [0])
        failure = check_once(T(s, fast_settings), prop_short, gen)
        assert failure is not None
        result = Shrinker(prop_short, (gen,), s.recorded, failure, fast_settings).shrink()
        _, t = replay(prop_short, gen, buffer=result.words)
        assert len(t.draws[0][1]) == 2
        assert len(result.words) < 7

    def test_sibling_runs_stay_within_one_list(self, fast_settings):
        gen = lists_of(lists_of(RAW16))

        def prop_short(t, xss):
            assert len(xss) < 2

        # [[1], [2]]: each inner list holds one element and ends on a zero coin
        words = [COIN, COIN, 1, 0, COIN, COIN, 2, 0, 0]
        s = BufBitStream(words)
        failure = check_once(T(s, fast_settings), prop_short, gen)
        assert failure is not None
        shrinker = Shrinker(prop_short, (gen,), s.recorded, failure, fast_settings)
        spans = sorted([(g.begin, g.end) for g in run] for run in shrinker._sibling_runs())
        assert spans == [
            [(0, 4), (4, 8), (8, 9)],
            [(1, 3), (3, 4)],
            [(5, 7), (7, 8)],
        ]


# ==============================================================================
# Starting point
# ==============================================================================


def prop_one_bit(t, bits):
    assert len(bits) < 2


# two distinct bits, then six duplicates that force the list to stop
FORCED_STOP = [COIN, 0, COIN, 1] + [COIN, 0] * 6


class TestPrunedStart:
    """Tests for the sequence the shrinker starts from."""

    def test_forced_stop_recording_replays(self, fast_settings):
        gen = lists_of_distinct(BIT)
        s = BufBitStream(FORCED_STOP)
        failure = check_once(T(s, fast_settings), prop_one_bit, gen)
        assert failure is not None and failure.is_failure

        shrinker = Shrinker(prop_one_bit, (gen,), s.recorded, failure, fast_settings)
        again, _ = replay(prop_one_bit, gen, buffer=shrinker.rec.data)
        assert again is not None
        assert again.signature == failure.signature

        result = shrinker.shrink()
        again, t = replay(prop_one_bit, gen, buffer=result.words)
        assert again is not None
        assert again.signature == failure.signature
        assert sorted(t.draws[0][1]) == [0, 1]

    def test_unreplayable_pruning_keeps_full_recording(self, fast_settings):
        gen = lists_of_distinct(BIT)
        s = BufBitStream(FORCED_STOP)
        failure = check_once(T(s, fast_settings), prop_one_bit, gen)
        rec = s.recorded.copy()
        # dropping the duplicates loses the stop, and the pruned words overrun
        for g in rec.groups:
            if g.label == REPEAT_LABEL and g.begin >= 4 and g.size == 2:
                g.discard = True

        shrinker = Shrinker(prop_one_bit, (gen,), rec, failure, fast_settings)
        assert shrinker.rec.data == FORCED_STOP
        assert shrinker.failure.signature == failure.signature
