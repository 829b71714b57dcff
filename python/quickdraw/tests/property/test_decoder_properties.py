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
"""Property-based tests for the bit-level decoders.

Decoders are fed arbitrary word sequences (the same inputs the shrinker
produces) and must stay inside their ranges or stop with InvalidData.
"""

import math

from hypothesis import given, settings, strategies as st

from quickdraw.core.bitstream import WORD_MASK, BufBitStream, RandomBitStream
from quickdraw.core.errors import InvalidData
from quickdraw.core.floats import FLOAT64_EXP_BITS, FLOAT64_SIGNIF_BITS, gen_float_range
from quickdraw.core.primitives import LoadedDie, Repeat, gen_int_range, gen_uint_range
from quickdraw.generators import (
    booleans,
    dicts_of_n,
    ints,
    ints_range,
    lists_of,
    lists_of_n,
    lists_of_n_distinct,
    sets_of,
    text,
)


# =============================================================================
# Strategies
# =============================================================================

words = st.lists(st.integers(min_value=0, max_value=WORD_MASK), max_size=64)
int64s = st.integers(min_value=-(2**63), max_value=2**63 - 1)
finite_floats = st.floats(allow_nan=False, allow_infinity=False)


@st.composite
def int_ranges(draw):
    a, b = draw(int64s), draw(int64s)
    return min(a, b), max(a, b)


@st.composite
def float_ranges(draw):
    a, b = draw(finite_floats), draw(finite_floats)
    return min(a, b), max(a, b)


# =============================================================================
# Integers
# =============================================================================


class TestIntegerDecoding:
    """Ranged integers never leave their bounds."""

    @given(words=words, bounds=int_ranges(), biased=st.booleans())
    def test_int_range(self, words, bounds, biased):
        lo, hi = bounds
        try:
            v = gen_int_range(BufBitStream(words), lo, hi, biased)
        except InvalidData:
            return
        assert lo <= v <= hi

    @given(words=words, lo=st.integers(0, 2**64 - 1), span=st.integers(0, 2**20), biased=st.booleans())
    def test_uint_range(self, words, lo, span, biased):
        hi = min(lo + span, 2**64 - 1)
        try:
            v = gen_uint_range(BufBitStream(words), lo, hi, biased)
        except InvalidData:
            return
        assert lo <= v <= hi

    @given(bounds=int_ranges(), biased=st.booleans())
    def test_zero_words_decode_to_simplest(self, bounds, biased):
        lo, hi = bounds
        v = gen_int_range(BufBitStream([0] * 8), lo, hi, biased)
        if lo <= 0 <= hi:
            assert v == 0
        else:
            assert v == (lo if lo > 0 else hi)


# =============================================================================
# Floats
# =============================================================================


class TestFloatDecoding:
    """Ranged floats never leave their bounds."""

    @given(words=words, bounds=float_ranges())
    def test_float_range(self, words, bounds):
        lo, hi = bounds
        try:
            v = gen_float_range(BufBitStream(words), lo, hi, FLOAT64_EXP_BITS, FLOAT64_SIGNIF_BITS)
        except InvalidData:
            return
        assert not math.isnan(v)
        assert lo <= v <= hi

    @given(seed=st.integers(0, 2**32), bounds=float_ranges())
    def test_random_floats(self, seed, bounds):
        lo, hi = bounds
        v = gen_float_range(RandomBitStream(seed), lo, hi, FLOAT64_EXP_BITS, FLOAT64_SIGNIF_BITS)
        assert lo <= v <= hi


# =============================================================================
# Dice and repeats
# =============================================================================


class TestDiceAndRepeats:
    """Weighted dice and element loops."""

    @given(
        weights=st.lists(st.integers(0, 10), min_size=1, max_size=12).filter(any),
        seed=st.integers(0, 2**32),
    )
    def test_die_never_rolls_zero_weight(self, weights, seed):
        die = LoadedDie(weights)
        s = RandomBitStream(seed)
        for _ in range(20):
            assert weights[die.roll(s)] > 0

    @given(words=words, min_count=st.integers(0, 5), extra=st.integers(0, 5))
    def test_repeat_counts(self, words, min_count, extra):
        max_count = min_count + extra
        rep = Repeat(min_count, max_count)
        s = BufBitStream(words)
        n = 0
        try:
            while rep.more(s):
                n += 1
        except InvalidData:
            return
        assert min_count <= n <= max_count
        assert rep.count == n


# =============================================================================
# Generators
# =============================================================================


class TestGeneratorReplay:
    """Recorded words replay to the value they produced."""

    @settings(max_examples=50)
    @given(seed=st.integers(0, 2**32))
    def test_replay(self, seed):
        for gen in (lists_of(ints()), text(), dicts_of_n(ints_range(0, 9), ints(), 0, 4)):
            s = RandomBitStream(seed)
            v = gen.value(s)
            assert gen.value(BufBitStream(s.to_words())) == v

    @settings(max_examples=50)
    @given(seed=st.integers(0, 2**32))
    def test_pruned_recording_replays(self, seed):
        gen = lists_of_n_distinct(ints_range(0, 30).filter(lambda v: v % 3 == 0), 0, 6)
        s = RandomBitStream(seed)
        try:
            v = gen.value(s)
        except InvalidData:
            return
        rec = s.recorded.copy()
        rec.prune()
        assert len(rec.data) <= len(s.to_words())
        assert gen.value(BufBitStream(rec.data)) == v

    @settings(max_examples=50)
    @given(seed=st.integers(0, 2**32))
    def test_pruned_small_domain_replays(self, seed):
        """Distinct collections that run out of fresh elements still replay."""
        gens = (
            lists_of_n_distinct(ints_range(0, 2), -1, -1),
            sets_of(booleans()),
            dicts_of_n(booleans(), ints(), -1, -1),
        )
        for gen in gens:
            s = RandomBitStream(seed)
            v = gen.value(s)
            rec = s.recorded.copy()
            rec.prune()
            assert gen.value(BufBitStream(rec.data)) == v

    @given(words=words, min_len=st.integers(0, 3), extra=st.integers(0, 3))
    def test_list_lengths(self, words, min_len, extra):
        gen = lists_of_n(ints(), min_len, min_len + extra)
        try:
            xs = gen.value(BufBitStream(words))
        except InvalidData:
            return
        assert min_len <= len(xs) <= min_len + extra
