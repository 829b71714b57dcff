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
"""Bit-level decoders: coins, dice, ranged integers and repetition.

All decoders share one rule: an all-zero stream decodes to the "simplest"
value (false, the low end of a range, the first alternative, an empty
collection). The shrinker only ever moves words toward zero, so this rule is
what turns bit-level shrinking into value-level shrinking.

Key Components:
    - flip_biased_coin: boolean with probability ``p`` of being true
    - gen_uint_n / gen_uint_range / gen_int_range: ranged integers, either
      unbiased (rejection sampling) or biased toward small magnitudes and
      the range boundaries
    - LoadedDie: weighted index via Vose's alias method
    - Repeat: continuation-coin driver for variable-length collections
"""

from __future__ import annotations

import math
import sys
from typing import List, Sequence, Tuple

from .bitstream import BitStream, bitmask
from .errors import ConfigurationError, EngineError, InvalidData

BIAS_LABEL = "bias"
INT_BITS_LABEL = "intbits"
COIN_FLIP_LABEL = "coinflip"
DIE_ROLL_LABEL = "dieroll"
REPEAT_LABEL = "repeat"

FLOAT01_BITS = 53
SMALL = 5

# Probability that a biased draw lands exactly on one of the range ends.
BOUNDARY_PROBABILITY = 0.1
# Lower bound on the mean bit length of a biased draw.
MIN_MEAN_BITS = 4.0


def gen_float01(s: BitStream) -> float:
    """Uniform float in [0, 1) from one 53-bit word."""
    return s.draw_bits(FLOAT01_BITS) * 2.0**-FLOAT01_BITS


def gen_geom(s: BitStream, p: float) -> int:
    """Geometric variate (number of failures before the first success)."""
    if not 0 < p <= 1:
        raise EngineError(f"geometric parameter {p} outside (0, 1]")
    f = gen_float01(s)
    if p == 1:
        return 0
    return int(math.log1p(-f) / math.log1p(-p))


def flip_biased_coin(s: BitStream, p: float) -> bool:
    """Return True with probability ``p``.

    ``p == 0`` and ``p == 1`` are exact and consume no entropy. Otherwise a
    single word is drawn inside a ``coinflip`` group; a zero word is False.
    """
    if not 0 <= p <= 1:
        raise EngineError(f"coin bias {p} outside [0, 1]")
    if p == 0:
        return False
    if p == 1:
        return True
    i = s.begin_group(COIN_FLIP_LABEL, False)
    f = gen_float01(s)
    s.end_group(i)
    return f >= 1 - p


def _gen_uint_n_unbiased(s: BitStream, max_value: int) -> int:
    bitlen = max_value.bit_length()
    while True:
        i = s.begin_group(INT_BITS_LABEL, False)
        u = s.draw_bits(bitlen)
        ok = u <= max_value
        s.end_group(i, not ok)
        if ok:
            return u


def _gen_uint_n_biased(s: BitStream, max_value: int) -> Tuple[int, int]:
    bitlen = max_value.bit_length()
    i = s.begin_group(BIAS_LABEL, False)
    if flip_biased_coin(s, BOUNDARY_PROBABILITY):
        at_max = flip_biased_coin(s, 0.5)
        s.end_group(i)
        return (max_value if at_max else 0), bitlen
    mean = max(MIN_MEAN_BITS, bitlen / 4)
    width = min(gen_geom(s, 1 / (mean + 1)), bitlen)
    s.end_group(i)
    if width == 0:
        return 0, 0
    j = s.begin_group(INT_BITS_LABEL, False)
    u = s.draw_bits(width)
    s.end_group(j)
    return min(u, max_value), width


def gen_uint_n(s: BitStream, max_value: int, biased: bool) -> Tuple[int, int]:
    """Draw an integer in [0, max_value].

    Returns:
        Tuple of (value, number of significant bits the draw covered)
    """
    if max_value < 0:
        raise EngineError(f"negative upper bound {max_value}")
    if max_value == 0:
        return 0, 0
    if biased:
        return _gen_uint_n_biased(s, max_value)
    return _gen_uint_n_unbiased(s, max_value), max_value.bit_length()


def gen_uint_range_width(s: BitStream, lo: int, hi: int, biased: bool) -> Tuple[int, int]:
    """Like gen_uint_range, also returning the significant width drawn."""
    if lo > hi:
        raise ConfigurationError(f"invalid range [{lo}, {hi}]")
    if lo < 0:
        raise EngineError(f"unsigned range with negative bound {lo}")
    u, width = gen_uint_n(s, hi - lo, biased)
    return lo + u, width


def gen_uint_range(s: BitStream, lo: int, hi: int, biased: bool) -> int:
    """Draw an integer in [lo, hi] for 0 <= lo <= hi."""
    return gen_uint_range_width(s, lo, hi, biased)[0]


def gen_int_range(s: BitStream, lo: int, hi: int, biased: bool) -> int:
    """Draw a signed integer in [lo, hi].

    A range crossing zero is split into a negative and a non-negative half
    chosen by a coin; the zero coin picks the non-negative half so that
    shrinking moves toward zero from both sides.
    """
    if lo > hi:
        raise ConfigurationError(f"invalid range [{lo}, {hi}]")
    if lo == hi:
        return lo
    if lo >= 0:
        return gen_uint_range(s, lo, hi, biased)
    if hi <= 0:
        return -gen_uint_range(s, -hi, -lo, biased)

    p_neg = 0.5 if biased else (-lo) / ((-lo) + hi + 1)
    if flip_biased_coin(s, p_neg):
        return -gen_uint_range(s, 1, -lo, biased)
    return gen_uint_range(s, 0, hi, biased)


def gen_index(s: BitStream, n: int, biased: bool) -> int:
    """Draw an index in [0, n)."""
    if n < 1:
        raise EngineError(f"index range of size {n}")
    return gen_uint_n(s, n - 1, biased)[0]


class LoadedDie:
    """Weighted die built with Vose's alias method.

    Rolling draws a uniform column and then a coin choosing between the
    column and its alias. A zero stream rolls column 0.
    """

    def __init__(self, weights: Sequence[float]):
        n = len(weights)
        if n == 0:
            raise ConfigurationError("loaded die needs at least one weight")
        if any(w < 0 or w != w for w in weights):
            raise ConfigurationError(f"weights must be non-negative numbers, got {list(weights)}")
        total = float(sum(weights))
        if total <= 0:
            raise ConfigurationError("at least one weight must be positive")

        scaled = [w * n / total for w in weights]
        self.prob: List[float] = [0.0] * n
        self.alias: List[int] = [0] * n
        small = [i for i, w in enumerate(scaled) if w < 1]
        large = [i for i, w in enumerate(scaled) if w >= 1]
        while small and large:
            lo = small.pop()
            hi = large.pop()
            self.prob[lo] = scaled[lo]
            self.alias[lo] = hi
            scaled[hi] = scaled[hi] + scaled[lo] - 1
            (small if scaled[hi] < 1 else large).append(hi)
        for i in small + large:
            self.prob[i] = 1.0
            self.alias[i] = i

    def __len__(self) -> int:
        return len(self.prob)

    def roll(self, s: BitStream) -> int:
        i = s.begin_group(DIE_ROLL_LABEL, False)
        column = gen_index(s, len(self.prob), False)
        use_alias = flip_biased_coin(s, 1 - self.prob[column])
        s.end_group(i)
        return self.alias[column] if use_alias else column


class Repeat:
    """Drives the element loop of variable-length collections.

    Each element lives in its own ``repeat`` call group holding the
    continuation coin and the element's draws, so the shrinker can delete
    single elements. Below ``min_count`` the coin is forced to true and at
    ``max_count`` to false; neither consumes entropy.

    Rejected elements are discarded groups, except once enough rejections
    pile up to force a stop. The forced stop draws no coin, so the rejected
    groups that caused it stay in the stream and a pruned recording reaches
    the same stop on replay.

    Example:
        >>> rep = Repeat(0, 10)
        >>> while rep.more(stream):
        ...     items.append(elem.value(stream))
    """

    def __init__(self, min_count: int, max_count: int, avg_count: float = -1.0):
        if min_count < 0:
            min_count = 0
        if max_count < 0:
            max_count = sys.maxsize
        if min_count > max_count:
            raise ConfigurationError(f"invalid count range [{min_count}, {max_count}]")
        if avg_count < 0:
            avg_count = min_count + min(max(min_count, SMALL), (max_count - min_count) / 2)

        self.min_count = min_count
        self.max_count = max_count
        self.avg_count = avg_count
        self.p_continue = 1 - 1 / (1 + avg_count - min_count)
        self.count = 0
        self.rejections = 0
        self._group = -1
        self._rejected = False
        self._rejected_groups: List[int] = []
        self._force_stop = False

    def avg(self) -> int:
        return int(math.ceil(self.avg_count))

    def more(self, s: BitStream) -> bool:
        """Decide whether another element follows."""
        if self._group >= 0:
            if self._force_stop:
                for token in self._rejected_groups:
                    s.keep_group(token)
                self._rejected = False
            elif self._rejected:
                self._rejected_groups.append(self._group)
            s.end_group(self._group, self._rejected)
        self._group = s.begin_group(REPEAT_LABEL, True)
        self._rejected = False

        p = self.p_continue
        if self.count < self.min_count:
            p = 1.0
        elif self._force_stop or self.count >= self.max_count:
            p = 0.0

        cont = flip_biased_coin(s, p)
        if cont:
            self.count += 1
        else:
            s.end_group(self._group)
            self._group = -1
        return cont

    def reject(self) -> None:
        """Discard the element drawn since the last ``more`` call."""
        if self.count <= 0:
            raise EngineError("reject() called before any element was drawn")
        self.count -= 1
        self._rejected = True
        self.rejections += 1
        if self.rejections > max(SMALL, self.count * 2):
            if self.count >= self.min_count:
                self._force_stop = True
            else:
                raise InvalidData(
                    f"too many rejections ({self.rejections}) while drawing "
                    f"{self.min_count} elements"
                )


__all__ = [
    "BIAS_LABEL",
    "INT_BITS_LABEL",
    "COIN_FLIP_LABEL",
    "DIE_ROLL_LABEL",
    "REPEAT_LABEL",
    "SMALL",
    "bitmask",
    "gen_float01",
    "gen_geom",
    "flip_biased_coin",
    "gen_uint_n",
    "gen_uint_range",
    "gen_uint_range_width",
    "gen_int_range",
    "gen_index",
    "LoadedDie",
    "Repeat",
]
