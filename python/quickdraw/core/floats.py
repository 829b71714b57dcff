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
"""Floating-point decoding with explicit exponent/significand splitting.

A float in [min, max] is decoded in three steps:

1. Sign: a coin biased by ``log1p(log1p(|bound|))`` of each side picks the
   negative or the non-negative sub-range, so ranges like [-1, 1e300] still
   produce negative values regularly.
2. Magnitude: the exponent is drawn (biased) inside the band spanned by the
   sub-range bounds, then the significand, split into an integer part
   (bounded by the boundary significands when the exponent coincides with a
   boundary exponent) and a fractional part.
3. Canonicalisation: the fractional significand is shifted left while it
   stays in range, so that short encodings of "round" numbers collapse onto
   one bit pattern.

The shrinker works on words, never on decoded floats, so step 3 is what
keeps redundant encodings out of its way.

Values are assembled in the 64-bit layout regardless of target width; a
32-bit target only restricts exponent and significand widths (8/23 instead
of 11/52), so every produced value converts to float32 exactly.
"""

from __future__ import annotations

import math
import struct
from typing import Tuple

from .bitstream import BitStream, bitmask
from .errors import ConfigurationError, EngineError
from .primitives import flip_biased_coin, gen_int_range, gen_uint_range, gen_uint_range_width

FLOAT32_EXP_BITS = 8
FLOAT32_SIGNIF_BITS = 23

FLOAT64_EXP_BITS = 11
FLOAT64_SIGNIF_BITS = 52

FLOAT_EXP_LABEL = "floatexp"
FLOAT_SIGNIF_LABEL = "floatsignif"

FLOAT32_MAX = struct.unpack("<f", struct.pack("<I", 0x7F7FFFFF))[0]
FLOAT64_MAX = 1.7976931348623157e308

_ABS_MASK = bitmask(63)
_EXP_BIAS = bitmask(FLOAT64_EXP_BITS - 1)


def float64_bits(f: float) -> int:
    return struct.unpack("<Q", struct.pack("<d", f))[0]


def float64_from_bits(u: int) -> float:
    return struct.unpack("<d", struct.pack("<Q", u))[0]


def to_float32(f: float) -> float:
    """Round ``f`` to the nearest float32 value."""
    return struct.unpack("<f", struct.pack("<f", f))[0]


def next_float32(f: float, up: bool) -> float:
    """Neighbouring float32 of a float32-representable ``f``."""
    if f == 0:
        tiny = struct.unpack("<f", struct.pack("<I", 1))[0]
        return tiny if up else -tiny
    u = struct.unpack("<I", struct.pack("<f", f))[0]
    # away from zero increments the magnitude bits
    u = u + 1 if (f > 0) == up else u - 1
    return struct.unpack("<f", struct.pack("<I", u))[0]


def float32_bounds(lo: float, hi: float) -> Tuple[float, float]:
    """Narrow [lo, hi] to the float32 values it contains."""
    lo32, hi32 = to_float32(lo), to_float32(hi)
    if lo32 < lo:
        lo32 = next_float32(lo32, up=True)
    if hi32 > hi:
        hi32 = next_float32(hi32, up=False)
    if lo32 > hi32:
        raise ConfigurationError(f"no float32 value in [{lo:g}, {hi:g}]")
    return lo32, hi32


def float_frac_bits(e: int, signif_bits: int) -> int:
    """Number of significand bits below the binary point at exponent ``e``."""
    if e <= 0:
        return signif_bits
    if e < signif_bits:
        return signif_bits - e
    return 0


def ufloat_parts(f: float, exp_bits: int, signif_bits: int) -> Tuple[int, int, int]:
    """Split a non-negative float into (exponent, integer, fraction) parts.

    The exponent is clamped to the normal band of the target width: the
    lowest exponent is the subnormal one, the highest is Inf/NaN.
    """
    u = float64_bits(f) & _ABS_MASK
    e = (u >> FLOAT64_SIGNIF_BITS) - _EXP_BIAS
    b = bitmask(exp_bits - 1)
    if e < -b + 1:
        e = -b + 1
    elif e > b:
        e = b

    s = (u & bitmask(FLOAT64_SIGNIF_BITS)) >> (FLOAT64_SIGNIF_BITS - signif_bits)
    n = float_frac_bits(e, signif_bits)
    return e, s >> n, s & bitmask(n)


def gen_ufloat_range(
    s: BitStream,
    min_value: float,
    max_value: float,
    exp_bits: int,
    signif_bits: int,
) -> float:
    """Decode a float in [min_value, max_value] for 0 <= min_value <= max_value."""
    if not 0 <= min_value <= max_value:
        raise EngineError(f"invalid unsigned float range [{min_value!r}, {max_value!r}]")

    min_exp, min_signif_i, min_signif_f = ufloat_parts(min_value, exp_bits, signif_bits)
    max_exp, max_signif_i, max_signif_f = ufloat_parts(max_value, exp_bits, signif_bits)

    i = s.begin_group(FLOAT_EXP_LABEL, False)
    e = gen_int_range(s, min_exp, max_exp, True)
    s.end_group(i)

    frac_bits = float_frac_bits(e, signif_bits)

    j = s.begin_group(FLOAT_SIGNIF_LABEL, False)
    if min_exp == max_exp:
        si_min, si_max = min_signif_i, max_signif_i
    elif e == min_exp:
        si_min, si_max = min_signif_i, bitmask(signif_bits - frac_bits)
    elif e == max_exp:
        si_min, si_max = 0, max_signif_i
    else:
        si_min, si_max = 0, bitmask(signif_bits - frac_bits)
    si = gen_uint_range(s, si_min, si_max, False)

    if min_exp == max_exp and min_signif_i == max_signif_i:
        sf_min, sf_max = min_signif_f, max_signif_f
    elif e == min_exp and si == min_signif_i:
        sf_min, sf_max = min_signif_f, bitmask(frac_bits)
    elif e == max_exp and si == max_signif_i:
        sf_min, sf_max = 0, max_signif_f
    else:
        sf_min, sf_max = 0, bitmask(frac_bits)
    sf, width = gen_uint_range_width(s, sf_min, sf_max, True)
    s.end_group(j)

    for _ in range(frac_bits - width):
        shifted = sf << 1
        if shifted < sf_min or shifted > sf_max:
            break
        sf = shifted

    exp_field = (e + _EXP_BIAS) << FLOAT64_SIGNIF_BITS
    signif_field = ((si << frac_bits) | sf) << (FLOAT64_SIGNIF_BITS - signif_bits)
    f = float64_from_bits(exp_field | signif_field)

    # Bounds in the subnormal band are decoded with the smallest normal
    # exponent; keep the result inside the requested range.
    return min(max(f, min_value), max_value)


def gen_float_range(
    s: BitStream,
    min_value: float,
    max_value: float,
    exp_bits: int,
    signif_bits: int,
) -> float:
    """Decode a float in [min_value, max_value]."""
    if math.isnan(min_value) or math.isnan(max_value):
        raise ConfigurationError("float range bounds must not be NaN")
    if min_value > max_value:
        raise ConfigurationError(f"invalid range [{min_value:g}, {max_value:g}]")
    if min_value == max_value:
        return min_value

    pos_min = neg_min = 0.0
    if min_value >= 0:
        pos_min = min_value
        p_neg = 0.0
    elif max_value <= 0:
        neg_min = -max_value
        p_neg = 1.0
    else:
        pos = math.log1p(math.log1p(max_value))
        neg = math.log1p(math.log1p(-min_value))
        p_neg = neg / (neg + pos)

    if flip_biased_coin(s, p_neg):
        return -gen_ufloat_range(s, neg_min, -min_value, exp_bits, signif_bits)
    return gen_ufloat_range(s, pos_min, max_value, exp_bits, signif_bits)
