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
"""Boolean and integer generators.

Integer generators are biased: most draws have few significant bits and a
fraction land exactly on the range boundaries, the values most likely to
expose off-by-one bugs and the first ones the shrinker will try.
"""

from __future__ import annotations

from ..core.bitstream import BitStream
from ..core.errors import ConfigurationError
from ..core.primitives import flip_biased_coin, gen_int_range
from .base import Generator, GeneratorImpl

INT8_MIN, INT8_MAX = -(2**7), 2**7 - 1
INT16_MIN, INT16_MAX = -(2**15), 2**15 - 1
INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1
UINT8_MAX = 2**8 - 1
UINT16_MAX = 2**16 - 1
UINT32_MAX = 2**32 - 1
UINT64_MAX = 2**64 - 1


class _BoolGen(GeneratorImpl):
    def describe(self) -> str:
        return "Booleans()"

    def value(self, s: BitStream) -> bool:
        return flip_biased_coin(s, 0.5)


class _IntGen(GeneratorImpl):
    """Ranged integer; ``kind`` names the full-width variant (Ints, Uint8s, ...)."""

    def __init__(self, kind: str, lo: int, hi: int, type_min: int, type_max: int):
        if not type_min <= lo <= type_max or not type_min <= hi <= type_max:
            raise ConfigurationError(
                f"{kind} bounds [{lo}, {hi}] outside [{type_min}, {type_max}]"
            )
        if lo > hi:
            raise ConfigurationError(f"invalid range [{lo}, {hi}]")
        self.kind = kind
        self.lo = lo
        self.hi = hi
        self.type_min = type_min
        self.type_max = type_max

    def describe(self) -> str:
        if self.lo != self.type_min and self.hi != self.type_max:
            return f"{self.kind}Range({self.lo}, {self.hi})"
        if self.lo != self.type_min:
            return f"{self.kind}Min({self.lo})"
        if self.hi != self.type_max:
            return f"{self.kind}Max({self.hi})"
        return f"{self.kind}()"

    def value(self, s: BitStream) -> int:
        return gen_int_range(s, self.lo, self.hi, True)


def booleans() -> Generator:
    return Generator(_BoolGen())


def ints() -> Generator:
    """Signed 64-bit integers."""
    return Generator(_IntGen("Ints", INT64_MIN, INT64_MAX, INT64_MIN, INT64_MAX))


def ints_min(lo: int) -> Generator:
    return Generator(_IntGen("Ints", lo, INT64_MAX, INT64_MIN, INT64_MAX))


def ints_max(hi: int) -> Generator:
    return Generator(_IntGen("Ints", INT64_MIN, hi, INT64_MIN, INT64_MAX))


def ints_range(lo: int, hi: int) -> Generator:
    """Signed integers in [lo, hi]."""
    return Generator(_IntGen("Ints", lo, hi, INT64_MIN, INT64_MAX))


def int8s() -> Generator:
    return Generator(_IntGen("Int8s", INT8_MIN, INT8_MAX, INT8_MIN, INT8_MAX))


def int16s() -> Generator:
    return Generator(_IntGen("Int16s", INT16_MIN, INT16_MAX, INT16_MIN, INT16_MAX))


def int32s() -> Generator:
    return Generator(_IntGen("Int32s", INT32_MIN, INT32_MAX, INT32_MIN, INT32_MAX))


def int64s() -> Generator:
    return Generator(_IntGen("Int64s", INT64_MIN, INT64_MAX, INT64_MIN, INT64_MAX))


def uints() -> Generator:
    """Unsigned 64-bit integers."""
    return Generator(_IntGen("Uints", 0, UINT64_MAX, 0, UINT64_MAX))


def uints_min(lo: int) -> Generator:
    return Generator(_IntGen("Uints", lo, UINT64_MAX, 0, UINT64_MAX))


def uints_max(hi: int) -> Generator:
    return Generator(_IntGen("Uints", 0, hi, 0, UINT64_MAX))


def uints_range(lo: int, hi: int) -> Generator:
    return Generator(_IntGen("Uints", lo, hi, 0, UINT64_MAX))


def uint8s() -> Generator:
    return Generator(_IntGen("Uint8s", 0, UINT8_MAX, 0, UINT8_MAX))


def uint16s() -> Generator:
    return Generator(_IntGen("Uint16s", 0, UINT16_MAX, 0, UINT16_MAX))


def uint32s() -> Generator:
    return Generator(_IntGen("Uint32s", 0, UINT32_MAX, 0, UINT32_MAX))


def uint64s() -> Generator:
    return Generator(_IntGen("Uint64s", 0, UINT64_MAX, 0, UINT64_MAX))


def bytes_values() -> Generator:
    """Single byte values in [0, 255]."""
    return Generator(_IntGen("Bytes", 0, UINT8_MAX, 0, UINT8_MAX))
