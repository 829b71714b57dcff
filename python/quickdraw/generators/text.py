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
"""Character, string and byte-string generators."""

from __future__ import annotations

from typing import Union

from ..core.bitstream import BitStream
from ..core.errors import ConfigurationError
from ..core.primitives import Repeat, gen_int_range
from .base import Generator, GeneratorImpl
from .integers import bytes_values

MAX_CODEPOINT = 0x10FFFF
SURROGATE_MIN = 0xD800
SURROGATE_MAX = 0xDFFF


def _codepoint(c: Union[str, int]) -> int:
    if isinstance(c, str):
        if len(c) != 1:
            raise ConfigurationError(f"expected a single character, got {c!r}")
        return ord(c)
    return c


class _CharGen(GeneratorImpl):
    """Code points in [lo, hi] with the surrogate block skipped."""

    def __init__(self, lo: int, hi: int):
        if not 0 <= lo <= hi <= MAX_CODEPOINT:
            raise ConfigurationError(f"invalid character range [{lo:#x}, {hi:#x}]")
        self.lo = lo
        self.hi = hi
        skipped = max(0, min(hi, SURROGATE_MAX) - max(lo, SURROGATE_MIN) + 1)
        if skipped == hi - lo + 1:
            raise ConfigurationError(f"character range [{lo:#x}, {hi:#x}] holds only surrogates")
        # Draws cover [lo, hi - skipped]; values at or above the gap are
        # shifted past it.
        self._skipped = skipped
        self._gap_start = max(lo, SURROGATE_MIN)
        self._dense_hi = hi - skipped

    def describe(self) -> str:
        if self.lo == 0 and self.hi == MAX_CODEPOINT:
            return "Characters()"
        return f"CharactersRange({self.lo:#x}, {self.hi:#x})"

    def value(self, s: BitStream) -> str:
        cp = gen_int_range(s, self.lo, self._dense_hi, True)
        if self._skipped and cp >= self._gap_start:
            cp += self._skipped
        return chr(cp)


def characters() -> Generator:
    """Any Unicode scalar value, biased toward low code points."""
    return Generator(_CharGen(0, MAX_CODEPOINT))


def characters_range(lo: Union[str, int], hi: Union[str, int]) -> Generator:
    return Generator(_CharGen(_codepoint(lo), _codepoint(hi)))


class _TextGen(GeneratorImpl):
    def __init__(self, chars: Generator, min_len: int, max_len: int):
        if min_len >= 0 and max_len >= 0 and min_len > max_len:
            raise ConfigurationError(f"invalid length range [{min_len}, {max_len}]")
        self.chars = chars
        self.min_len = min_len
        self.max_len = max_len

    def describe(self) -> str:
        return f"TextOfN({self.chars}, {self.min_len}, {self.max_len})"

    def value(self, s: BitStream) -> str:
        rep = Repeat(self.min_len, self.max_len)
        parts = []
        while rep.more(s):
            parts.append(self.chars.value(s))
        return "".join(parts)


def text() -> Generator:
    return text_of_n(characters(), -1, -1)


def text_of(chars: Generator) -> Generator:
    return text_of_n(chars, -1, -1)


def text_of_n(chars: Generator, min_len: int, max_len: int) -> Generator:
    """Strings of characters drawn from ``chars`` (each value a str)."""
    return Generator(_TextGen(chars, min_len, max_len))


class _ByteStringGen(GeneratorImpl):
    def __init__(self, min_len: int, max_len: int):
        if min_len >= 0 and max_len >= 0 and min_len > max_len:
            raise ConfigurationError(f"invalid length range [{min_len}, {max_len}]")
        self.min_len = min_len
        self.max_len = max_len
        self._byte = bytes_values()

    def describe(self) -> str:
        return f"ByteStringsN({self.min_len}, {self.max_len})"

    def value(self, s: BitStream) -> bytes:
        rep = Repeat(self.min_len, self.max_len)
        out = bytearray()
        while rep.more(s):
            out.append(self._byte.value(s))
        return bytes(out)


def byte_strings() -> Generator:
    return byte_strings_n(-1, -1)


def byte_strings_n(min_len: int, max_len: int) -> Generator:
    return Generator(_ByteStringGen(min_len, max_len))
