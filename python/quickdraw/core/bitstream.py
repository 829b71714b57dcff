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
"""Replayable bit streams with labeled, well-nested groups.

Every value quickdraw generates is decoded from a stream of machine words.
A stream is either:

1. RandomBitStream: words come from a private PRNG seeded explicitly for
   one attempt, bounded by a word budget.
2. BufBitStream: words come from a previously recorded sequence. Reading
   past its end is an overrun, which invalidates the attempt.

Both record what they hand out, together with a tree of groups. A group
spans the words consumed between its begin and end calls. Call groups mark
generator boundaries and are the units the shrinker deletes, zeroes or
reorders; plain groups mark sub-fields (exponent, coin flip, ...) and are
kept for diagnostics and targeted passes.

Groups play the role checkpoints play in a backtracking search: the
shrinker rolls a stream back to "this span never happened" and replays.
"""

from __future__ import annotations

import random
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .errors import ConfigurationError, EngineError, EntropyExhausted, Overrun
from .settings import DEFAULT_FILTER_TRIES, DEFAULT_MAX_ENTROPY_WORDS

WORD_BITS = 64
WORD_BYTES = 8
WORD_MASK = (1 << WORD_BITS) - 1


def bitmask(n: int) -> int:
    """Mask with the low ``n`` bits set."""
    return (1 << n) - 1


@dataclass(slots=True)
class GroupInfo:
    """A labeled span of recorded words.

    Attributes:
        begin: Index of the first word in the span
        end: Index one past the last word, or -1 while the group is open
        label: Generator name or sub-field label
        is_call: True for generator-boundary groups
        discard: True when the span should be dropped before shrinking
    """

    begin: int
    end: int
    label: str
    is_call: bool
    discard: bool = False

    @property
    def closed(self) -> bool:
        return self.end >= 0

    @property
    def size(self) -> int:
        return self.end - self.begin if self.end >= 0 else 0


@dataclass
class RecordedBits:
    """Words handed out by a stream plus the groups spanning them."""

    data: List[int] = field(default_factory=list)
    groups: List[GroupInfo] = field(default_factory=list)
    _open: List[int] = field(default_factory=list, repr=False)

    def record(self, u: int) -> None:
        self.data.append(u)

    def begin_group(self, label: str, is_call: bool) -> int:
        self.groups.append(GroupInfo(begin=len(self.data), end=-1, label=label, is_call=is_call))
        token = len(self.groups) - 1
        self._open.append(token)
        return token

    def end_group(self, token: int, discard: bool = False) -> None:
        if not self._open or self._open[-1] != token:
            raise EngineError(
                f"group {token} closed out of order (open groups: {self._open})"
            )
        self._open.pop()
        group = self.groups[token]
        group.end = len(self.data)
        group.discard = discard

    def keep_group(self, token: int) -> None:
        """Clear the discard flag of a closed group."""
        self.groups[token].discard = False

    @property
    def open_groups(self) -> int:
        return len(self._open)

    def prune(self) -> None:
        """Drop discarded groups with their words, then drop empty groups.

        Discarded groups are rejected attempts (filter misses, rejection
        sampling, duplicate collection elements). Removing their words keeps
        the decoded values identical on replay while making the stream
        shorter. Groups nested in a discarded span go away with it; spans of
        the remaining groups are shifted to stay exact.
        """
        # Groups are stored in begin order, so a group nested in another
        # always has the larger index.
        dropped = [False] * len(self.groups)
        spans: List[GroupInfo] = []
        for idx, g in enumerate(self.groups):
            if dropped[idx]:
                continue
            if g.discard and g.closed:
                spans.append(g)
                dropped[idx] = True
                for inner in range(idx + 1, len(self.groups)):
                    h = self.groups[inner]
                    if h.begin >= g.end and (h.size > 0 or not h.closed):
                        break
                    if h.closed and h.end <= g.end:
                        dropped[inner] = True

        if spans:
            keep = [True] * len(self.data)
            for r in spans:
                for k in range(r.begin, r.end):
                    keep[k] = False
            # shift[k]: number of removed words before index k
            shift = [0] * (len(self.data) + 1)
            for k in range(len(self.data)):
                shift[k + 1] = shift[k] + (0 if keep[k] else 1)

            groups: List[GroupInfo] = []
            for idx, g in enumerate(self.groups):
                if dropped[idx]:
                    continue
                begin = g.begin - shift[g.begin]
                end = g.end - shift[g.end] if g.closed else -1
                groups.append(GroupInfo(begin, end, g.label, g.is_call))
            self.data = [u for u, k in zip(self.data, keep) if k]
            self.groups = groups

        self.groups = [g for g in self.groups if not g.closed or g.end > g.begin]
        self._open = []

    def copy(self) -> RecordedBits:
        return RecordedBits(
            data=list(self.data),
            groups=[GroupInfo(g.begin, g.end, g.label, g.is_call, g.discard) for g in self.groups],
        )


class BitStream(ABC):
    """Source of words for one property execution.

    A stream is owned by exactly one in-flight execution and is never
    shared between threads.

    Attributes:
        recorded: Everything handed out so far, with its groups
        filter_tries: Attempts a filter makes before giving up
    """

    def __init__(self, filter_tries: int = DEFAULT_FILTER_TRIES):
        self.recorded = RecordedBits()
        self.filter_tries = filter_tries

    @abstractmethod
    def draw_bits(self, width: int) -> int:
        """Return an unsigned value of at most ``width`` bits."""

    def begin_group(self, label: str, is_call: bool = False) -> int:
        return self.recorded.begin_group(label, is_call)

    def end_group(self, token: int, discard: bool = False) -> None:
        self.recorded.end_group(token, discard)

    def keep_group(self, token: int) -> None:
        self.recorded.keep_group(token)

    def to_words(self) -> List[int]:
        return list(self.recorded.data)

    def to_bytes(self) -> bytes:
        return encode_words(self.recorded.data)

    @staticmethod
    def _check_width(width: int) -> None:
        if not 0 <= width <= WORD_BITS:
            raise EngineError(f"invalid bit width {width}")


class RandomBitStream(BitStream):
    """Bit stream filled from a seeded PRNG.

    Example:
        >>> s = RandomBitStream(seed=42)
        >>> u = s.draw_bits(8)
        >>> s.to_words() == [u]
        True
    """

    def __init__(
        self,
        seed: int = 0,
        max_words: int = DEFAULT_MAX_ENTROPY_WORDS,
        filter_tries: int = DEFAULT_FILTER_TRIES,
    ):
        super().__init__(filter_tries)
        self.max_words = max_words
        self.seed = seed
        self._rng = random.Random(seed)

    def reset(self, seed: int) -> None:
        """Start a fresh attempt from ``seed``."""
        self.seed = seed
        self._rng = random.Random(seed)
        self.recorded = RecordedBits()

    def draw_bits(self, width: int) -> int:
        self._check_width(width)
        if len(self.recorded.data) >= self.max_words:
            raise EntropyExhausted(self.max_words)
        u = self._rng.getrandbits(width) if width else 0
        self.recorded.record(u)
        return u


class BufBitStream(BitStream):
    """Bit stream replaying a fixed word sequence.

    Words are masked to the width requested on read, so a mutated
    candidate can never decode an out-of-range raw value.
    """

    def __init__(self, words: Sequence[int], filter_tries: int = DEFAULT_FILTER_TRIES):
        super().__init__(filter_tries)
        self._buf = list(words)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def draw_bits(self, width: int) -> int:
        self._check_width(width)
        if self._pos >= len(self._buf):
            raise Overrun(len(self._buf))
        u = self._buf[self._pos] & bitmask(width)
        self._pos += 1
        self.recorded.record(u)
        return u


def encode_words(words: Iterable[int]) -> bytes:
    """Encode words as an opaque, replayable byte string."""
    out = bytearray()
    for u in words:
        if not 0 <= u <= WORD_MASK:
            raise ConfigurationError(f"word {u} does not fit in {WORD_BITS} bits")
        out += struct.pack(">Q", u)
    return bytes(out)


def decode_words(buffer: bytes, max_words: Optional[int] = None) -> List[int]:
    """Inverse of ``encode_words``."""
    if len(buffer) % WORD_BYTES:
        raise ConfigurationError(
            f"buffer length {len(buffer)} is not a multiple of {WORD_BYTES}"
        )
    n = len(buffer) // WORD_BYTES
    if max_words is not None and n > max_words:
        raise ConfigurationError(f"buffer holds {n} words, more than {max_words}")
    return list(struct.unpack(f">{n}Q", buffer))
