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
"""Pytest configuration for quickdraw tests.

Shared fixtures:
1. Seeded random streams and all-zero replay streams
2. Fast, deterministic settings for full checks
3. A sampler drawing many values from a generator
"""

from typing import Any, Callable, List

import pytest

from quickdraw.core.bitstream import WORD_MASK, BufBitStream, RandomBitStream
from quickdraw.core.settings import Settings
from quickdraw.generators.base import Generator

# Default number of values drawn by the ``sample`` fixture.
SAMPLE_SIZE = 300


@pytest.fixture
def stream() -> RandomBitStream:
    """Random stream with a fixed seed."""
    return RandomBitStream(seed=42)


@pytest.fixture
def zero_stream() -> BufBitStream:
    """Replay stream of zero words; decodes to the simplest values."""
    return BufBitStream([0] * 4096)


@pytest.fixture
def ones_stream() -> BufBitStream:
    """Replay stream of all-ones words."""
    return BufBitStream([WORD_MASK] * 4096)


@pytest.fixture
def fast_settings() -> Settings:
    """Deterministic settings; the shrink budget is large enough to converge."""
    return Settings(checks=50, seed=1234, max_shrink_attempts=100_000, shrink_time_limit=60.0)


@pytest.fixture
def sample() -> Callable[..., List[Any]]:
    """Draw ``n`` values from a generator, one seed per value."""

    def draw(gen: Generator, n: int = SAMPLE_SIZE, seed: int = 0) -> List[Any]:
        return [gen.example(seed=seed + i * 1009) for i in range(n)]

    return draw
