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
"""Float32 and float64 generators."""

from __future__ import annotations

import math

from ..core.bitstream import BitStream
from ..core.errors import ConfigurationError
from ..core.floats import (
    FLOAT32_EXP_BITS,
    FLOAT32_MAX,
    FLOAT32_SIGNIF_BITS,
    FLOAT64_EXP_BITS,
    FLOAT64_MAX,
    FLOAT64_SIGNIF_BITS,
    float32_bounds,
    gen_float_range,
    to_float32,
)
from .base import Generator, GeneratorImpl


class _FloatGen(GeneratorImpl):
    def __init__(
        self,
        kind: str,
        min_value: float,
        max_value: float,
        exp_bits: int,
        signif_bits: int,
        type_max: float,
    ):
        if math.isnan(min_value):
            raise ConfigurationError("min should not be a NaN")
        if math.isnan(max_value):
            raise ConfigurationError("max should not be a NaN")
        if min_value > max_value:
            raise ConfigurationError(f"invalid range [{min_value:g}, {max_value:g}]")

        self.kind = kind
        self.exp_bits = exp_bits
        self.signif_bits = signif_bits
        self.type_max = type_max
        # Infinite bounds stand for the largest finite value of the width.
        self.min_value = max(float(min_value), -type_max)
        self.max_value = min(float(max_value), type_max)
        if self.min_value > self.max_value:
            raise ConfigurationError(f"invalid range [{min_value:g}, {max_value:g}]")
        if exp_bits == FLOAT32_EXP_BITS:
            self.min_value, self.max_value = float32_bounds(self.min_value, self.max_value)

    def describe(self) -> str:
        lo_default = self.min_value == -self.type_max
        hi_default = self.max_value == self.type_max
        if not lo_default and not hi_default:
            return f"{self.kind}Range({self.min_value:g}, {self.max_value:g})"
        if not lo_default:
            return f"{self.kind}Min({self.min_value:g})"
        if not hi_default:
            return f"{self.kind}Max({self.max_value:g})"
        return f"{self.kind}()"

    def value(self, s: BitStream) -> float:
        f = gen_float_range(s, self.min_value, self.max_value, self.exp_bits, self.signif_bits)
        if self.exp_bits == FLOAT32_EXP_BITS:
            return to_float32(f)
        return f


def _float32s(min_value: float, max_value: float) -> Generator:
    return Generator(
        _FloatGen("Float32s", min_value, max_value, FLOAT32_EXP_BITS, FLOAT32_SIGNIF_BITS, FLOAT32_MAX)
    )


def _float64s(min_value: float, max_value: float) -> Generator:
    return Generator(
        _FloatGen("Float64s", min_value, max_value, FLOAT64_EXP_BITS, FLOAT64_SIGNIF_BITS, FLOAT64_MAX)
    )


def float32s() -> Generator:
    """Finite float32 values (as Python floats)."""
    return _float32s(-FLOAT32_MAX, FLOAT32_MAX)


def float32s_min(min_value: float) -> Generator:
    return _float32s(min_value, FLOAT32_MAX)


def float32s_max(max_value: float) -> Generator:
    return _float32s(-FLOAT32_MAX, max_value)


def float32s_range(min_value: float, max_value: float) -> Generator:
    return _float32s(min_value, max_value)


def float64s() -> Generator:
    """Finite float64 values."""
    return _float64s(-FLOAT64_MAX, FLOAT64_MAX)


def float64s_min(min_value: float) -> Generator:
    return _float64s(min_value, FLOAT64_MAX)


def float64s_max(max_value: float) -> Generator:
    return _float64s(-FLOAT64_MAX, max_value)


def float64s_range(min_value: float, max_value: float) -> Generator:
    return _float64s(min_value, max_value)
