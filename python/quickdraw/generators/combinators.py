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
"""Generator combinators.

Key Components:
    - just / sampled_from: index-based selection from a fixed sequence
    - one_of: uniform or weighted choice between generators
    - custom: arbitrary user functions drawing through a Data handle
    - optionals: a value or None (a present or missing reference)
    - tuples: fixed left-to-right draws combined into one multi-value

Map and filter live on Generator itself (see base.py).
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence

from ..core.bitstream import BitStream
from ..core.errors import ConfigurationError
from ..core.primitives import LoadedDie, flip_biased_coin, gen_index
from .base import Data, Generator, GeneratorImpl, callable_name, check_arity

ONE_OF_LABEL = "oneof"


class _SampledGen(GeneratorImpl):
    def __init__(self, values: Sequence[Any]):
        self.values = list(values)

    def describe(self) -> str:
        if len(self.values) == 1:
            return f"Just({self.values[0]!r})"
        return f"SampledFrom({self.values!r})"

    def value(self, s: BitStream) -> Any:
        return self.values[gen_index(s, len(self.values), True)]


def just(value: Any) -> Generator:
    """Always ``value``; consumes no entropy."""
    return Generator(_SampledGen([value]))


def sampled_from(values: Sequence[Any]) -> Generator:
    """One of ``values``; shrinks toward the first element."""
    if len(values) == 0:
        raise ConfigurationError("sampled_from() needs at least one value")
    return Generator(_SampledGen(values))


class _OneOfGen(GeneratorImpl):
    def __init__(self, gens: Sequence[Generator], weights: Optional[Sequence[float]]):
        self.gens: List[Generator] = list(gens)
        self.weights = list(weights) if weights is not None else None
        self.die = LoadedDie(self.weights) if self.weights is not None else None

    def describe(self) -> str:
        inner = ", ".join(str(g) for g in self.gens)
        if self.weights is not None:
            return f"OneOf({inner}, weights={self.weights})"
        return f"OneOf({inner})"

    def value(self, s: BitStream) -> Any:
        i = s.begin_group(ONE_OF_LABEL, False)
        if self.die is not None:
            idx = self.die.roll(s)
        else:
            idx = gen_index(s, len(self.gens), False)
        s.end_group(i)
        return self.gens[idx].value(s)


def one_of(*gens: Generator, weights: Optional[Sequence[float]] = None) -> Generator:
    """Choose between ``gens`` uniformly, or according to ``weights``."""
    if not gens:
        raise ConfigurationError("one_of() needs at least one generator")
    arities = {g.arity for g in gens}
    if len(arities) != 1:
        raise ConfigurationError(f"one_of() generators have different arities: {sorted(arities)}")
    if weights is not None and len(weights) != len(gens):
        raise ConfigurationError(
            f"one_of() got {len(weights)} weights for {len(gens)} generators"
        )
    return Generator(_OneOfGen(gens, weights), gens[0].arity)


class _CustomGen(GeneratorImpl):
    def __init__(self, fn: Callable[[Data], Any]):
        self.fn = fn

    def describe(self) -> str:
        return f"Custom({callable_name(self.fn)})"

    def value(self, s: BitStream) -> Any:
        return self.fn(Data(s))


def custom(fn: Callable[[Data], Any], arity: int = 1) -> Generator:
    """Generator defined by a function drawing from a Data handle.

    ``fn`` may branch and loop freely as long as it is deterministic in the
    values it draws. Functions returning several values declare ``arity``
    and return a tuple.

    Example:
        >>> def pairs(data):
        ...     return data.draw(ints(), "x"), data.draw(ints(), "y")
        >>> g = custom(pairs, arity=2).filter(lambda x, y: x != y)
    """
    check_arity(fn, 1, "custom function")
    return Generator(_CustomGen(fn), arity)


class _OptionalGen(GeneratorImpl):
    def __init__(self, elem: Generator, allow_none: bool):
        self.elem = elem
        self.allow_none = allow_none

    def describe(self) -> str:
        return f"Optionals({self.elem}, allow_none={self.allow_none})"

    def value(self, s: BitStream) -> Any:
        present = flip_biased_coin(s, 0.5 if self.allow_none else 1.0)
        if not present:
            return None
        return self.elem.value(s)


def optionals(elem: Generator, allow_none: bool = True) -> Generator:
    """Values of ``elem`` or None; never None when ``allow_none`` is false."""
    return Generator(_OptionalGen(elem, allow_none))


class _TupleGen(GeneratorImpl):
    def __init__(self, gens: Sequence[Generator]):
        self.gens = list(gens)

    def describe(self) -> str:
        return f"Tuple({', '.join(str(g) for g in self.gens)})"

    def value(self, s: BitStream) -> tuple:
        return tuple(g.value(s) for g in self.gens)


def tuples(*gens: Generator) -> Generator:
    """Draw every generator in order; the result has one slot per generator."""
    if not gens:
        raise ConfigurationError("tuples() needs at least one generator")
    return Generator(_TupleGen(gens), len(gens))
