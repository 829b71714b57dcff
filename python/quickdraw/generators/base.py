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
"""Generator abstraction shared by every primitive and combinator.

A Generator pairs a printable description with a decoder implementing
``value(source)``. Decoders must be pure functions of the words they
consume: identical streams decode to identical values, which is what makes
shrink replay sound.

Generators with ``arity`` above one produce tuples. ``map`` and ``filter``
callables receive such tuples as positional arguments, and the runner binds
them to separate property parameters.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from ..core.bitstream import BitStream, RandomBitStream
from ..core.errors import ConfigurationError, InvalidData
from ..core.settings import DEFAULT_SETTINGS, Settings

logger = logging.getLogger(__name__)

FILTER_LABEL = "filter"


def callable_name(fn: Callable[..., Any]) -> str:
    """Short human-readable name of a callable, for generator descriptions."""
    name = getattr(fn, "__name__", None)
    if name is None:
        return type(fn).__name__
    return name


def check_arity(fn: Callable[..., Any], arity: int, what: str) -> None:
    """Fail fast when ``fn`` cannot take ``arity`` positional arguments."""
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        # builtins without introspectable signatures
        return
    try:
        sig.bind(*([None] * arity))
    except TypeError as exc:
        raise ConfigurationError(
            f"{what} {callable_name(fn)} cannot take {arity} positional "
            f"argument{'s' if arity != 1 else ''}: {exc}"
        ) from exc


def call_with(fn: Callable[..., Any], value: Any, arity: int) -> Any:
    if arity > 1:
        return fn(*value)
    return fn(value)


class GeneratorImpl(ABC):
    """Decoding capability behind a Generator."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable construction, e.g. ``IntsRange(0, 10)``."""

    @abstractmethod
    def value(self, s: BitStream) -> Any:
        """Decode one value from ``s``."""


class Generator:
    """A printable, composable value generator.

    Attributes:
        arity: Number of positional output slots; values of generators with
            arity above one are tuples of that length

    Example:
        >>> evens = ints_range(0, 100).filter(lambda n: n % 2 == 0)
        >>> labels = evens.map(str)
        >>> str(labels)
        'IntsRange(0, 100).Filter(<lambda>).Map(str)'
    """

    def __init__(self, impl: GeneratorImpl, arity: int = 1):
        if arity < 1:
            raise ConfigurationError(f"generator arity must be positive, got {arity}")
        self._impl = impl
        self.arity = arity
        self._name: Optional[str] = None

    @property
    def name(self) -> str:
        if self._name is None:
            self._name = self._impl.describe()
        return self._name

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<Generator {self.name}>"

    def value(self, s: BitStream) -> Any:
        """Decode a value inside a call group labeled with this generator."""
        i = s.begin_group(self.name, True)
        v = self._impl.value(s)
        if self.arity > 1 and not (isinstance(v, tuple) and len(v) == self.arity):
            raise ConfigurationError(
                f"{self.name} must produce a tuple of {self.arity} values, got {v!r}"
            )
        s.end_group(i)
        return v

    def example(self, seed: int = 0, settings: Optional[Settings] = None) -> Any:
        """Draw a single value outside of any property.

        Invalid attempts are retried with the following seeds, up to the
        invalid-attempt budget of ``settings``.
        """
        settings = settings or DEFAULT_SETTINGS
        last: Optional[InvalidData] = None
        for attempt in range(settings.max_invalid):
            s = RandomBitStream(seed + attempt, settings.max_entropy_words, settings.filter_tries)
            try:
                return self.value(s)
            except InvalidData as exc:
                last = exc
        raise InvalidData(
            f"failed to generate an example of {self.name} in {settings.max_invalid} attempts: {last}"
        )

    def filter(self, predicate: Callable[..., bool], tries: Optional[int] = None) -> Generator:
        """Keep only values for which ``predicate`` holds."""
        check_arity(predicate, self.arity, "filter predicate")
        return Generator(_FilterGen(self, predicate, tries), self.arity)

    def map(self, fn: Callable[..., Any], arity: int = 1) -> Generator:
        """Transform values with ``fn``; ``arity`` is the number of values it returns."""
        check_arity(fn, self.arity, "map function")
        return Generator(_MapGen(self, fn), arity)


class Data:
    """Draw handle passed to custom generator functions.

    Attributes:
        source: The bit stream values are decoded from
    """

    def __init__(self, source: BitStream):
        self.source = source

    def draw(self, gen: Generator, label: Optional[str] = None) -> Any:
        """Decode a value of ``gen`` from the underlying source."""
        if label:
            i = self.source.begin_group(label, False)
            v = gen.value(self.source)
            self.source.end_group(i)
            return v
        return gen.value(self.source)


class _MapGen(GeneratorImpl):
    def __init__(self, inner: Generator, fn: Callable[..., Any]):
        self.inner = inner
        self.fn = fn

    def describe(self) -> str:
        return f"{self.inner}.Map({callable_name(self.fn)})"

    def value(self, s: BitStream) -> Any:
        return call_with(self.fn, self.inner.value(s), self.inner.arity)


class _FilterGen(GeneratorImpl):
    def __init__(self, inner: Generator, predicate: Callable[..., bool], tries: Optional[int]):
        if tries is not None and tries < 1:
            raise ConfigurationError(f"filter tries must be positive, got {tries}")
        self.inner = inner
        self.predicate = predicate
        self.tries = tries

    def describe(self) -> str:
        return f"{self.inner}.Filter({callable_name(self.predicate)})"

    def value(self, s: BitStream) -> Any:
        return _satisfy(self.predicate, self.inner, s, self.tries or s.filter_tries)


def _satisfy(predicate: Callable[..., bool], gen: Generator, s: BitStream, tries: int) -> Any:
    for _ in range(tries):
        i = s.begin_group(FILTER_LABEL, False)
        v = gen.value(s)
        ok = bool(call_with(predicate, v, gen.arity))
        s.end_group(i, not ok)
        if ok:
            return v
    raise InvalidData(f"failed to satisfy filter {callable_name(predicate)} in {tries} tries")
