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
"""Variable-length collection generators.

Lengths are driven by Repeat: each element is its own call group, so the
shrinker shortens collections by deleting element groups. Bounds follow one
convention throughout: ``-1`` means "use the default" (0 for the minimum,
unbounded for the maximum).

Distinct collections (sets, dict keys, ``*_distinct`` lists) reject
duplicate elements through ``Repeat.reject``, which discards the duplicate's
words before shrinking.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Hashable, List, Optional, Set

from ..core.bitstream import BitStream
from ..core.errors import ConfigurationError
from ..core.primitives import Repeat
from .base import Generator, GeneratorImpl, callable_name, check_arity

KeyFn = Callable[[Any], Hashable]


def _check_bounds(min_len: int, max_len: int) -> None:
    if min_len < -1 or max_len < -1:
        raise ConfigurationError(f"length bounds must be -1 or non-negative, got [{min_len}, {max_len}]")
    if min_len >= 0 and max_len >= 0 and min_len > max_len:
        raise ConfigurationError(f"invalid length range [{min_len}, {max_len}]")


def _bounds_suffix(min_len: int, max_len: int) -> str:
    return f"{min_len}, {max_len}"


def _identity(v: Any) -> Any:
    return v


class _ListGen(GeneratorImpl):
    def __init__(self, elem: Generator, min_len: int, max_len: int, key_fn: Optional[KeyFn], distinct: bool):
        _check_bounds(min_len, max_len)
        self.elem = elem
        self.min_len = min_len
        self.max_len = max_len
        self.key_fn = key_fn
        self.distinct = distinct

    def describe(self) -> str:
        if self.distinct:
            key = callable_name(self.key_fn) if self.key_fn is not None else "None"
            return f"ListsOfNDistinct({self.elem}, {_bounds_suffix(self.min_len, self.max_len)}, {key})"
        return f"ListsOfN({self.elem}, {_bounds_suffix(self.min_len, self.max_len)})"

    def value(self, s: BitStream) -> List[Any]:
        rep = Repeat(self.min_len, self.max_len)
        out: List[Any] = []
        seen: Set[Hashable] = set()
        key_fn = self.key_fn or _identity
        while rep.more(s):
            v = self.elem.value(s)
            if self.distinct:
                k = key_fn(v)
                if k in seen:
                    rep.reject()
                    continue
                seen.add(k)
            out.append(v)
        return out


def lists_of(elem: Generator) -> Generator:
    return lists_of_n(elem, -1, -1)


def lists_of_n(elem: Generator, min_len: int, max_len: int) -> Generator:
    """Lists of ``elem`` values with length in [min_len, max_len]."""
    return Generator(_ListGen(elem, min_len, max_len, None, False))


def lists_of_distinct(elem: Generator, key_fn: Optional[KeyFn] = None) -> Generator:
    return lists_of_n_distinct(elem, -1, -1, key_fn)


def lists_of_n_distinct(
    elem: Generator, min_len: int, max_len: int, key_fn: Optional[KeyFn] = None
) -> Generator:
    """Lists whose elements have pairwise distinct keys (the element itself by default)."""
    if key_fn is not None:
        check_arity(key_fn, 1, "key function")
    return Generator(_ListGen(elem, min_len, max_len, key_fn, True))


class _SetGen(GeneratorImpl):
    def __init__(self, elem: Generator, min_len: int, max_len: int):
        _check_bounds(min_len, max_len)
        self.elem = elem
        self.min_len = min_len
        self.max_len = max_len

    def describe(self) -> str:
        return f"SetsOfN({self.elem}, {_bounds_suffix(self.min_len, self.max_len)})"

    def value(self, s: BitStream) -> Set[Any]:
        rep = Repeat(self.min_len, self.max_len)
        out: Set[Any] = set()
        while rep.more(s):
            v = self.elem.value(s)
            if v in out:
                rep.reject()
                continue
            out.add(v)
        return out


def sets_of(elem: Generator) -> Generator:
    return sets_of_n(elem, -1, -1)


def sets_of_n(elem: Generator, min_len: int, max_len: int) -> Generator:
    return Generator(_SetGen(elem, min_len, max_len))


class _DictGen(GeneratorImpl):
    def __init__(self, key: Generator, val: Generator, min_len: int, max_len: int):
        _check_bounds(min_len, max_len)
        self.key = key
        self.val = val
        self.min_len = min_len
        self.max_len = max_len

    def describe(self) -> str:
        return f"DictsOfN({self.key}, {self.val}, {_bounds_suffix(self.min_len, self.max_len)})"

    def value(self, s: BitStream) -> Dict[Any, Any]:
        rep = Repeat(self.min_len, self.max_len)
        out: Dict[Any, Any] = {}
        while rep.more(s):
            k = self.key.value(s)
            if k in out:
                rep.reject()
                continue
            out[k] = self.val.value(s)
        return out


def dicts_of(key: Generator, val: Generator) -> Generator:
    return dicts_of_n(key, val, -1, -1)


def dicts_of_n(key: Generator, val: Generator, min_len: int, max_len: int) -> Generator:
    """Dicts with keys from ``key`` and values from ``val``."""
    return Generator(_DictGen(key, val, min_len, max_len))


class _DictValuesGen(GeneratorImpl):
    def __init__(self, val: Generator, min_len: int, max_len: int, key_fn: Optional[KeyFn]):
        _check_bounds(min_len, max_len)
        self.val = val
        self.min_len = min_len
        self.max_len = max_len
        self.key_fn = key_fn

    def describe(self) -> str:
        key = callable_name(self.key_fn) if self.key_fn is not None else "None"
        return f"DictsOfNValues({self.val}, {_bounds_suffix(self.min_len, self.max_len)}, {key})"

    def value(self, s: BitStream) -> Dict[Any, Any]:
        rep = Repeat(self.min_len, self.max_len)
        out: Dict[Any, Any] = {}
        key_fn = self.key_fn or _identity
        while rep.more(s):
            v = self.val.value(s)
            k = key_fn(v)
            if k in out:
                rep.reject()
                continue
            out[k] = v
        return out


def dicts_of_values(val: Generator, key_fn: Optional[KeyFn] = None) -> Generator:
    return dicts_of_n_values(val, -1, -1, key_fn)


def dicts_of_n_values(
    val: Generator, min_len: int, max_len: int, key_fn: Optional[KeyFn] = None
) -> Generator:
    """Dicts built from ``val`` values keyed by ``key_fn`` (the value itself by default)."""
    if key_fn is not None:
        check_arity(key_fn, 1, "key function")
    return Generator(_DictValuesGen(val, min_len, max_len, key_fn))
