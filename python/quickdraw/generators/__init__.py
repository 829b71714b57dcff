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
"""Generator algebra: primitives, combinators and collections."""

from .base import Data, Generator, GeneratorImpl
from .combinators import custom, just, one_of, optionals, sampled_from, tuples
from .containers import (
    dicts_of,
    dicts_of_n,
    dicts_of_n_values,
    dicts_of_values,
    lists_of,
    lists_of_distinct,
    lists_of_n,
    lists_of_n_distinct,
    sets_of,
    sets_of_n,
)
from .floats import (
    float32s,
    float32s_max,
    float32s_min,
    float32s_range,
    float64s,
    float64s_max,
    float64s_min,
    float64s_range,
)
from .integers import (
    booleans,
    bytes_values,
    int8s,
    int16s,
    int32s,
    int64s,
    ints,
    ints_max,
    ints_min,
    ints_range,
    uint8s,
    uint16s,
    uint32s,
    uint64s,
    uints,
    uints_max,
    uints_min,
    uints_range,
)
from .text import (
    byte_strings,
    byte_strings_n,
    characters,
    characters_range,
    text,
    text_of,
    text_of_n,
)

__all__ = [
    # Core abstraction
    "Data",
    "Generator",
    "GeneratorImpl",
    # Primitives
    "booleans",
    "bytes_values",
    "ints",
    "ints_min",
    "ints_max",
    "ints_range",
    "int8s",
    "int16s",
    "int32s",
    "int64s",
    "uints",
    "uints_min",
    "uints_max",
    "uints_range",
    "uint8s",
    "uint16s",
    "uint32s",
    "uint64s",
    "float32s",
    "float32s_min",
    "float32s_max",
    "float32s_range",
    "float64s",
    "float64s_min",
    "float64s_max",
    "float64s_range",
    # Combinators
    "custom",
    "just",
    "one_of",
    "optionals",
    "sampled_from",
    "tuples",
    # Collections
    "lists_of",
    "lists_of_n",
    "lists_of_distinct",
    "lists_of_n_distinct",
    "sets_of",
    "sets_of_n",
    "dicts_of",
    "dicts_of_n",
    "dicts_of_values",
    "dicts_of_n_values",
    # Text
    "characters",
    "characters_range",
    "text",
    "text_of",
    "text_of_n",
    "byte_strings",
    "byte_strings_n",
]
