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
"""quickdraw: property-based testing with bit-stream shrinking.

quickdraw generates pseudorandom inputs from declarative generators, runs a
property against them and, when the property fails, searches for a minimal
failing input. Every value is decoded from a recorded stream of 64-bit
words, so a failure is reproduced exactly by replaying its words, and
shrinking works on the words rather than on the values.

Key Components:
    - core: bit streams, bit-level decoders, errors and settings
    - generators: primitives, combinators, collections and text
    - engine: draw context, failure records, shrinker and runner
    - observability: check and shrink metrics, exporters

Usage:
    >>> from quickdraw import check, ints, lists_of
    >>> def prop_reverse(t, xs):
    ...     assert list(reversed(list(reversed(xs)))) == xs
    >>> check(prop_reverse, lists_of(ints()))
"""

from .core import (
    DEFAULT_SETTINGS,
    ConfigurationError,
    EngineError,
    EntropyExhausted,
    InvalidData,
    Overrun,
    PropertyFailure,
    QuickdrawError,
    Settings,
)
from .engine import (
    CheckResult,
    FailureRecord,
    FailureReport,
    OutcomeKind,
    T,
    check,
    make_check,
    replay,
)
from .generators import *  # noqa: F401,F403
from .generators import __all__ as _generators_all

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Running properties
    "T",
    "check",
    "make_check",
    "replay",
    "CheckResult",
    "FailureRecord",
    "FailureReport",
    "OutcomeKind",
    # Settings and errors
    "Settings",
    "DEFAULT_SETTINGS",
    "QuickdrawError",
    "ConfigurationError",
    "EngineError",
    "InvalidData",
    "Overrun",
    "EntropyExhausted",
    "PropertyFailure",
] + list(_generators_all)
