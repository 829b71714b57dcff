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
"""Exception taxonomy for quickdraw.

Errors fall into four groups:

1. ConfigurationError: a generator or setting was built with impossible
   parameters (NaN bound, inverted range, empty sample). Raised eagerly at
   construction time and never seen by the runner.
2. InvalidData: the current attempt cannot produce a usable value (filter
   retries spent, entropy budget spent, replay overrun, explicit skip).
   The attempt is discarded; it is neither a pass nor a failure.
3. EngineError: an internal invariant of the engine was broken.
4. PropertyFailure: raised by ``check`` once a failure has been found and
   minimized. It subclasses AssertionError so test runners report it as an
   ordinary test failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..engine.failure import FailureReport


class QuickdrawError(Exception):
    """Base class for every error raised by quickdraw itself."""


class ConfigurationError(QuickdrawError, ValueError):
    """Invalid generator parameters or settings."""


class EngineError(QuickdrawError):
    """Broken internal invariant (unbalanced groups, bad coin bias, ...)."""


class InvalidData(QuickdrawError):
    """The current attempt should be discarded as invalid."""


class Overrun(InvalidData):
    """A replayed bit stream was read past its recorded end."""

    def __init__(self, length: int):
        super().__init__(f"overrun: replay buffer of {length} words exhausted")
        self.length = length


class EntropyExhausted(InvalidData):
    """A random bit stream hit its configured word budget."""

    def __init__(self, max_words: int):
        super().__init__(f"entropy budget of {max_words} words exhausted")
        self.max_words = max_words


class PropertyFailure(AssertionError):
    """A property failed (or could not be checked) under ``check``.

    Attributes:
        report: The FailureReport describing the minimized failure, or None
            when the check was aborted because of too many invalid attempts
    """

    def __init__(self, message: str, report: Optional["FailureReport"] = None):
        super().__init__(message)
        self.report = report
