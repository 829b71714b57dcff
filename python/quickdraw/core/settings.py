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
"""Runner and shrinker settings."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ConfigurationError

DEFAULT_CHECKS = 100
DEFAULT_MAX_SHRINK_ATTEMPTS = 10_000
DEFAULT_SHRINK_TIME_LIMIT = 30.0
DEFAULT_MAX_ENTROPY_WORDS = 8192
DEFAULT_FILTER_TRIES = 100
DEFAULT_INVALID_CHECKS_MULT = 10


@dataclass(frozen=True)
class Settings:
    """Configuration for one property check.

    Attributes:
        checks: Number of valid examples to run before declaring success
        max_shrink_attempts: Upper bound on candidate replays while shrinking
        shrink_time_limit: Wall-clock limit for shrinking, in seconds
        max_entropy_words: Word budget of a single random attempt
        seed: Base seed; None picks a process-wide seed once
        filter_tries: Draw attempts a filter makes before giving up
        invalid_checks_mult: Invalid attempts allowed per requested check
        verbose: Log every draw of every attempt
        debug_shrink: Log every shrink candidate that gets accepted
    """

    checks: int = DEFAULT_CHECKS
    max_shrink_attempts: int = DEFAULT_MAX_SHRINK_ATTEMPTS
    shrink_time_limit: float = DEFAULT_SHRINK_TIME_LIMIT
    max_entropy_words: int = DEFAULT_MAX_ENTROPY_WORDS
    seed: Optional[int] = None
    filter_tries: int = DEFAULT_FILTER_TRIES
    invalid_checks_mult: int = DEFAULT_INVALID_CHECKS_MULT
    verbose: bool = False
    debug_shrink: bool = False

    def __post_init__(self) -> None:
        if self.checks < 1:
            raise ConfigurationError(f"checks must be positive, got {self.checks}")
        if self.max_shrink_attempts < 0:
            raise ConfigurationError(
                f"max_shrink_attempts must be non-negative, got {self.max_shrink_attempts}"
            )
        if self.shrink_time_limit < 0:
            raise ConfigurationError(
                f"shrink_time_limit must be non-negative, got {self.shrink_time_limit}"
            )
        if self.max_entropy_words < 1:
            raise ConfigurationError(
                f"max_entropy_words must be positive, got {self.max_entropy_words}"
            )
        if self.filter_tries < 1:
            raise ConfigurationError(f"filter_tries must be positive, got {self.filter_tries}")
        if self.invalid_checks_mult < 1:
            raise ConfigurationError(
                f"invalid_checks_mult must be positive, got {self.invalid_checks_mult}"
            )

    @property
    def max_invalid(self) -> int:
        """Invalid attempts tolerated before the check is reported as unusable."""
        return self.checks * self.invalid_checks_mult

    def replace(self, **changes: Any) -> Settings:
        """Return a copy with the given fields changed."""
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ConfigurationError(f"unknown settings: {sorted(unknown)}")
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


DEFAULT_SETTINGS = Settings()
