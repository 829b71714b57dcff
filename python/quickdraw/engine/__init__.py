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
"""Property execution: draw context, failure capture, shrinking and checks."""

from .context import SkipTest, StopTest, T, check_once, draw_once
from .failure import FailureRecord, FailureReport, OutcomeKind
from .runner import BugSearch, CheckResult, base_seed, check, find_bug, make_check, replay
from .shrinker import Shrinker, ShrinkResult, compare_data, minimize, without

__all__ = [
    # Context
    "T",
    "StopTest",
    "SkipTest",
    "check_once",
    "draw_once",
    # Failures
    "OutcomeKind",
    "FailureRecord",
    "FailureReport",
    # Runner
    "BugSearch",
    "CheckResult",
    "base_seed",
    "check",
    "find_bug",
    "make_check",
    "replay",
    # Shrinking
    "Shrinker",
    "ShrinkResult",
    "compare_data",
    "minimize",
    "without",
]
