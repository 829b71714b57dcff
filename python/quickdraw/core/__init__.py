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
"""Core of quickdraw: bit streams, bit-level decoders, errors and settings."""

from .bitstream import (
    BitStream,
    BufBitStream,
    GroupInfo,
    RandomBitStream,
    RecordedBits,
    bitmask,
    decode_words,
    encode_words,
)
from .errors import (
    ConfigurationError,
    EngineError,
    EntropyExhausted,
    InvalidData,
    Overrun,
    PropertyFailure,
    QuickdrawError,
)
from .settings import DEFAULT_SETTINGS, Settings

__all__ = [
    # Bit streams
    "BitStream",
    "RandomBitStream",
    "BufBitStream",
    "RecordedBits",
    "GroupInfo",
    "bitmask",
    "encode_words",
    "decode_words",
    # Errors
    "QuickdrawError",
    "ConfigurationError",
    "EngineError",
    "InvalidData",
    "Overrun",
    "EntropyExhausted",
    "PropertyFailure",
    # Settings
    "Settings",
    "DEFAULT_SETTINGS",
]
