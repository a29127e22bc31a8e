# Copyright 2024 inuex35
#
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

"""Multilateration Constants and Solution Status"""

from enum import Enum

__all__ = [
    "CLIGHT", "MIN_COMBINATION_SIZE", "DEFAULT_COMBINATION_SIZE", "COMB_ID_NONE",
    "SOLQ_NONE", "SOLQ_MLAT", "SOLQ_INSUFFICIENT", "SOLQ_DEGENERATE", "SolveStatus",
]

# Physical Constants
CLIGHT = 299792458.0  # speed of light (m/s)

# Combination sizes
MIN_COMBINATION_SIZE = 4   # stations needed for an unambiguous 3-D solve
DEFAULT_COMBINATION_SIZE = MIN_COMBINATION_SIZE

# Combination id reserved for unspecified/aggregated positions
COMB_ID_NONE = 0

# Solution Status
SOLQ_NONE = 0            # no solution
SOLQ_MLAT = 1            # multilateration solution
SOLQ_INSUFFICIENT = 2    # too few usable stations
SOLQ_DEGENERATE = 3      # every combination was degenerate


class SolveStatus(Enum):
    """Outcome of processing one signal event"""
    OK = SOLQ_MLAT
    INSUFFICIENT_STATIONS = SOLQ_INSUFFICIENT
    NO_SOLUTION = SOLQ_DEGENERATE
