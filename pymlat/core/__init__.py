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

"""Core Multilateration Module.

This module provides the fundamental components for multilateration:

- **Constants**: propagation speed, combination sizes and solution status codes
- **Parameters**: solver thresholds and default processing configurations
- **Errors**: the error taxonomy shared by the solver and the reductions
- **Data Structures**: ground stations, station collections, signals and
  delay statistics

Example Usage:
    >>> from pymlat.core import *
    >>>
    >>> signal = Signal(sat_id=7, timestamp=1234.5)
    >>> signal.add_ground_station_delta(0.0, 0.0, 0.0, 1.2e-6, delay=0.1)
    >>> stations = Stations()
    >>> signal.convert_to_stations(stations)
    1
"""

from .constants import *
from .errors import *
from .params import *
from .data_structures import *
