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

"""Multilateration error types"""

__all__ = [
    "MlatError", "InsufficientStationsError", "DegenerateGeometryError",
    "EmptyReductionError", "InvalidRangeError",
]


class MlatError(ValueError):
    """Base class for multilateration errors"""


class InsufficientStationsError(MlatError):
    """Fewer usable stations than a combination requires"""

    def __init__(self, n_stations: int, required: int):
        self.n_stations = n_stations
        self.required = required
        super().__init__(
            f"Not enough stations: {n_stations} usable, {required} required")


class DegenerateGeometryError(MlatError):
    """Station geometry of a combination gives a singular linear system"""

    def __init__(self, message: str, combination_id: int = 0):
        self.combination_id = combination_id
        super().__init__(message)


class EmptyReductionError(MlatError):
    """Centroid or statistics requested over an empty collection"""


class InvalidRangeError(MlatError):
    """Derived range is negative or not finite"""

    def __init__(self, r):
        self.r = r
        super().__init__(f"Invalid range: {r}")
