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

"""
PyMLAT - Multilateration Library

Estimates the position of a transmitting vehicle from the times at which a
network of fixed ground stations received its signal (TDOA /
multilateration).
"""

__version__ = "1.0.0"
__author__ = "PyMLAT Development Team"
__title__ = "pymlat"
__description__ = "Multilateration of transmitting vehicles from ground station timing"

from .logger import setup_logger, setup_logger_from_config
from .core import *
from .mlat import *
