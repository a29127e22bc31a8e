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

"""Multilateration Solving Module.

- **Combinations**: lexicographic enumeration of station subsets
- **Trilateration**: extended-precision sphere-intersection solve per subset
- **Positions**: append-only candidate list and streaming reductions
- **Clustering**: outlier rejection over candidates
- **Processor**: per-signal pipeline and multi-process batch processing
"""

from .combinations import Combination, count_combinations, enumerate_combinations
from .positions import Position, PositionsList, RunningCentroid
from .trilateration import (
    linear_solve,
    refine_solution,
    solve3,
    solve_combination,
    sphere_residuals,
    synthesize_ranges,
    trilaterate,
    volume_ratio,
)
from .clustering import (
    clustered_stations,
    densest_candidate,
    filter_outliers,
    median_neighbor_distance,
    neighbor_counts,
)
from .processor import MultilaterationProcessor, SignalSolution, process_signals
