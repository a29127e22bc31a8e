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
Multilateration Processing Parameters
=====================================

Solver thresholds and default processing configurations.
"""

from dataclasses import asdict, dataclass, fields
from typing import Optional

from .constants import DEFAULT_COMBINATION_SIZE

__all__ = [
    "MIN_VOLUME_RATIO", "MAX_RESIDUAL", "REFINE", "REFINE_MAX_NFEV", "REFINE_XTOL",
    "CLUSTER_RADIUS", "MIN_CLUSTER_SIZE", "KEEP_CANDIDATES", "MAX_COMBINATIONS",
    "DEFAULT_PARAMS", "HIGH_PRECISION_PARAMS", "ROBUST_PARAMS", "MlatConfig",
]

# ============================================================================
# GEOMETRY THRESHOLDS
# ============================================================================
MIN_VOLUME_RATIO = 1e-9      # Min |det| / prod(row norms) of the linear system
MAX_RESIDUAL = None          # Max RMS sphere residual of a candidate (m), None accepts all

# ============================================================================
# NONLINEAR REFINEMENT
# ============================================================================
REFINE = False               # Refine linear estimate with nonlinear LS
REFINE_MAX_NFEV = 50         # Max function evaluations for refinement
REFINE_XTOL = 1e-12          # Relative step tolerance for refinement

# ============================================================================
# CLUSTERING
# ============================================================================
CLUSTER_RADIUS = None        # Neighbourhood radius of the retained cluster (m)
MIN_CLUSTER_SIZE = 3         # Candidates required before outliers are rejected

# ============================================================================
# REDUCTION
# ============================================================================
KEEP_CANDIDATES = True       # Materialise every candidate position
MAX_COMBINATIONS = None      # Cap on combinations solved per signal

# ============================================================================
# DEFAULT CONFIGURATIONS
# ============================================================================

DEFAULT_PARAMS = {
    'combination_size': DEFAULT_COMBINATION_SIZE,
    'min_volume_ratio': MIN_VOLUME_RATIO,
    'max_residual': MAX_RESIDUAL,
    'refine': REFINE,
    'refine_max_nfev': REFINE_MAX_NFEV,
    'cluster_radius': CLUSTER_RADIUS,
    'keep_candidates': KEEP_CANDIDATES,
    'max_combinations': MAX_COMBINATIONS,
}

# High precision configuration
HIGH_PRECISION_PARAMS = {
    'min_volume_ratio': 1e-6,
    'max_residual': 10.0,
    'refine': True,
    'refine_max_nfev': 100,
}

# Robust configuration for noisy station networks
ROBUST_PARAMS = {
    'min_volume_ratio': 1e-7,
    'max_residual': 5e3,
    'cluster_radius': 500.0,
}


@dataclass
class MlatConfig:
    """Processing configuration for one multilateration run

    Attributes
    ----------
    combination_size : int
        Stations per combination (>= 4)
    min_volume_ratio : float
        Geometry threshold below which a combination is degenerate
    max_residual : float or None
        Candidates with a larger RMS sphere residual (m) are discarded;
        None keeps every candidate
    refine : bool
        Refine each linear estimate with nonlinear least squares
    refine_max_nfev : int
        Maximum function evaluations of the refinement
    cluster_radius : float or None
        Outlier rejection radius (m); None disables clustering
    keep_candidates : bool
        Keep every candidate position; False reduces them on the fly
    max_combinations : int or None
        Upper bound on combinations solved per signal
    """
    combination_size: int = DEFAULT_COMBINATION_SIZE
    min_volume_ratio: float = MIN_VOLUME_RATIO
    max_residual: Optional[float] = MAX_RESIDUAL
    refine: bool = REFINE
    refine_max_nfev: int = REFINE_MAX_NFEV
    cluster_radius: Optional[float] = CLUSTER_RADIUS
    keep_candidates: bool = KEEP_CANDIDATES
    max_combinations: Optional[int] = MAX_COMBINATIONS

    def __post_init__(self):
        if self.combination_size < DEFAULT_COMBINATION_SIZE:
            raise ValueError(
                f"combination_size must be >= {DEFAULT_COMBINATION_SIZE}, "
                f"got {self.combination_size}")
        if self.min_volume_ratio < 0:
            raise ValueError("min_volume_ratio must be non-negative")
        if self.cluster_radius is not None and self.cluster_radius <= 0:
            raise ValueError("cluster_radius must be positive")
        if self.cluster_radius is not None and not self.keep_candidates:
            raise ValueError("clustering requires keep_candidates=True")

    @classmethod
    def from_dict(cls, config: dict) -> 'MlatConfig':
        """Build configuration from a parameter dictionary

        Unknown keys are rejected so that typos do not pass silently.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ValueError(f"Unknown parameters: {sorted(unknown)}")
        params = dict(DEFAULT_PARAMS)
        params.update(config)
        return cls(**params)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary"""
        return asdict(self)
