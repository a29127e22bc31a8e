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
Sphere-intersection (Apollonius) solver for one station combination.

Each station is the centre of a sphere whose radius is the derived range
to the vehicle. With the first station as reference and coordinates
shifted to it (d_i = s_i - s_0, q = p - s_0), subtracting the reference
sphere from the others gives the linear system

    2 d_i . q = |d_i|^2 + r_0^2 - r_i^2,    i = 1..n-1

which is solved directly for three equations and through the normal
equations for more. Station coordinates reach 1e7 m while ranges are
derived from sub-microsecond time differences, so all arithmetic is done
in long double. numpy.linalg has no long double support, hence the
explicit 3x3 solve.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from scipy.optimize import least_squares

from ..core.constants import COMB_ID_NONE, MIN_COMBINATION_SIZE
from ..core.data_structures import Station
from ..core.errors import DegenerateGeometryError
from ..core.params import MIN_VOLUME_RATIO, REFINE_MAX_NFEV, REFINE_XTOL, MlatConfig
from ..logger import TRACE
from .combinations import Combination
from .positions import Position

logger = logging.getLogger(__name__)


def _det3(M):
    """Determinant of a 3x3 matrix by cofactor expansion"""
    return (M[0, 0] * (M[1, 1] * M[2, 2] - M[1, 2] * M[2, 1])
            - M[0, 1] * (M[1, 0] * M[2, 2] - M[1, 2] * M[2, 0])
            + M[0, 2] * (M[1, 0] * M[2, 1] - M[1, 1] * M[2, 0]))


def volume_ratio(M) -> np.longdouble:
    """
    Hadamard ratio |det M| / prod(|row_i|) of a 3x3 matrix

    The ratio lies in [0, 1]: 1 for orthogonal rows, 0 for rows that are
    coplanar or collinear. Unlike the plain determinant it does not depend
    on the scale of the station network.
    """
    M = np.asarray(M, dtype=np.longdouble)
    norms = np.sqrt(np.sum(M * M, axis=1))
    if np.any(norms == 0):
        return np.longdouble(0)
    return abs(_det3(M)) / np.prod(norms)


def solve3(M, v, min_volume_ratio=MIN_VOLUME_RATIO) -> Optional[np.ndarray]:
    """
    Solve the 3x3 system M q = v by Cramer's rule in long double

    Returns
    -------
    np.ndarray or None
        Solution, shape (3,), or None if the system is singular or
        ill-conditioned (volume ratio below min_volume_ratio)
    """
    M = np.asarray(M, dtype=np.longdouble)
    v = np.asarray(v, dtype=np.longdouble)

    ratio = volume_ratio(M)
    if not np.isfinite(ratio) or ratio < min_volume_ratio:
        return None

    det = _det3(M)
    q = np.empty(3, dtype=np.longdouble)
    for j in range(3):
        Mj = M.copy()
        Mj[:, j] = v
        q[j] = _det3(Mj) / det

    if not np.all(np.isfinite(q)):
        return None
    return q


def linear_solve(offsets: np.ndarray, ranges: np.ndarray,
                 min_volume_ratio=MIN_VOLUME_RATIO) -> Optional[np.ndarray]:
    """
    Solve the linearised sphere system relative to the reference station

    Parameters
    ----------
    offsets : np.ndarray
        Station positions minus the reference position, shape (n, 3),
        first row is zero
    ranges : np.ndarray
        Station ranges, shape (n,)
    min_volume_ratio : float
        Conditioning threshold of the system

    Returns
    -------
    np.ndarray or None
        Vehicle position relative to the reference station, or None for
        degenerate geometry
    """
    d = offsets[1:]
    A = 2 * d
    b = np.sum(d * d, axis=1) + ranges[0] ** 2 - ranges[1:] ** 2

    if A.shape[0] == 3:
        return solve3(A, b, min_volume_ratio)

    # Normal equations square the conditioning of A
    N = A.T @ A
    return solve3(N, A.T @ b, min_volume_ratio ** 2)


def sphere_residuals(offsets: np.ndarray, ranges: np.ndarray, q: np.ndarray) -> np.ndarray:
    """Distance from q to each station minus the station range"""
    diff = q - offsets
    return np.sqrt(np.sum(diff * diff, axis=1)) - ranges


def refine_solution(offsets: np.ndarray, ranges: np.ndarray, q0: np.ndarray,
                    max_nfev: int = REFINE_MAX_NFEV) -> np.ndarray:
    """
    Refine a linear estimate with nonlinear least squares on all spheres

    Works in double precision on reference-shifted coordinates, where the
    magnitudes are small enough not to lose accuracy. Returns q0 unchanged
    if the optimiser fails.
    """
    d = offsets.astype(np.float64)
    r = ranges.astype(np.float64)

    def residuals(q):
        return np.linalg.norm(q - d, axis=1) - r

    result = least_squares(residuals, q0.astype(np.float64), method='lm',
                           xtol=REFINE_XTOL, max_nfev=max_nfev)
    if not result.success or not np.all(np.isfinite(result.x)):
        logger.debug(f"Refinement failed: {result.message}")
        return q0
    return result.x.astype(np.longdouble)


def _estimate(stations: Sequence[Station], combination_id: int,
              min_volume_ratio, refine: bool, max_nfev: int) -> Optional[Position]:
    positions = np.array([[s.x, s.y, s.z] for s in stations], dtype=np.longdouble)
    ranges = np.array([s.r for s in stations], dtype=np.longdouble)
    reference = positions[0]
    offsets = positions - reference

    q = linear_solve(offsets, ranges, min_volume_ratio)
    if q is None:
        return None
    if refine:
        q = refine_solution(offsets, ranges, q, max_nfev)

    res = sphere_residuals(offsets, ranges, q)
    rms = np.sqrt(np.mean(res * res))
    p = reference + q
    return Position(p[0], p[1], p[2], rms, combination_id)


def _check_stations(stations: Sequence[Station]):
    if len(stations) < MIN_COMBINATION_SIZE:
        raise ValueError(
            f"Need at least {MIN_COMBINATION_SIZE} stations, got {len(stations)}")
    for i, station in enumerate(stations):
        if station.r is None:
            raise ValueError(f"Station {i} has no range")


def trilaterate(stations: Sequence[Station], combination_id: int = COMB_ID_NONE,
                min_volume_ratio=MIN_VOLUME_RATIO, refine: bool = False,
                max_nfev: int = REFINE_MAX_NFEV) -> Position:
    """
    Estimate the vehicle position from the ranges of a station combination

    Parameters
    ----------
    stations : sequence of Station
        At least 4 stations with ranges; the first is the reference
    combination_id : int
        Id attached to the resulting position
    min_volume_ratio : float
        Conditioning threshold below which the geometry is degenerate
    refine : bool
        Refine the linear estimate with nonlinear least squares
    max_nfev : int
        Maximum function evaluations of the refinement

    Returns
    -------
    Position
        Candidate position carrying the RMS sphere residual in `r`

    Raises
    ------
    DegenerateGeometryError
        If the stations are coplanar, collinear or coincident
    ValueError
        If fewer than 4 stations are given or a range is missing
    """
    stations = list(stations)
    _check_stations(stations)
    position = _estimate(stations, combination_id, min_volume_ratio, refine, max_nfev)
    if position is None:
        raise DegenerateGeometryError(
            f"Degenerate station geometry in combination {combination_id}",
            combination_id)
    return position


def solve_combination(combination: Combination,
                      config: Optional[MlatConfig] = None) -> Optional[Position]:
    """
    Candidate position of one combination, None for degenerate geometry

    Used inside the per-signal loop, where a degenerate combination is
    skipped and its siblings are still solved.
    """
    if config is None:
        config = MlatConfig()
    _check_stations(combination.stations)
    position = _estimate(combination.stations, combination.combination_id,
                         config.min_volume_ratio, config.refine, config.refine_max_nfev)
    if position is None:
        logger.log(TRACE, f"Combination {combination.combination_id} "
                          f"{combination.indices}: degenerate geometry")
    return position


def synthesize_ranges(station_positions, position) -> np.ndarray:
    """Exact ranges from stations to a known vehicle position (m)"""
    station_positions = np.asarray(station_positions, dtype=np.longdouble).reshape(-1, 3)
    diff = station_positions - np.asarray(position, dtype=np.longdouble)
    return np.sqrt(np.sum(diff * diff, axis=1))
