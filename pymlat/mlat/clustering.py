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

"""Outlier rejection over the candidate positions of one signal

Combinations that share a faulty station scatter, while the combinations
without it agree on one point. The filter keeps the densest neighbourhood
of candidates, which need not be a majority: with one faulty station among
n only (n - 4) / n of the 4-subsets are clean.
"""

import logging
from typing import Mapping

import numpy as np
from numba import njit

from ..core.data_structures import Stations
from ..core.params import MIN_CLUSTER_SIZE
from .positions import PositionsList

logger = logging.getLogger(__name__)


@njit(cache=True)
def _neighbor_counts(points, radius):
    n = points.shape[0]
    counts = np.zeros(n, dtype=np.int64)
    r2 = radius * radius
    for i in range(n):
        for j in range(n):
            dx = points[i, 0] - points[j, 0]
            dy = points[i, 1] - points[j, 1]
            dz = points[i, 2] - points[j, 2]
            if dx * dx + dy * dy + dz * dz <= r2:
                counts[i] += 1
    return counts


@njit(cache=True)
def _median_neighbor_distance(points):
    n = points.shape[0]
    out = np.zeros(n)
    if n < 2:
        return out
    dists = np.empty(n - 1)
    for i in range(n):
        k = 0
        for j in range(n):
            if j == i:
                continue
            dx = points[i, 0] - points[j, 0]
            dy = points[i, 1] - points[j, 1]
            dz = points[i, 2] - points[j, 2]
            dists[k] = np.sqrt(dx * dx + dy * dy + dz * dz)
            k += 1
        out[i] = np.median(dists)
    return out


def _as_points(points) -> np.ndarray:
    return np.ascontiguousarray(np.asarray(points, dtype=np.float64).reshape(-1, 3))


def neighbor_counts(points, radius: float) -> np.ndarray:
    """
    Number of candidates within `radius` of each candidate, itself included

    Parameters
    ----------
    points : array_like
        Candidate coordinates, shape (n, 3)
    radius : float
        Neighbourhood radius (m)

    Returns
    -------
    np.ndarray
        Neighbour count per candidate, shape (n,)
    """
    return _neighbor_counts(_as_points(points), float(radius))


def median_neighbor_distance(points) -> np.ndarray:
    """
    Median distance from each candidate to all other candidates

    Parameters
    ----------
    points : array_like
        Candidate coordinates, shape (n, 3)

    Returns
    -------
    np.ndarray
        Median neighbour distance per candidate (m), shape (n,)
    """
    return _median_neighbor_distance(_as_points(points))


def densest_candidate(points, radius: float) -> int:
    """
    Index of the candidate with the most neighbours within `radius`

    Ties go to the candidate closest to the bulk (smallest median
    neighbour distance), then to the lowest index.
    """
    points = _as_points(points)
    counts = neighbor_counts(points, radius)
    seeds = np.flatnonzero(counts == counts.max())
    if len(seeds) == 1:
        return int(seeds[0])
    spread = median_neighbor_distance(points)
    return int(seeds[np.argmin(spread[seeds])])


def filter_outliers(positions: PositionsList, radius: float,
                    min_size: int = MIN_CLUSTER_SIZE) -> PositionsList:
    """
    Keep the candidates of the densest neighbourhood

    The seed is the candidate with the most other candidates within
    `radius`; every candidate within `radius` of the seed is retained.
    A seed without any neighbour means the candidates do not agree at all
    and nothing is retained. The source list is left untouched.

    Parameters
    ----------
    positions : PositionsList
        Candidates of one signal
    radius : float
        Inlier radius (m)
    min_size : int
        Lists shorter than this are returned unfiltered

    Returns
    -------
    PositionsList
        New list with the retained candidates in their original order
    """
    if radius <= 0:
        raise ValueError(f"radius must be positive, got {radius}")

    inliers = PositionsList()
    if len(positions) < max(min_size, 1):
        inliers.add_positions(positions)
        return inliers

    points = _as_points(positions.coordinates())
    seed = densest_candidate(points, radius)
    offsets = points - points[seed]
    within = np.sum(offsets * offsets, axis=1) <= radius * radius
    if np.count_nonzero(within) < 2:
        logger.debug(f"No two of {len(positions)} candidates within {radius:.1f} m")
        return inliers

    for position, keep in zip(positions, within):
        if keep:
            inliers.add_position(position)

    n_out = len(positions) - len(inliers)
    if n_out:
        logger.debug(f"Rejected {n_out}/{len(positions)} candidates "
                     f"farther than {radius:.1f} m from candidate {seed}")
    return inliers


def clustered_stations(positions: PositionsList,
                       combinations: Mapping[int, tuple],
                       stations: Stations) -> Stations:
    """
    Stations that contributed to the given candidates

    Parameters
    ----------
    positions : PositionsList
        Retained candidates
    combinations : mapping
        Combination id -> tuple of station indices
    stations : Stations
        Source collection the indices refer to

    Returns
    -------
    Stations
        Contributing stations, each once, in source order
    """
    used = set()
    for position in positions:
        used.update(combinations.get(int(position.combination_id), ()))
    clustered = Stations(stations[i] for i in sorted(used))
    if stations.time is not None:
        clustered.set_time(stations.time)
    return clustered
