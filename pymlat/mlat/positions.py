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

"""Candidate positions and their reduction to a single estimate"""

from typing import Iterable, Iterator, NamedTuple, Optional, Union

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from ..core.constants import COMB_ID_NONE
from ..core.errors import EmptyReductionError


class Position(NamedTuple):
    """Candidate vehicle position.

    Attributes
    ----------
    x, y, z : np.longdouble
        Candidate coordinates (m)
    r : np.longdouble
        RMS sphere residual of the solve that produced the candidate (m)
    combination_id : int
        Station combination the candidate came from, 0 if unspecified
    """
    x: np.longdouble
    y: np.longdouble
    z: np.longdouble
    r: np.longdouble = np.longdouble(0)
    combination_id: int = COMB_ID_NONE

    @property
    def xyz(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.longdouble)


class RunningCentroid:
    """Streaming unweighted centroid of candidate positions.

    Keeps a running mean in extended precision so that the raw candidates
    can be discarded once folded in. A sequence of identical positions
    yields that position exactly.
    """

    def __init__(self):
        self.count = 0
        self._mean = np.zeros(3, dtype=np.longdouble)

    def add(self, position):
        xyz = np.asarray(position[:3], dtype=np.longdouble)
        self.count += 1
        self._mean += (xyz - self._mean) / self.count

    def mean(self) -> np.ndarray:
        """Centroid of all added positions, shape (3,)

        Raises
        ------
        EmptyReductionError
            If no position has been added
        """
        if self.count == 0:
            raise EmptyReductionError("Centroid of an empty set of positions")
        return self._mean.copy()


class PositionsList:
    """Append-only list of the candidate positions of one signal.

    Candidates are never removed; filters build a new list instead.
    """

    def __init__(self, position: Optional[Position] = None):
        self._positions: list[Position] = []
        if position is not None:
            self.add_position(position)

    def add_position(self, position: Position):
        self._positions.append(Position(*position))

    def add_position_values(self, values, combination_id: Optional[int] = None):
        """Add position from 3, 4 or 5 values (x, y, z[, r[, combination id]]).

        Missing fields default to 0. An explicit combination_id overrides
        the fifth value.
        """
        n = len(values)
        if n < 3:
            raise ValueError(f"Position needs at least 3 coordinates, got {n}")
        x, y, z = (np.longdouble(v) for v in values[:3])
        r = np.longdouble(values[3]) if n > 3 else np.longdouble(0)
        if combination_id is None:
            combination_id = int(values[4]) if n > 4 else COMB_ID_NONE
        self._positions.append(Position(x, y, z, r, combination_id))

    def add_positions(self, positions: Union['PositionsList', Iterable[Position]]):
        """Append every position of another list or iterable"""
        for position in positions:
            self.add_position(position)

    def get_position(self, index: int) -> Position:
        return self._positions[index]

    def __getitem__(self, index: int) -> Position:
        return self._positions[index]

    def size(self) -> int:
        return len(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Position]:
        return iter(self._positions)

    def get_x(self, index: int):
        return self._positions[index].x

    def get_y(self, index: int):
        return self._positions[index].y

    def get_z(self, index: int):
        return self._positions[index].z

    def get_r(self, index: int):
        return self._positions[index].r

    def get_comb_id(self, index: int) -> int:
        return self._positions[index].combination_id

    def get_distance(self, first: int, second: int) -> np.longdouble:
        """Euclidean distance between two stored positions (m)"""
        a = self._positions[first]
        b = self._positions[second]
        dx = np.longdouble(a.x) - np.longdouble(b.x)
        dy = np.longdouble(a.y) - np.longdouble(b.y)
        dz = np.longdouble(a.z) - np.longdouble(b.z)
        return np.sqrt(dx * dx + dy * dy + dz * dz)

    def coordinates(self) -> np.ndarray:
        """Candidate coordinates, shape (n, 3), long double"""
        return np.array([p[:3] for p in self._positions],
                        dtype=np.longdouble).reshape(-1, 3)

    def distance_matrix(self) -> np.ndarray:
        """Pairwise distances between all candidates, shape (n, n).

        Computed in double precision; intended for clustering where
        sub-millimetre accuracy is irrelevant.
        """
        n = len(self._positions)
        if n < 2:
            return np.zeros((n, n))
        return squareform(pdist(self.coordinates().astype(np.float64)))

    def average_position(self) -> np.ndarray:
        """Unweighted centroid of all candidates, shape (3,)

        Raises
        ------
        EmptyReductionError
            If the list is empty
        """
        centroid = RunningCentroid()
        for position in self._positions:
            centroid.add(position)
        return centroid.mean()

    def to_dataframe(self) -> pd.DataFrame:
        """Candidates as a DataFrame with columns x, y, z, r, combination_id"""
        rows = [{
            'x': float(p.x),
            'y': float(p.y),
            'z': float(p.z),
            'r': float(p.r),
            'combination_id': int(p.combination_id),
        } for p in self._positions]
        return pd.DataFrame(rows, columns=['x', 'y', 'z', 'r', 'combination_id'])

    def __repr__(self):
        return f"PositionsList(n={len(self._positions)})"
