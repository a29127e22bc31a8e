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

"""Enumeration of station combinations"""

from dataclasses import dataclass
from itertools import combinations, islice
from typing import Iterator, Optional

from scipy.special import comb

from ..core.constants import DEFAULT_COMBINATION_SIZE, MIN_COMBINATION_SIZE
from ..core.data_structures import Station, Stations


@dataclass(frozen=True)
class Combination:
    """Subset of the stations observing one signal.

    Attributes
    ----------
    combination_id : int
        Lexicographic index of the subset, starting at 1
    indices : tuple of int
        Indices of the member stations in the source collection
    stations : tuple of Station
        The member stations, first one is the reference
    """
    combination_id: int
    indices: tuple
    stations: tuple

    def __len__(self) -> int:
        return len(self.stations)


def _check_size(k: int):
    if k < MIN_COMBINATION_SIZE:
        raise ValueError(
            f"Combination size must be >= {MIN_COMBINATION_SIZE}, got {k}")


def count_combinations(n: int, k: int = DEFAULT_COMBINATION_SIZE) -> int:
    """Number of k-subsets of n stations, 0 when n < k"""
    _check_size(k)
    if n < k:
        return 0
    return int(comb(n, k, exact=True))


def enumerate_combinations(stations: Stations,
                           k: int = DEFAULT_COMBINATION_SIZE,
                           limit: Optional[int] = None) -> Iterator[Combination]:
    """
    Enumerate every k-subset of the stations in lexicographic order

    Parameters
    ----------
    stations : Stations or sequence of Station
        Stations observing one signal
    k : int
        Stations per combination (>= 4)
    limit : int, optional
        Stop after this many combinations

    Yields
    ------
    Combination
        Subsets tagged with ids 1, 2, ... in lexicographic order

    Notes
    -----
    Fewer than k stations give no combinations at all; the caller treats
    that as insufficient data for the signal.
    """
    _check_size(k)
    members: list[Station] = list(stations)
    index_sets = combinations(range(len(members)), k)
    if limit is not None:
        index_sets = islice(index_sets, limit)
    for combination_id, indices in enumerate(index_sets, start=1):
        yield Combination(
            combination_id=combination_id,
            indices=indices,
            stations=tuple(members[i] for i in indices),
        )
