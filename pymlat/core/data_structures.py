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

"""Core data structures for multilateration processing"""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator, NamedTuple, Optional

import numpy as np
import pandas as pd

from .constants import CLIGHT
from .errors import EmptyReductionError, InvalidRangeError

__all__ = [
    "Station", "Stations", "Signal", "GroundObservation",
    "DelayStats", "RunningDelayStats", "compute_delay_stats",
]

logger = logging.getLogger(__name__)


def _check_range(r):
    """Return r as long double, rejecting negative or non-finite values"""
    r = np.longdouble(r)
    if not np.isfinite(r) or r < 0:
        raise InvalidRangeError(r)
    return r


@dataclass(frozen=True)
class Station:
    """Ground station receiving one signal event.

    Attributes
    ----------
    x, y, z : float
        Station coordinates (m)
    t : np.longdouble
        Time of receiving the signal (s)
    r : np.longdouble or None
        Distance of the vehicle from the station (m), None until the
        sending time is known
    delay : float
        Delay of the signal at this station, used as a quality tag

    Notes
    -----
    Stations are immutable; `with_range` returns a new instance carrying
    the derived range.
    """
    x: float
    y: float
    z: float
    t: np.longdouble = np.longdouble(0)
    r: Optional[np.longdouble] = None
    delay: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 't', np.longdouble(self.t))
        if self.r is not None:
            object.__setattr__(self, 'r', _check_range(self.r))

    @classmethod
    def from_vector(cls, vec) -> 'Station':
        """Create station from [x, y, z, r]"""
        return cls(vec[0], vec[1], vec[2], r=vec[3])

    def to_vector(self) -> list:
        """Convert station to [x, y, z, r]"""
        return [self.x, self.y, self.z, self.r]

    def with_range(self, t0) -> 'Station':
        """Station with range derived from the sending time t0.

        Parameters
        ----------
        t0 : float or np.longdouble
            Time of sending the signal (s)

        Raises
        ------
        InvalidRangeError
            If the receipt time precedes t0 or the result is not finite
        """
        dt = self.t - np.longdouble(t0)
        return replace(self, r=dt * np.longdouble(CLIGHT))

    @property
    def has_range(self) -> bool:
        return self.r is not None

    @property
    def position(self) -> np.ndarray:
        """Station coordinates in extended precision, shape (3,)"""
        return np.array([self.x, self.y, self.z], dtype=np.longdouble)


@dataclass(frozen=True)
class DelayStats:
    """Delay statistics of the stations observing one signal.

    Attributes
    ----------
    sat_id : int
        Identifier of the transmitting vehicle
    timestamp : np.longdouble
        Time of sending the signal (s)
    mean, min, max : float
        Mean, minimum and maximum station delay
    count : int
        Number of stations the statistics cover
    """
    sat_id: int
    timestamp: np.longdouble
    mean: float
    min: float
    max: float
    count: int


class RunningDelayStats:
    """Streaming min/mean/max of station delays"""

    def __init__(self):
        self.count = 0
        self._mean = np.longdouble(0)
        self._min = None
        self._max = None

    def add(self, delay):
        delay = np.longdouble(delay)
        self.count += 1
        self._mean += (delay - self._mean) / self.count
        if self._min is None or delay < self._min:
            self._min = delay
        if self._max is None or delay > self._max:
            self._max = delay

    def extend(self, delays: Iterable):
        for delay in delays:
            self.add(delay)

    def result(self, sat_id: int, timestamp) -> DelayStats:
        """Statistics gathered so far

        Raises
        ------
        EmptyReductionError
            If no delay has been added
        """
        if self.count == 0:
            raise EmptyReductionError("Delay statistics need at least one station")
        # Running mean can drift by an ulp past the extremes
        mean = min(max(self._mean, self._min), self._max)
        return DelayStats(
            sat_id=sat_id,
            timestamp=np.longdouble(timestamp),
            mean=float(mean),
            min=float(self._min),
            max=float(self._max),
            count=self.count,
        )


def compute_delay_stats(delays: Iterable, sat_id: int, timestamp) -> DelayStats:
    """Min, mean and max of delays for signal (sat_id, timestamp)"""
    stats = RunningDelayStats()
    stats.extend(delays)
    return stats.result(sat_id, timestamp)


class Stations:
    """Ordered collection of the stations observing one signal.

    Stations are only ever appended; `clear` empties the whole collection.
    """

    def __init__(self, stations: Optional[Iterable[Station]] = None):
        self._stations: list[Station] = list(stations) if stations is not None else []
        self._time = None

    def add_station(self, station: Station):
        """Add a single station"""
        self._stations.append(station)

    def add_station_range(self, x, y, z, t0, r, delay=0.0):
        """Add station with known range.

        Parameters
        ----------
        x, y, z : float
            Station coordinates (m)
        t0 : float
            Time of sending the signal (s), kept as the receipt context
        r : float
            Distance of the vehicle from the station (m)
        delay : float
            Delay of the signal at this station
        """
        self._stations.append(Station(x, y, z, t=t0, r=r, delay=delay))

    def add_receipt(self, x, y, z, t, delay=0.0):
        """Add station by its position and time of receiving the signal"""
        self._stations.append(Station(x, y, z, t=t, delay=delay))

    def set_time(self, t):
        """Set the common time of receiving the signal"""
        self._time = np.longdouble(t)

    @property
    def time(self):
        return self._time

    def size(self) -> int:
        return len(self._stations)

    def __len__(self) -> int:
        return len(self._stations)

    def __iter__(self) -> Iterator[Station]:
        return iter(self._stations)

    def get_station(self, index: int) -> Station:
        return self._stations[index]

    def __getitem__(self, index: int) -> Station:
        return self._stations[index]

    def clear(self):
        """Remove all stations"""
        self._stations.clear()

    def with_ranges(self, t0) -> 'Stations':
        """New collection with ranges derived from the sending time t0.

        Stations whose derived range is negative or not finite are
        measurement errors and are left out.
        """
        ranged = Stations()
        ranged.set_time(t0)
        for index, station in enumerate(self._stations):
            try:
                ranged.add_station(station.with_range(t0))
            except InvalidRangeError as e:
                logger.warning(f"Dropping station {index} at "
                               f"({station.x}, {station.y}, {station.z}): {e}")
        return ranged

    def positions(self) -> np.ndarray:
        """Station coordinates, shape (n, 3), long double"""
        return np.array([[s.x, s.y, s.z] for s in self._stations],
                        dtype=np.longdouble).reshape(-1, 3)

    def ranges(self) -> np.ndarray:
        """Station ranges, shape (n,), long double"""
        if any(s.r is None for s in self._stations):
            raise ValueError("Range requested before sending time is known")
        return np.array([s.r for s in self._stations], dtype=np.longdouble)

    def delay_stats(self, sat_id: int, timestamp) -> DelayStats:
        """Delay statistics for signal (sat_id, timestamp).

        Raises
        ------
        EmptyReductionError
            If the collection is empty
        """
        return compute_delay_stats((s.delay for s in self._stations), sat_id, timestamp)

    def to_dataframe(self) -> pd.DataFrame:
        """Stations as a DataFrame with columns x, y, z, r, delay"""
        rows = [{
            'x': s.x,
            'y': s.y,
            'z': s.z,
            'r': float(s.r) if s.r is not None else np.nan,
            'delay': s.delay,
        } for s in self._stations]
        return pd.DataFrame(rows, columns=['x', 'y', 'z', 'r', 'delay'])

    def __repr__(self):
        return f"Stations(n={len(self._stations)})"


class GroundObservation(NamedTuple):
    """Raw observation of one signal by one ground station"""
    x: float
    y: float
    z: float
    range: float
    delay: float = 0.0


@dataclass
class Signal:
    """One transmitted signal with the raw observations of the ground stations.

    Attributes
    ----------
    sat_id : int
        Identifier of the transmitting vehicle
    timestamp : np.longdouble
        Time of sending the signal (s)
    """
    sat_id: int
    timestamp: np.longdouble
    _observations: list = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        self.timestamp = np.longdouble(self.timestamp)

    def add_ground_station(self, x, y, z, r, delay=0.0) -> bool:
        """Add ground station with known range.

        Returns
        -------
        bool
            False if a station at the same coordinates is already known
        """
        if self.position_known(x, y, z):
            logger.debug(f"Signal {self.sat_id}: station ({x}, {y}, {z}) already known")
            return False
        self._observations.append(GroundObservation(x, y, z, r, delay))
        return True

    def add_ground_station_delta(self, x, y, z, dt, delay=0.0) -> bool:
        """Add ground station by the time between sending and receiving (s)"""
        r = np.longdouble(CLIGHT) * np.longdouble(dt)
        return self.add_ground_station(x, y, z, r, delay)

    def add_ground_station_receipt(self, x, y, z, t_receive, delay=0.0) -> bool:
        """Add ground station by its time of receiving the signal (s)"""
        dt = np.longdouble(t_receive) - self.timestamp
        return self.add_ground_station_delta(x, y, z, dt, delay)

    def position_known(self, x, y, z) -> bool:
        """True if a station at exactly these coordinates was added"""
        return any(obs.x == x and obs.y == y and obs.z == z
                   for obs in self._observations)

    def convert_to_stations(self, stations: Stations) -> int:
        """Append one station per observation to `stations`.

        The signal timestamp is bound as the receipt context of the new
        stations. Observations with an invalid range are dropped.

        Returns
        -------
        int
            Number of stations added
        """
        added = 0
        stations.set_time(self.timestamp)
        for obs in self._observations:
            try:
                station = Station(obs.x, obs.y, obs.z, t=self.timestamp,
                                  r=obs.range, delay=obs.delay)
            except InvalidRangeError as e:
                logger.warning(f"Signal {self.sat_id}: dropping station "
                               f"({obs.x}, {obs.y}, {obs.z}): {e}")
                continue
            stations.add_station(station)
            added += 1
        return added

    @property
    def ground_stations(self) -> tuple:
        return tuple(self._observations)

    def size(self) -> int:
        return len(self._observations)

    def __len__(self) -> int:
        return len(self._observations)

    def delay_stats(self) -> DelayStats:
        """Delay statistics over the raw observations.

        Raises
        ------
        EmptyReductionError
            If no ground station has been added
        """
        return compute_delay_stats((obs.delay for obs in self._observations),
                                   self.sat_id, self.timestamp)
