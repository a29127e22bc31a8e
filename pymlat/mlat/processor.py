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

"""Per-signal multilateration pipeline"""

import logging
from dataclasses import dataclass
from functools import partial
from multiprocessing import Pool, cpu_count
from typing import Iterable, List, Optional

import numpy as np

from ..core.constants import SolveStatus
from ..core.data_structures import DelayStats, Signal, Stations
from ..core.errors import EmptyReductionError, InsufficientStationsError
from ..core.params import MlatConfig
from ..logger import TRACE
from .clustering import clustered_stations, filter_outliers
from .combinations import enumerate_combinations
from .positions import PositionsList, RunningCentroid
from .trilateration import solve_combination

logger = logging.getLogger(__name__)


@dataclass
class SignalSolution:
    """Result of processing one signal event.

    Attributes
    ----------
    sat_id : int
        Identifier of the transmitting vehicle
    timestamp : np.longdouble
        Time of sending the signal (s)
    status : SolveStatus
        OK, or why no position could be produced
    position : np.ndarray or None
        Estimated vehicle position (m), long double, shape (3,)
    candidates : PositionsList or None
        Every candidate position; None when candidates are reduced on the fly
    delay_stats : DelayStats or None
        Delay statistics of the stations behind the estimate
    n_stations : int
        Usable stations of the signal
    n_combinations : int
        Combinations solved
    n_degenerate : int
        Combinations skipped for degenerate geometry
    n_rejected : int
        Candidates discarded for a large sphere residual
    n_outliers : int
        Candidates discarded by clustering
    reason : str
        Explanation when status is not OK
    """
    sat_id: int
    timestamp: np.longdouble
    status: SolveStatus = SolveStatus.OK
    position: Optional[np.ndarray] = None
    candidates: Optional[PositionsList] = None
    delay_stats: Optional[DelayStats] = None
    n_stations: int = 0
    n_combinations: int = 0
    n_degenerate: int = 0
    n_rejected: int = 0
    n_outliers: int = 0
    reason: str = ''

    @property
    def is_valid(self) -> bool:
        return self.status is SolveStatus.OK and self.position is not None


class MultilaterationProcessor:
    """
    Multilateration of one signal event at a time.

    Enumerates every combination of the stations observing a signal, solves
    each for a candidate position, and reduces the candidates to their
    centroid together with the delay statistics of the contributing
    stations. Signals are processed independently; the processor holds no
    per-signal state.

    Examples:
        >>> processor = MultilaterationProcessor(MlatConfig(cluster_radius=100.0))
        >>> solution = processor.process_signal(signal)
        >>> if solution.is_valid:
        ...     print(solution.position, solution.delay_stats.mean)
    """

    def __init__(self, config: Optional[MlatConfig] = None):
        self.config = config if config is not None else MlatConfig()

    def process_signal(self, signal: Signal) -> SignalSolution:
        """Convert the observations of a signal to stations and solve"""
        stations = Stations()
        signal.convert_to_stations(stations)
        return self.process_stations(stations, signal.sat_id, signal.timestamp)

    def process_stations(self, stations: Stations, sat_id: int, timestamp) -> SignalSolution:
        """
        Estimate the vehicle position from stations with known ranges

        Parameters
        ----------
        stations : Stations
            Stations observing the signal, ranges already derived
        sat_id : int
            Identifier of the transmitting vehicle
        timestamp : float
            Time of sending the signal (s)

        Returns
        -------
        SignalSolution
            Solution with status OK, or the reason no position was produced
        """
        config = self.config
        solution = SignalSolution(sat_id=sat_id, timestamp=np.longdouble(timestamp),
                                  n_stations=len(stations))

        if len(stations) < config.combination_size:
            error = InsufficientStationsError(len(stations), config.combination_size)
            logger.info(f"Signal {sat_id} @ {timestamp}: {error}")
            solution.status = SolveStatus.INSUFFICIENT_STATIONS
            solution.reason = str(error)
            return solution

        candidates = PositionsList() if config.keep_candidates else None
        centroid = RunningCentroid()
        members = {}

        for combination in enumerate_combinations(stations, config.combination_size,
                                                  config.max_combinations):
            solution.n_combinations += 1
            position = solve_combination(combination, config)
            if position is None:
                solution.n_degenerate += 1
                continue
            if config.max_residual is not None and position.r > config.max_residual:
                logger.log(TRACE, f"Combination {combination.combination_id}: "
                                  f"residual {float(position.r):.3f} m rejected")
                solution.n_rejected += 1
                continue
            if candidates is not None:
                candidates.add_position(position)
                members[combination.combination_id] = combination.indices
            else:
                centroid.add(position)

        solution.candidates = candidates
        reduced = candidates
        delay_source = stations
        if config.cluster_radius is not None:
            reduced = filter_outliers(candidates, config.cluster_radius)
            solution.n_outliers = len(candidates) - len(reduced)
            delay_source = clustered_stations(reduced, members, stations)

        try:
            if reduced is not None:
                solution.position = reduced.average_position()
            else:
                solution.position = centroid.mean()
        except EmptyReductionError:
            solution.status = SolveStatus.NO_SOLUTION
            solution.reason = (
                f"No valid candidate from {solution.n_combinations} combinations "
                f"({solution.n_degenerate} degenerate, {solution.n_rejected} rejected, "
                f"{solution.n_outliers} outliers)")
            logger.info(f"Signal {sat_id} @ {timestamp}: {solution.reason}")
            return solution

        stats = delay_source.delay_stats(sat_id, timestamp)
        solution.delay_stats = stats
        n_used = (solution.n_combinations - solution.n_degenerate
                  - solution.n_rejected - solution.n_outliers)
        x, y, z = (float(v) for v in solution.position)
        logger.info(f"Signal {sat_id} @ {timestamp}: position ({x:.3f}, {y:.3f}, {z:.3f}) "
                    f"from {n_used}/{solution.n_combinations} combinations")
        logger.debug(f"Delays after clustering: {sat_id} {timestamp} "
                     f"{stats.mean} {stats.min} {stats.max}")
        return solution


def _process_one(signal: Signal, config: Optional[MlatConfig]) -> SignalSolution:
    """Process a single signal (runs in worker process)"""
    return MultilaterationProcessor(config).process_signal(signal)


def process_signals(signals: Iterable[Signal], config: Optional[MlatConfig] = None,
                    workers: Optional[int] = 1) -> List[SignalSolution]:
    """
    Process many signals, optionally with one worker process per signal

    Parameters
    ----------
    signals : iterable of Signal
        Signal events to solve
    config : MlatConfig, optional
        Processing configuration shared by all signals
    workers : int or None
        Number of worker processes; None uses every CPU, 1 runs inline

    Returns
    -------
    list of SignalSolution
        Solutions in the order of the input signals
    """
    signals = list(signals)
    if workers is None:
        workers = cpu_count()

    process_func = partial(_process_one, config=config)
    if workers <= 1 or len(signals) < 2:
        results = [process_func(signal) for signal in signals]
    else:
        logger.info(f"Processing {len(signals)} signals with {workers} workers")
        with Pool(processes=workers) as pool:
            results = pool.map(process_func, signals)

    n_valid = sum(1 for result in results if result.is_valid)
    logger.info(f"Processing complete: {n_valid}/{len(signals)} signals resolved")
    return results
