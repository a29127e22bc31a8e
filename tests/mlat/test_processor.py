#!/usr/bin/env python3
"""Test suite for the per-signal multilateration pipeline"""

import unittest

import numpy as np

from pymlat.core.constants import CLIGHT, SolveStatus
from pymlat.core.data_structures import Signal, Stations
from pymlat.core.params import MlatConfig
from pymlat.mlat.processor import MultilaterationProcessor, SignalSolution, process_signals
from pymlat.mlat.trilateration import synthesize_ranges

TRUTH = np.array([100.0, 200.0, 50.0])

BASE_STATIONS = [
    (0.0, 0.0, 0.0, 0.1),
    (1000.0, 0.0, 0.0, 0.2),
    (0.0, 1000.0, 0.0, 0.3),
    (0.0, 0.0, 1000.0, 0.2),
    (1000.0, 1000.0, 1000.0, 0.2),
]

COPLANAR_STATIONS = [
    (0.0, 0.0, 0.0, 0.1),
    (1000.0, 0.0, 0.0, 0.2),
    (0.0, 1000.0, 0.0, 0.3),
    (1000.0, 1000.0, 0.0, 0.4),
]


def make_signal(stations, truth=TRUTH, sat_id=7, timestamp=1234.5, bias=None):
    """Signal with exact ranges from `stations` (x, y, z, delay) to `truth`"""
    signal = Signal(sat_id=sat_id, timestamp=timestamp)
    ranges = synthesize_ranges([s[:3] for s in stations], truth)
    for i, ((x, y, z, delay), r) in enumerate(zip(stations, ranges)):
        if bias is not None:
            r = r + bias[i]
        signal.add_ground_station(x, y, z, r, delay)
    return signal


class TestMultilaterationProcessor(unittest.TestCase):
    """Test processing of single signals"""

    def setUp(self):
        self.processor = MultilaterationProcessor()

    def test_default_config(self):
        self.assertEqual(self.processor.config, MlatConfig())

    def test_five_stations(self):
        solution = self.processor.process_signal(make_signal(BASE_STATIONS))
        self.assertIsInstance(solution, SignalSolution)
        self.assertTrue(solution.is_valid)
        self.assertIs(solution.status, SolveStatus.OK)
        self.assertEqual(solution.sat_id, 7)
        self.assertEqual(solution.timestamp, 1234.5)
        self.assertEqual(solution.n_stations, 5)
        self.assertEqual(solution.n_combinations, 5)
        self.assertEqual(solution.n_degenerate, 0)
        self.assertEqual(len(solution.candidates), 5)
        np.testing.assert_allclose(solution.position.astype(float), TRUTH, atol=1e-3)

    def test_delay_statistics(self):
        solution = self.processor.process_signal(make_signal(BASE_STATIONS))
        stats = solution.delay_stats
        self.assertEqual(stats.sat_id, 7)
        self.assertEqual(stats.count, 5)
        self.assertAlmostEqual(float(stats.mean), 0.2)
        self.assertAlmostEqual(float(stats.min), 0.1)
        self.assertAlmostEqual(float(stats.max), 0.3)

    def test_receipt_times(self):
        """Ranges derived from receipt times of the signal"""
        timestamp = 1234.5
        signal = Signal(sat_id=3, timestamp=timestamp)
        ranges = synthesize_ranges([s[:3] for s in BASE_STATIONS], TRUTH)
        for (x, y, z, delay), r in zip(BASE_STATIONS, ranges):
            t_receive = np.longdouble(timestamp) + r / np.longdouble(CLIGHT)
            signal.add_ground_station_receipt(x, y, z, t_receive, delay)
        solution = self.processor.process_signal(signal)
        self.assertTrue(solution.is_valid)
        np.testing.assert_allclose(solution.position.astype(float), TRUTH, atol=1e-3)

    def test_insufficient_stations(self):
        with self.assertLogs('pymlat.mlat.processor', level='INFO'):
            solution = self.processor.process_signal(make_signal(BASE_STATIONS[:3]))
        self.assertFalse(solution.is_valid)
        self.assertIs(solution.status, SolveStatus.INSUFFICIENT_STATIONS)
        self.assertIsNone(solution.position)
        self.assertIsNone(solution.delay_stats)
        self.assertEqual(solution.n_stations, 3)
        self.assertEqual(solution.n_combinations, 0)
        self.assertIn("3", solution.reason)

    def test_no_stations(self):
        solution = self.processor.process_signal(Signal(sat_id=1, timestamp=0.0))
        self.assertIs(solution.status, SolveStatus.INSUFFICIENT_STATIONS)

    def test_invalid_range_dropped(self):
        signal = make_signal(BASE_STATIONS[:4])
        signal.add_ground_station(1000.0, 1000.0, 1000.0, -1.0, 0.9)
        solution = self.processor.process_signal(signal)
        self.assertTrue(solution.is_valid)
        self.assertEqual(solution.n_stations, 4)
        self.assertEqual(solution.n_combinations, 1)
        self.assertAlmostEqual(float(solution.delay_stats.max), 0.3)

    def test_all_degenerate(self):
        solution = self.processor.process_signal(make_signal(COPLANAR_STATIONS))
        self.assertIs(solution.status, SolveStatus.NO_SOLUTION)
        self.assertIsNone(solution.position)
        self.assertEqual(solution.n_combinations, 1)
        self.assertEqual(solution.n_degenerate, 1)
        self.assertIn("1 degenerate", solution.reason)

    def test_degenerate_combination_skipped(self):
        stations = COPLANAR_STATIONS + [(0.0, 0.0, 1000.0, 0.5)]
        solution = self.processor.process_signal(make_signal(stations))
        self.assertTrue(solution.is_valid)
        self.assertEqual(solution.n_combinations, 5)
        self.assertEqual(solution.n_degenerate, 1)
        self.assertEqual(len(solution.candidates), 4)
        np.testing.assert_allclose(solution.position.astype(float), TRUTH, atol=1e-3)

    def test_large_residual_rejected(self):
        processor = MultilaterationProcessor(MlatConfig(max_residual=0.01))
        signal = make_signal(BASE_STATIONS[:4], bias=[0.0, 0.0, 0.0, 100.0])
        solution = processor.process_signal(signal)
        self.assertIs(solution.status, SolveStatus.NO_SOLUTION)
        self.assertEqual(solution.n_rejected, 1)
        self.assertIn("1 rejected", solution.reason)

        solution = processor.process_signal(make_signal(BASE_STATIONS[:4]))
        self.assertTrue(solution.is_valid)
        self.assertEqual(solution.n_rejected, 0)

    def test_streaming_matches_materialised(self):
        signal = make_signal(BASE_STATIONS, bias=[0.0, 0.5, -0.3, 0.2, 0.0])
        kept = MultilaterationProcessor(MlatConfig(keep_candidates=True)).process_signal(signal)
        streamed = MultilaterationProcessor(MlatConfig(keep_candidates=False)).process_signal(signal)
        self.assertIsNone(streamed.candidates)
        np.testing.assert_array_equal(kept.position, streamed.position)
        self.assertEqual(kept.delay_stats, streamed.delay_stats)

    def test_clustering_exact_data(self):
        processor = MultilaterationProcessor(MlatConfig(cluster_radius=10.0))
        solution = processor.process_signal(make_signal(BASE_STATIONS))
        self.assertTrue(solution.is_valid)
        self.assertEqual(solution.n_outliers, 0)
        self.assertEqual(solution.delay_stats.count, 5)
        np.testing.assert_allclose(solution.position.astype(float), TRUTH, atol=1e-3)

    def test_clustering_rejects_faulty_station(self):
        """One biased station among seven: its 20 combinations are dropped"""
        stations = BASE_STATIONS + [(-700.0, 400.0, 300.0, 0.15), (600.0, -500.0, 900.0, 0.9)]
        signal = make_signal(stations, bias=[0.0] * 6 + [3000.0])
        processor = MultilaterationProcessor(MlatConfig(cluster_radius=50.0))
        solution = processor.process_signal(signal)
        self.assertTrue(solution.is_valid)
        self.assertEqual(solution.n_combinations, 35)
        self.assertGreater(solution.n_outliers, 0)
        self.assertEqual(len(solution.candidates) - solution.n_outliers, 15)
        np.testing.assert_allclose(solution.position.astype(float), TRUTH, atol=1e-3)

        stats = solution.delay_stats
        self.assertEqual(stats.count, 6)
        self.assertAlmostEqual(float(stats.max), 0.3)
        self.assertAlmostEqual(float(stats.mean), 1.15 / 6)

    def test_max_combinations(self):
        processor = MultilaterationProcessor(MlatConfig(max_combinations=2))
        solution = processor.process_signal(make_signal(BASE_STATIONS))
        self.assertEqual(solution.n_combinations, 2)
        self.assertEqual(len(solution.candidates), 2)

    def test_combination_size_five(self):
        processor = MultilaterationProcessor(MlatConfig(combination_size=5))
        solution = processor.process_signal(make_signal(BASE_STATIONS))
        self.assertEqual(solution.n_combinations, 1)
        np.testing.assert_allclose(solution.position.astype(float), TRUTH, atol=1e-3)

    def test_timestamp_keeps_long_double(self):
        timestamp = np.longdouble(1234.5) + np.longdouble(2.0) ** -45
        solution = self.processor.process_signal(make_signal(BASE_STATIONS, timestamp=timestamp))
        self.assertIsInstance(solution.timestamp, np.longdouble)
        self.assertEqual(solution.timestamp, timestamp)
        self.assertEqual(solution.delay_stats.timestamp, timestamp)

    def test_process_stations(self):
        stations = Stations()
        make_signal(BASE_STATIONS).convert_to_stations(stations)
        solution = self.processor.process_stations(stations, sat_id=9, timestamp=1.0)
        self.assertTrue(solution.is_valid)
        self.assertEqual(solution.sat_id, 9)


class TestProcessSignals(unittest.TestCase):
    """Test processing of signal batches"""

    def setUp(self):
        self.signals = [
            make_signal(BASE_STATIONS, truth=[100.0, 200.0, 50.0], sat_id=1, timestamp=10.0),
            make_signal(BASE_STATIONS[:3], sat_id=2, timestamp=11.0),
            make_signal(BASE_STATIONS, truth=[-300.0, 50.0, 700.0], sat_id=3, timestamp=12.0),
        ]

    def test_inline(self):
        results = process_signals(self.signals)
        self.assertEqual([r.sat_id for r in results], [1, 2, 3])
        self.assertEqual([r.is_valid for r in results], [True, False, True])
        np.testing.assert_allclose(results[2].position.astype(float), [-300.0, 50.0, 700.0],
                                   atol=1e-3)

    def test_workers_match_inline(self):
        inline = process_signals(self.signals, workers=1)
        pooled = process_signals(self.signals, workers=2)
        self.assertEqual([r.sat_id for r in pooled], [1, 2, 3])
        for a, b in zip(inline, pooled):
            self.assertIs(a.status, b.status)
            if a.is_valid:
                np.testing.assert_array_equal(a.position, b.position)

    def test_empty(self):
        self.assertEqual(process_signals([]), [])


if __name__ == '__main__':
    unittest.main()
