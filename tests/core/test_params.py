#!/usr/bin/env python3
"""Test suite for processing parameters"""

import unittest

from pymlat.core.params import (
    DEFAULT_PARAMS, HIGH_PRECISION_PARAMS, ROBUST_PARAMS,
    MIN_VOLUME_RATIO, MlatConfig
)


class TestMlatConfig(unittest.TestCase):
    """Test processing configuration"""

    def test_defaults(self):
        config = MlatConfig()
        self.assertEqual(config.combination_size, 4)
        self.assertEqual(config.min_volume_ratio, MIN_VOLUME_RATIO)
        self.assertIsNone(config.max_residual)
        self.assertFalse(config.refine)
        self.assertIsNone(config.cluster_radius)
        self.assertTrue(config.keep_candidates)
        self.assertIsNone(config.max_combinations)

    def test_defaults_match_dict(self):
        self.assertEqual(MlatConfig().to_dict(), DEFAULT_PARAMS)

    def test_from_dict_overrides(self):
        config = MlatConfig.from_dict({'refine': True, 'cluster_radius': 25.0})
        self.assertTrue(config.refine)
        self.assertEqual(config.cluster_radius, 25.0)
        self.assertEqual(config.combination_size, 4)

    def test_presets_are_valid(self):
        for preset in (HIGH_PRECISION_PARAMS, ROBUST_PARAMS):
            config = MlatConfig.from_dict(preset)
            self.assertIsInstance(config, MlatConfig)

    def test_unknown_key_rejected(self):
        with self.assertRaises(ValueError):
            MlatConfig.from_dict({'cluster_radus': 10.0})

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            MlatConfig(combination_size=3)
        with self.assertRaises(ValueError):
            MlatConfig(min_volume_ratio=-1.0)
        with self.assertRaises(ValueError):
            MlatConfig(cluster_radius=0.0)
        with self.assertRaises(ValueError):
            MlatConfig(cluster_radius=10.0, keep_candidates=False)

    def test_round_trip(self):
        config = MlatConfig(combination_size=5, max_combinations=10)
        self.assertEqual(MlatConfig.from_dict(config.to_dict()), config)


if __name__ == '__main__':
    unittest.main()
