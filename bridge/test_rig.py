#!/usr/bin/env python3
"""
Reference rig tests: sample delivery and reset behaviour.
"""

from __future__ import annotations

import unittest

import numpy as np

from bridge.aggregator import SensorAggregator
from bridge.rig import TrainingRig
from bridge.settings import Sensor


class TrainingRigTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rig = TrainingRig(4, seed=3)
        self.agg = SensorAggregator(4)
        self.rig.attach_sensor_sink(self.agg)

    def tearDown(self) -> None:
        self.rig.close()

    def test_step_delivers_every_sample(self) -> None:
        self.agg.begin_tick(5)
        self.rig.publish_actuator_command([0.5, 0.5, 0.5, 0.5])
        self.rig.step_simulation(1)
        self.assertTrue(self.agg.await_tick(timeout=2.0))
        self.assertAlmostEqual(self.rig.sim_time, self.rig.step_size)
        state = self.agg.snapshot()
        self.assertTrue(all(s > 0.0 for s in state.esc_motor_angular_velocity))

    def test_imbalance_produces_body_rates_and_reset_clears_them(self) -> None:
        self.rig.publish_actuator_command([0.8, 0.2, 0.8, 0.2])
        self.rig.step_simulation(50)
        self.assertGreater(np.abs(self.rig.angular_velocity).max(), 0.0)

        self.rig.reset_simulation_time_and_pose()
        self.assertEqual(self.rig.sim_time, 0.0)
        self.assertTrue(np.all(self.rig.angular_velocity == 0.0))

    def test_balanced_command_does_not_rotate(self) -> None:
        self.rig.publish_actuator_command([0.4] * 4)
        self.rig.step_simulation(100)
        self.assertLess(np.abs(self.rig.angular_velocity).max(), 1e-9)

    def test_wrong_command_length_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.rig.publish_actuator_command([0.1, 0.1])

    def test_imu_only_rig_publishes_one_sample_per_tick(self) -> None:
        rig = TrainingRig(4, sensors=frozenset({Sensor.IMU}))
        agg = SensorAggregator(4)
        rig.attach_sensor_sink(agg)
        try:
            rig.step_simulation(3)
        finally:
            rig.close()
        self.assertEqual(agg.imu_samples, 3)
        self.assertEqual(agg.esc_samples, 0)


if __name__ == "__main__":
    unittest.main()
