#!/usr/bin/env python3
"""
Reset convergence tests driven by a scripted, synchronous engine.
"""

from __future__ import annotations

import unittest
from typing import List, Optional, Sequence

from bridge.aggregator import SensorAggregator
from bridge.flush import SensorFlusher, is_quiescent
from errors import SensorTimeout

_QUAT = (1.0, 0.0, 0.0, 0.0)
_ACCEL = (0.0, 0.0, 9.81)


class ScriptedEngine:
    """Publishes one IMU sample per step, reading rates from a script.

    The last scripted rate repeats once the script runs out.  With
    ``publish=False`` steps produce no samples at all.
    """

    def __init__(self, rates: Sequence[Sequence[float]], publish: bool = True) -> None:
        self._rates: List[Sequence[float]] = list(rates)
        self._publish = publish
        self._sink = None
        self.sim_time = 0.0
        self.step_size = 0.001
        self.steps = 0
        self.resets = 0

    def attach_sensor_sink(self, sink) -> None:
        self._sink = sink

    def publish_actuator_command(self, values) -> None:
        pass

    def step_simulation(self, ticks: int = 1) -> None:
        for _ in range(ticks):
            rate = self._rates[min(self.steps, len(self._rates) - 1)]
            self.steps += 1
            self.sim_time += self.step_size
            if self._publish:
                self._sink.on_imu_sample(rate, _QUAT, _ACCEL)

    def reset_simulation_time_and_pose(self) -> None:
        self.resets += 1
        self.sim_time = 0.0


def _flusher(
    engine: ScriptedEngine,
    max_iterations: Optional[int] = None,
    imu_enabled: bool = True,
) -> SensorFlusher:
    agg = SensorAggregator(num_actuators=0)
    engine.attach_sensor_sink(agg)
    return SensorFlusher(engine, agg, max_iterations=max_iterations, imu_enabled=imu_enabled)


class QuiescenceTests(unittest.TestCase):
    def test_threshold_is_strict_per_axis(self) -> None:
        self.assertTrue(is_quiescent([0.0, 0.016, -0.016]))
        self.assertFalse(is_quiescent([0.0, 0.017, 0.0]))
        self.assertFalse(is_quiescent([0.0, 0.0, -0.5]))


class FlushTests(unittest.TestCase):
    def test_quiet_first_sample_still_takes_two_steps(self) -> None:
        engine = ScriptedEngine([[0.0, 0.0, 0.0]])
        flusher = _flusher(engine)
        self.assertEqual(flusher.flush(), 2)
        self.assertEqual(engine.steps, 2)

    def test_runs_until_rates_settle(self) -> None:
        engine = ScriptedEngine([
            [0.5, -0.5, 0.2],
            [0.1, 0.0, 0.0],
            [0.01, -0.01, 0.0],
            [0.0, 0.0, 0.0],
        ])
        flusher = _flusher(engine)
        self.assertEqual(flusher.flush(), 3)
        rates, _ = flusher._aggregator.angular_rates()
        self.assertTrue(is_quiescent(rates))

    def test_resets_before_and_after_every_step(self) -> None:
        engine = ScriptedEngine([[0.3, 0.3, 0.3], [0.0, 0.0, 0.0]])
        _flusher(engine).flush()
        self.assertEqual(engine.resets, engine.steps + 1)
        self.assertEqual(engine.sim_time, 0.0)

    def test_repeated_reset_stays_quiescent(self) -> None:
        engine = ScriptedEngine([[0.8, 0.1, 0.0], [0.0, 0.0, 0.0]])
        flusher = _flusher(engine)
        for _ in range(2):
            flusher.flush()
            rates, _ = flusher._aggregator.angular_rates()
            self.assertTrue(is_quiescent(rates))

    def test_quiet_reading_from_before_the_flush_is_not_trusted(self) -> None:
        engine = ScriptedEngine([[0.0, 0.0, 0.0]], publish=False)
        flusher = _flusher(engine, max_iterations=10)
        flusher._aggregator.on_imu_sample([0.0, 0.0, 0.0], _QUAT, _ACCEL)
        with self.assertRaises(SensorTimeout):
            flusher.flush()
        self.assertEqual(engine.steps, 10)

    def test_sentinel_rates_never_count_as_settled(self) -> None:
        engine = ScriptedEngine([[0.0, 0.0, 0.0]], publish=False)
        with self.assertRaises(SensorTimeout):
            _flusher(engine, max_iterations=5).flush()

    def test_never_settling_raises_after_max_iterations(self) -> None:
        engine = ScriptedEngine([[1.0, 1.0, 1.0]])
        with self.assertRaises(SensorTimeout):
            _flusher(engine, max_iterations=50).flush()
        self.assertEqual(engine.steps, 50)

    def test_without_imu_runs_minimum_cycles(self) -> None:
        engine = ScriptedEngine([[0.0, 0.0, 0.0]], publish=False)
        self.assertEqual(_flusher(engine, imu_enabled=False).flush(), 2)


if __name__ == "__main__":
    unittest.main()
