#!/usr/bin/env python3
"""
test_loopback.py
================
End-to-end check over real UDP: agent client → bridge → reference rig.

Usage::

    python -m pytest test_loopback.py
"""

from __future__ import annotations

import socket
import unittest

from bridge.rig import TrainingRig
from bridge.settings import BridgeSettings, Sensor
from bridge.step_controller import StepController
from link.client import AgentClient
from link.message import StatusCode


class LoopbackTests(unittest.TestCase):
    def setUp(self) -> None:
        settings = BridgeSettings.create(
            port=0,
            num_actuators=4,
            sensors=frozenset({Sensor.IMU, Sensor.ESC}),
            sensor_timeout_s=2.0,
            recv_timeout_s=0.01,
        )
        self.rig = TrainingRig(4, settings.sensors, seed=7)
        self.controller = StepController(settings, self.rig)
        self.controller.start()
        host, port = self.controller.transport.address
        self.agent = AgentClient(host, port, timeout_s=2.0, retries=1)

    def tearDown(self) -> None:
        self.agent.close()
        self.controller.stop()
        self.rig.close()

    def test_reset_then_steps(self) -> None:
        state = self.agent.reset()
        self.assertEqual(state.status_code, StatusCode.OK)
        self.assertEqual(state.sim_time, 0.0)
        self.assertTrue(all(abs(r) < 0.017 for r in state.imu_angular_velocity_rpy))

        for i in range(1, 11):
            state = self.agent.step([0.3, 0.3, 0.3, 0.3])
            self.assertEqual(state.status_code, StatusCode.OK)
            self.assertAlmostEqual(state.sim_time, i * self.rig.step_size)
        self.assertTrue(all(s > 0.0 for s in state.esc_motor_angular_velocity))
        self.assertEqual(self.controller.steps, 10)

    def test_garbage_is_ignored_and_bridge_keeps_serving(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as raw:
            raw.sendto(b"not an action", self.controller.transport.address)
        state = self.agent.step([0.1, 0.1, 0.1, 0.1])
        self.assertEqual(state.status_code, StatusCode.OK)
        self.assertGreaterEqual(self.controller.transport.metrics.malformed, 1)

    def test_mismatched_motor_vector_gets_no_reply(self) -> None:
        agent = AgentClient(*self.controller.transport.address, timeout_s=0.2)
        try:
            with self.assertRaises(TimeoutError):
                agent.step([0.1, 0.1])
        finally:
            agent.close()
        self.assertEqual(self.controller.steps, 0)


if __name__ == "__main__":
    unittest.main()
