#!/usr/bin/env python3
"""
Monitor endpoint tests using FastAPI's TestClient.
"""

from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from bridge.rig import TrainingRig
from bridge.settings import BridgeSettings, Sensor
from bridge.step_controller import StepController
from link.message import Action, ControlCode
from monitor.api import create_app


class MonitorApiTests(unittest.TestCase):
    def setUp(self) -> None:
        settings = BridgeSettings.create(
            num_actuators=4, sensors=frozenset({Sensor.IMU, Sensor.ESC}), sensor_timeout_s=2.0,
        )
        self.rig = TrainingRig(4, settings.sensors, seed=1)
        self.controller = StepController(settings, self.rig)
        self.client = TestClient(create_app(self.controller))

    def tearDown(self) -> None:
        self.rig.close()

    def test_status_reports_counters(self) -> None:
        self.controller.handle_action(Action(motor=[0.1] * 4, control=ControlCode.STEP))
        body = self.client.get("/status").json()
        self.assertEqual(body["phase"], "awaiting_action")
        self.assertEqual(body["steps"], 1)
        self.assertEqual(body["expected_callbacks"], 5)
        self.assertEqual(body["link"]["malformed"], 0)

    def test_state_reflects_latest_snapshot(self) -> None:
        self.controller.handle_action(Action(control=ControlCode.RESET))
        body = self.client.get("/state").json()
        self.assertEqual(body["status_code"], "OK")
        self.assertEqual(body["sim_time"], 0.0)
        self.assertEqual(len(body["esc_voltage"]), 4)
        self.assertTrue(all(abs(r) < 0.017 for r in body["imu_angular_velocity_rpy"]))


if __name__ == "__main__":
    unittest.main()
