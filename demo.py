#!/usr/bin/env python3
"""
Quick demo — runs the bridge, the reference rig and an agent client in
one process over loopback UDP, so you can watch a reset and a short
motor ramp without any external simulator.

Usage:
    python3 demo.py
"""

import logging

from logging_setup import setup_logging
from bridge.rig import TrainingRig
from bridge.settings import BridgeSettings, Sensor
from bridge.step_controller import StepController
from link.client import AgentClient

NUM_MOTORS = 4
STEPS = 200


def main() -> None:
    setup_logging(logging.INFO, log_path="demo.log")
    log = logging.getLogger("demo")

    settings = BridgeSettings.create(
        port=0,
        num_actuators=NUM_MOTORS,
        sensors=frozenset({Sensor.IMU, Sensor.ESC}),
        sensor_timeout_s=1.0,
    )
    rig = TrainingRig(NUM_MOTORS, settings.sensors, seed=0)
    controller = StepController(settings, rig)
    controller.start()
    host, port = controller.transport.address

    try:
        with AgentClient(host, port, timeout_s=2.0, retries=2) as agent:
            state = agent.reset()
            log.info("reset  t=%.3f rates=%s", state.sim_time, state.imu_angular_velocity_rpy)

            for i in range(STEPS):
                # Ramp all motors, with a small imbalance to induce roll
                throttle = 0.5 * i / STEPS
                motor = [throttle, throttle * 1.05, throttle, throttle * 0.95]
                state = agent.step(motor)
                if i % 50 == 0:
                    log.info(
                        "step %3d t=%.3f rates=%s esc=%s",
                        i, state.sim_time,
                        [round(r, 3) for r in state.imu_angular_velocity_rpy],
                        [round(s, 1) for s in state.esc_motor_angular_velocity],
                    )

            state = agent.reset()
            log.info("reset  t=%.3f rates=%s", state.sim_time, state.imu_angular_velocity_rpy)
    finally:
        controller.stop()
        rig.close()
        log.info("metrics %s", controller.report())


if __name__ == "__main__":
    main()
