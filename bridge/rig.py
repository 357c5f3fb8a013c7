#!/usr/bin/env python3
"""
bridge/rig.py
=============
In-process stand-in for the external simulation engine.

:class:`TrainingRig` models a multirotor held on a ball joint: motors
follow their commands through a first-order lag, differential thrust
produces body torques, and body rates integrate with linear damping.
It is only meant to exercise the bridge end to end, not to be a physics
reference.

Sensor samples produced by each tick are delivered to the attached
sink from a thread pool, in shuffled order, after
:meth:`TrainingRig.step_simulation` has returned, with the same timing
hazards a real engine presents.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import AbstractSet, Callable, List, Optional, Sequence, Tuple

import numpy as np

from config import RIG_MAX_MOTOR_SPEED_RAD_S, RIG_STEP_SIZE_S
from bridge.engine import SensorSink
from bridge.settings import Sensor

log = logging.getLogger("rig")

_INERTIA = np.array([0.003, 0.003, 0.005])     # kg m^2
_RATE_DAMPING = 0.8                             # 1/s
_THRUST_COEFF = 1.5e-6                          # N / (rad/s)^2
_DRAG_COEFF = 2.0e-8                            # N m / (rad/s)^2
_ARM_LENGTH_M = 0.11
_MASS_KG = 0.8
_MOTOR_TAU_S = 0.02
_AMBIENT_TEMP_C = 25.0
_MAX_CURRENT_A = 30.0
_BATTERY_V = 16.8
_INTERNAL_R_OHM = 0.02
_HEAT_COEFF = 0.05
_COOL_COEFF = 0.1


def _quat_multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Hamilton product of two (w, x, y, z) quaternions."""
    w1, x1, y1, z1 = a
    w2, x2, y2, z2 = b
    return np.array([
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
    ])


class TrainingRig:
    """Reference :class:`~bridge.engine.SimulationEngine` implementation.

    Parameters
    ----------
    num_actuators : int
        Motors, evenly spaced around the frame.
    sensors : set of Sensor
        Sensor families that publish samples on every tick.
    step_size : float
        Tick duration in seconds.
    gyro_noise_std : float
        Standard deviation (rad/s) of white noise added to IMU rates.
    seed : int or None
        Seed for the noise generator and delivery order.
    """

    def __init__(
        self,
        num_actuators: int,
        sensors: AbstractSet[Sensor] = frozenset({Sensor.IMU, Sensor.ESC}),
        step_size: float = RIG_STEP_SIZE_S,
        max_motor_speed: float = RIG_MAX_MOTOR_SPEED_RAD_S,
        gyro_noise_std: float = 0.0,
        seed: Optional[int] = None,
    ) -> None:
        self._n = num_actuators
        self._sensors = frozenset(sensors)
        self._step_size = step_size
        self._max_motor_speed = max_motor_speed
        self._gyro_noise_std = gyro_noise_std
        self._rng = np.random.default_rng(seed)

        # Row 0/1: roll/pitch lever arms, row 2: alternating yaw reaction.
        angles = 2.0 * np.pi * np.arange(num_actuators) / max(num_actuators, 1) + np.pi / 4
        yaw_sign = np.where(np.arange(num_actuators) % 2 == 0, 1.0, -1.0)
        self._mix = np.vstack([
            -_ARM_LENGTH_M * np.sin(angles) * _THRUST_COEFF,
            _ARM_LENGTH_M * np.cos(angles) * _THRUST_COEFF,
            yaw_sign * _DRAG_COEFF,
        ])

        self._sink: Optional[SensorSink] = None
        self._executor = ThreadPoolExecutor(
            max_workers=num_actuators + 1, thread_name_prefix="rig-sensor"
        )
        self.reset_simulation_time_and_pose()

    # ── Engine surface ────────────────────────────────────────────────────────

    @property
    def sim_time(self) -> float:
        return self._sim_time

    @property
    def step_size(self) -> float:
        return self._step_size

    @property
    def angular_velocity(self) -> np.ndarray:
        return self._omega.copy()

    def attach_sensor_sink(self, sink: SensorSink) -> None:
        self._sink = sink

    def publish_actuator_command(self, values: Sequence[float]) -> None:
        cmd = np.asarray(values, dtype=float)
        if cmd.shape != (self._n,):
            raise ValueError(f"expected {self._n} motor commands, got {cmd.shape}")
        self._cmd = np.clip(cmd, 0.0, 1.0)

    def reset_simulation_time_and_pose(self) -> None:
        self._sim_time = 0.0
        self._omega = np.zeros(3)
        self._quat = np.array([1.0, 0.0, 0.0, 0.0])
        self._cmd = np.zeros(self._n)
        self._motor_speed = np.zeros(self._n)
        self._temperature = np.full(self._n, _AMBIENT_TEMP_C)

    def step_simulation(self, ticks: int = 1) -> None:
        for _ in range(ticks):
            self._integrate(self._step_size)
            self._publish_samples()

    def close(self) -> None:
        """Wait for in-flight deliveries and stop the delivery pool."""
        self._executor.shutdown(wait=True)

    # ── Sensor readout ────────────────────────────────────────────────────────

    def sample(self, sensor: Sensor, instance_id: int = 0) -> Tuple[float, ...]:
        """Current reading of one sensor instance.

        IMU → ``(rates(3), quat(4), accel(3))`` flattened;
        ESC → ``(speed, temperature, current, voltage)`` for ``instance_id``.
        """
        if sensor is Sensor.IMU:
            rates = self._omega
            if self._gyro_noise_std > 0.0:
                rates = rates + self._rng.normal(0.0, self._gyro_noise_std, 3)
            thrust = float(np.sum(_THRUST_COEFF * self._motor_speed ** 2))
            accel = np.array([0.0, 0.0, thrust / _MASS_KG])
            return tuple(np.concatenate([rates, self._quat, accel]).tolist())

        current = float(self._cmd[instance_id] * _MAX_CURRENT_A)
        voltage = _BATTERY_V - current * _INTERNAL_R_OHM
        return (
            float(self._motor_speed[instance_id]),
            float(self._temperature[instance_id]),
            current,
            voltage,
        )

    # ── internals ─────────────────────────────────────────────────────────────

    def _integrate(self, dt: float) -> None:
        alpha = dt / (_MOTOR_TAU_S + dt)
        self._motor_speed += alpha * (self._cmd * self._max_motor_speed - self._motor_speed)

        torque = self._mix @ (self._motor_speed ** 2)
        self._omega += dt * (torque / _INERTIA - _RATE_DAMPING * self._omega)

        dq = _quat_multiply(self._quat, np.concatenate([[0.0], self._omega]))
        self._quat = self._quat + 0.5 * dt * dq
        self._quat /= np.linalg.norm(self._quat)

        current = self._cmd * _MAX_CURRENT_A
        self._temperature += dt * (
            _HEAT_COEFF * current - _COOL_COEFF * (self._temperature - _AMBIENT_TEMP_C)
        )
        self._sim_time += dt

    def _publish_samples(self) -> None:
        sink = self._sink
        if sink is None:
            return

        deliveries: List[Tuple[Callable[..., None], Tuple]] = []
        if Sensor.IMU in self._sensors:
            imu = self.sample(Sensor.IMU)
            deliveries.append((sink.on_imu_sample, (imu[0:3], imu[3:7], imu[7:10])))
        if Sensor.ESC in self._sensors:
            for i in range(self._n):
                deliveries.append((sink.on_esc_sample, (i, *self.sample(Sensor.ESC, i))))

        for idx in self._rng.permutation(len(deliveries)):
            fn, args = deliveries[idx]
            self._executor.submit(self._deliver, fn, args)

    @staticmethod
    def _deliver(fn: Callable[..., None], args: Tuple) -> None:
        try:
            fn(*args)
        except Exception:
            log.exception("Sensor delivery failed")
