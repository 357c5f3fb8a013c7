#!/usr/bin/env python3
"""
bridge/aggregator.py
====================
Counting barrier between the sensor callbacks and the step controller.

:class:`SensorAggregator` owns the shared :class:`~link.message.State`
and a signed counter ``owed``.  A tick is armed with
``owed = -expected``; every sensor update adds one; the tick is complete
once ``owed >= 0``.  Extra or duplicate updates push the counter above
zero and are tolerated.

One mutex guards both the counter and the State.  The condition
variable built on it is notified on every update and re-checked by the
waiter, so spurious wake-ups are harmless.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence, Tuple

from link.message import State, StatusCode, initial_state

log = logging.getLogger("aggregator")


class SensorAggregator:
    """Sensor barrier and owner of the shared State.

    Implements :class:`~bridge.engine.SensorSink`, so the engine can
    deliver samples to it directly from its own threads.

    Parameters
    ----------
    num_actuators : int
        Size of the ESC sequences; valid actuator ids are ``0..n-1``.
    """

    def __init__(self, num_actuators: int) -> None:
        self._num_actuators = num_actuators
        self._lock = threading.Lock()
        self._updated = threading.Condition(self._lock)

        self._state = initial_state(num_actuators)
        self._owed = 0
        self._imu_samples = 0
        self._esc_samples = 0
        self._faults: List[str] = []

    # ── Barrier ───────────────────────────────────────────────────────────────

    def begin_tick(self, expected: int) -> None:
        """Arm the barrier for ``expected`` updates.

        Must run before the simulation is stepped so that a fast
        callback cannot land before the counter is armed.
        """
        with self._lock:
            self._owed = -expected

    def report_update(self) -> None:
        """Count one sensor update and wake the waiter."""
        with self._updated:
            self._owed += 1
            self._updated.notify_all()

    def await_tick(self, timeout: Optional[float] = None) -> bool:
        """Block until every owed update for the tick has arrived.

        A fault recorded by a sensor callback also wakes the waiter, so
        a misnumbered sensor cannot hold the barrier shut; callers must
        check :meth:`take_faults` after waiting.

        Parameters
        ----------
        timeout : float or None
            Seconds to wait; ``None`` waits indefinitely.

        Returns
        -------
        bool
            True when the barrier is satisfied, False if it timed out or
            was released by a fault.
        """
        with self._updated:
            self._updated.wait_for(lambda: self._owed >= 0 or bool(self._faults), timeout)
            return self._owed >= 0

    @property
    def owed(self) -> int:
        """Current counter value (negative = updates still missing)."""
        with self._lock:
            return self._owed

    # ── SensorSink ────────────────────────────────────────────────────────────

    def on_imu_sample(
        self,
        angular_velocity: Sequence[float],
        orientation_quat: Sequence[float],
        linear_acceleration: Sequence[float],
    ) -> None:
        try:
            rates = [float(v) for v in angular_velocity]
            quat = [float(v) for v in orientation_quat]
            accel = [float(v) for v in linear_acceleration]
        except (TypeError, ValueError) as exc:
            log.error("Discarding unreadable IMU sample: %s", exc)
            return
        if len(rates) != 3 or len(quat) != 4 or len(accel) != 3:
            log.error(
                "Discarding IMU sample with arity %d/%d/%d",
                len(rates), len(quat), len(accel),
            )
            return

        with self._updated:
            self._state.imu_angular_velocity_rpy[:] = rates
            self._state.imu_orientation_quat[:] = quat
            self._state.imu_linear_acceleration_xyz[:] = accel
            self._imu_samples += 1
            self._owed += 1
            self._updated.notify_all()

    def on_esc_sample(
        self,
        actuator_id: int,
        speed: float,
        temperature: float,
        current: float,
        voltage: float,
    ) -> None:
        try:
            idx = int(actuator_id)
            values = (float(speed), float(temperature), float(current), float(voltage))
        except (TypeError, ValueError) as exc:
            log.error("Discarding unreadable ESC sample: %s", exc)
            return

        with self._updated:
            if not 0 <= idx < self._num_actuators:
                msg = f"ESC sample for actuator id {idx}, only {self._num_actuators} configured"
                log.error(msg)
                self._faults.append(msg)
                self._updated.notify_all()
                return
            state = self._state
            (
                state.esc_motor_angular_velocity[idx],
                state.esc_temperature[idx],
                state.esc_current[idx],
                state.esc_voltage[idx],
            ) = values
            self._esc_samples += 1
            self._owed += 1
            self._updated.notify_all()

    # ── State access (controller thread) ──────────────────────────────────────

    def angular_rates(self) -> Tuple[Tuple[float, float, float], int]:
        """Return the latest body rates and the IMU sample count so far."""
        with self._lock:
            r = self._state.imu_angular_velocity_rpy
            return (r[0], r[1], r[2]), self._imu_samples

    @property
    def imu_samples(self) -> int:
        with self._lock:
            return self._imu_samples

    @property
    def esc_samples(self) -> int:
        with self._lock:
            return self._esc_samples

    def stamp(self, sim_time: float, status: StatusCode) -> State:
        """Record time and status, returning a snapshot of the result."""
        with self._lock:
            self._state.sim_time = sim_time
            self._state.status_code = status
            return self._state.copy()

    def snapshot(self) -> State:
        with self._lock:
            return self._state.copy()

    def take_faults(self) -> List[str]:
        """Return and clear faults recorded by the sensor callbacks."""
        with self._lock:
            faults, self._faults = self._faults, []
            return faults
