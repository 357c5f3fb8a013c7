#!/usr/bin/env python3
"""
bridge/engine.py
================
Capabilities the core needs from the external simulation layer.

The physics engine, model loading, digital-twin insertion and the
topic plumbing that delivers sensor events all live outside the bridge.
They are handed to :class:`~bridge.step_controller.StepController` by
reference through these two protocols; the core never owns or looks
them up by name.
"""

from __future__ import annotations

from typing import Protocol, Sequence


class SensorSink(Protocol):
    """Receiver of asynchronous sensor samples.

    Both methods may be called from engine-owned threads, in any order
    and any number of times per tick.  They must return promptly and
    must never raise into the caller.
    """

    def on_imu_sample(
        self,
        angular_velocity: Sequence[float],
        orientation_quat: Sequence[float],
        linear_acceleration: Sequence[float],
    ) -> None: ...

    def on_esc_sample(
        self,
        actuator_id: int,
        speed: float,
        temperature: float,
        current: float,
        voltage: float,
    ) -> None: ...


class SimulationEngine(Protocol):
    """Discretely stepped simulation driven by the bridge.

    Only the controller thread issues commands to the engine.  Sensor
    samples produced by a step are delivered to the attached
    :class:`SensorSink`, possibly after :meth:`step_simulation` returns.
    """

    @property
    def sim_time(self) -> float:
        """Current simulation time in seconds."""
        ...

    @property
    def step_size(self) -> float:
        """Duration of one tick in seconds."""
        ...

    def attach_sensor_sink(self, sink: SensorSink) -> None: ...

    def step_simulation(self, ticks: int = 1) -> None: ...

    def reset_simulation_time_and_pose(self) -> None: ...

    def publish_actuator_command(self, values: Sequence[float]) -> None: ...
