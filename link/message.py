"""
Action / State: Data structures exchanged with the control agent.

One :class:`Action` arrives per control cycle and exactly one
:class:`State` is sent back in response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List

# Sentinel "active" sensor readings used until the first real samples
# arrive.  The angular rate must stay above the flush threshold so the
# first reset always drives the simulation until real samples land.
SENTINEL_ANGULAR_RATE: float = 1.0
SENTINEL_LINEAR_ACCELERATION: float = 0.0
SENTINEL_ORIENTATION: float = 0.0
SENTINEL_ESC_SPEED: float = 100.0
SENTINEL_ESC_TEMPERATURE: float = 10000.0
SENTINEL_ESC_CURRENT: float = -1.0
SENTINEL_ESC_VOLTAGE: float = -1.0


class ControlCode(IntEnum):
    """Episode control directive carried by an :class:`Action`."""
    STEP = 0
    RESET = 1


class StatusCode(IntEnum):
    """Outcome of the cycle that produced a :class:`State`."""
    OK = 0
    SENSOR_TIMEOUT = 1


@dataclass
class Action:
    """
    Agent-to-bridge command for one control cycle.

    Attributes:
        motor (List[float]): Per-actuator command, indexed by actuator id.
            Must have ``num_actuators`` entries when ``control`` is STEP.
        control (ControlCode): STEP advances one tick, RESET starts a new episode.
    """
    motor: List[float] = field(default_factory=list)
    control: ControlCode = ControlCode.STEP


@dataclass
class State:
    """
    Bridge-to-agent sensor snapshot for the most recent tick.

    Attributes:
        sim_time (float): Simulation time in seconds.
        status_code (StatusCode): OK, or a degraded outcome.
        imu_angular_velocity_rpy (List[float]): Body rates (roll, pitch, yaw) in rad/s.
        imu_orientation_quat (List[float]): Orientation quaternion (w, x, y, z).
        imu_linear_acceleration_xyz (List[float]): Linear acceleration in m/s^2.
        esc_motor_angular_velocity (List[float]): Motor speed per actuator id.
        esc_temperature (List[float]): ESC temperature per actuator id.
        esc_current (List[float]): ESC current per actuator id.
        esc_voltage (List[float]): ESC voltage per actuator id.
    """
    sim_time: float = 0.0
    status_code: StatusCode = StatusCode.OK
    imu_angular_velocity_rpy: List[float] = field(default_factory=lambda: [0.0] * 3)
    imu_orientation_quat: List[float] = field(default_factory=lambda: [0.0] * 4)
    imu_linear_acceleration_xyz: List[float] = field(default_factory=lambda: [0.0] * 3)
    esc_motor_angular_velocity: List[float] = field(default_factory=list)
    esc_temperature: List[float] = field(default_factory=list)
    esc_current: List[float] = field(default_factory=list)
    esc_voltage: List[float] = field(default_factory=list)

    @property
    def num_actuators(self) -> int:
        return len(self.esc_motor_angular_velocity)

    def copy(self) -> "State":
        """Return an independent snapshot (lists are not shared)."""
        return State(
            sim_time=self.sim_time,
            status_code=self.status_code,
            imu_angular_velocity_rpy=list(self.imu_angular_velocity_rpy),
            imu_orientation_quat=list(self.imu_orientation_quat),
            imu_linear_acceleration_xyz=list(self.imu_linear_acceleration_xyz),
            esc_motor_angular_velocity=list(self.esc_motor_angular_velocity),
            esc_temperature=list(self.esc_temperature),
            esc_current=list(self.esc_current),
            esc_voltage=list(self.esc_voltage),
        )

    def as_dict(self) -> dict:
        return {
            "sim_time": self.sim_time,
            "status_code": self.status_code.name,
            "imu_angular_velocity_rpy": list(self.imu_angular_velocity_rpy),
            "imu_orientation_quat": list(self.imu_orientation_quat),
            "imu_linear_acceleration_xyz": list(self.imu_linear_acceleration_xyz),
            "esc_motor_angular_velocity": list(self.esc_motor_angular_velocity),
            "esc_temperature": list(self.esc_temperature),
            "esc_current": list(self.esc_current),
            "esc_voltage": list(self.esc_voltage),
        }


def initial_state(num_actuators: int) -> State:
    """
    Build the startup State, pre-populated with sentinel "active" values.

    The ESC sequences are sized here, once, and never resized afterwards.

    Args:
        num_actuators (int): Number of actuator ids the ESC sequences address.

    Returns:
        State: A State whose readings look non-quiescent.
    """
    return State(
        imu_angular_velocity_rpy=[SENTINEL_ANGULAR_RATE] * 3,
        imu_orientation_quat=[SENTINEL_ORIENTATION] * 4,
        imu_linear_acceleration_xyz=[SENTINEL_LINEAR_ACCELERATION] * 3,
        esc_motor_angular_velocity=[SENTINEL_ESC_SPEED] * num_actuators,
        esc_temperature=[SENTINEL_ESC_TEMPERATURE] * num_actuators,
        esc_current=[SENTINEL_ESC_CURRENT] * num_actuators,
        esc_voltage=[SENTINEL_ESC_VOLTAGE] * num_actuators,
    )
