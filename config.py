#!/usr/bin/env python3
"""
config.py
=========
Application-wide configuration constants.

Values can be overridden via environment variables (see
:meth:`bridge.settings.BridgeSettings.from_env`).  This module is a thin,
import-safe leaf — it never imports from other project packages.
"""

# ── Network defaults ─────────────────────────────────────────────────────────
DEFAULT_BIND_ADDRESS: str = "127.0.0.1"
DEFAULT_PORT: int = 9002
MAX_DATAGRAM_BYTES: int = 1024
DEFAULT_RECV_TIMEOUT_S: float = 0.05

# ── Sensor flush / convergence ───────────────────────────────────────────────
FLUSH_RATE_THRESHOLD: float = 0.017  # rad/s, about 1 deg/s
FLUSH_MIN_SAMPLES: int = 2

# ── Collaborator topics (owned by the simulation layer) ──────────────────────
DEFAULT_CMD_PUB_TOPIC: str = "~/aircraft/command/motor"
DEFAULT_IMU_SUB_TOPIC: str = "~/aircraft/sensor/imu"
DEFAULT_ESC_SUB_TOPIC: str = "~/aircraft/sensor/esc"

# ── Environment variable names ───────────────────────────────────────────────
ENV_SITL_PORT: str = "SITL_PORT"
ENV_BIND_ADDRESS: str = "SITL_BIND_ADDRESS"
ENV_NUM_MOTORS: str = "NUM_MOTORS"
ENV_SUPPORTED_SENSORS: str = "SUPPORTED_SENSORS"
ENV_SENSOR_TIMEOUT_S: str = "SENSOR_TIMEOUT_S"
ENV_FLUSH_MAX_ITERATIONS: str = "FLUSH_MAX_ITERATIONS"
ENV_DIGITAL_TWIN_SDF: str = "DIGITAL_TWIN_SDF"
ENV_ROBOT_NAMESPACE: str = "ROBOT_NAMESPACE"
ENV_MONITOR_PORT: str = "MONITOR_PORT"

# ── Reference rig ────────────────────────────────────────────────────────────
RIG_STEP_SIZE_S: float = 0.001
RIG_MAX_MOTOR_SPEED_RAD_S: float = 3000.0
