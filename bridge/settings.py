#!/usr/bin/env python3
"""
bridge/settings.py
==================
Immutable process configuration for the bridge.

:class:`BridgeSettings` is a frozen pydantic model, validated once at
startup.  :meth:`BridgeSettings.from_env` builds it from the process
environment; a missing actuator count or sensor set is fatal.
"""

from __future__ import annotations

import os
import logging
from enum import Enum
from typing import FrozenSet, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from config import (
    DEFAULT_BIND_ADDRESS,
    DEFAULT_CMD_PUB_TOPIC,
    DEFAULT_ESC_SUB_TOPIC,
    DEFAULT_IMU_SUB_TOPIC,
    DEFAULT_PORT,
    DEFAULT_RECV_TIMEOUT_S,
    ENV_BIND_ADDRESS,
    ENV_DIGITAL_TWIN_SDF,
    ENV_FLUSH_MAX_ITERATIONS,
    ENV_NUM_MOTORS,
    ENV_ROBOT_NAMESPACE,
    ENV_SENSOR_TIMEOUT_S,
    ENV_SITL_PORT,
    ENV_SUPPORTED_SENSORS,
    FLUSH_MIN_SAMPLES,
    FLUSH_RATE_THRESHOLD,
    MAX_DATAGRAM_BYTES,
)
from errors import ConfigurationError, ConfigurationMissing
from link.codec import action_size, state_size

log = logging.getLogger("settings")


class Sensor(str, Enum):
    """Sensor families the bridge can wait on."""
    IMU = "imu"
    ESC = "esc"


def parse_sensors(raw: str) -> FrozenSet[Sensor]:
    """Parse a comma separated, case-insensitive sensor list (``'imu,esc'``)."""
    sensors = set()
    for token in raw.split(","):
        name = token.strip().lower()
        if not name:
            continue
        try:
            sensors.add(Sensor(name))
        except ValueError:
            log.warning("Ignoring unknown sensor %r in %s", token.strip(), ENV_SUPPORTED_SENSORS)
    return frozenset(sensors)


class BridgeSettings(BaseModel):
    """Every value the bridge reads at startup.

    Topic names, the robot namespace and the digital-twin model path are
    owned by the simulation collaborators; the core only carries them.
    """

    model_config = ConfigDict(frozen=True)

    # ── Link ──────────────────────────────────────────────────────────────
    bind_address: str = DEFAULT_BIND_ADDRESS
    port: int = Field(DEFAULT_PORT, ge=0, le=65535)
    max_datagram_bytes: int = Field(MAX_DATAGRAM_BYTES, gt=0)
    recv_timeout_s: float = Field(DEFAULT_RECV_TIMEOUT_S, gt=0)

    # ── Sensors / actuators ───────────────────────────────────────────────
    num_actuators: int = Field(ge=0)
    sensors: FrozenSet[Sensor]
    sensor_timeout_s: Optional[float] = Field(None, gt=0)
    """Bound on the per-tick sensor wait; ``None`` waits forever."""

    # ── Reset flush ───────────────────────────────────────────────────────
    flush_threshold: float = Field(FLUSH_RATE_THRESHOLD, gt=0)
    flush_min_samples: int = Field(FLUSH_MIN_SAMPLES, ge=1)
    flush_max_iterations: Optional[int] = Field(None, gt=0)
    """Bound on reset+step cycles per flush; ``None`` is unbounded."""

    # ── Collaborator-owned values ─────────────────────────────────────────
    robot_namespace: str = ""
    cmd_pub_topic: str = DEFAULT_CMD_PUB_TOPIC
    imu_sub_topic: str = DEFAULT_IMU_SUB_TOPIC
    esc_sub_topic_prefix: str = DEFAULT_ESC_SUB_TOPIC
    digital_twin_sdf: Optional[str] = None

    @model_validator(mode="after")
    def check_datagram_fit(self) -> "BridgeSettings":
        needed = max(state_size(self.num_actuators), action_size(self.num_actuators))
        if needed > self.max_datagram_bytes:
            raise ValueError(
                f"{self.num_actuators} actuators need {needed}-byte datagrams, "
                f"max_datagram_bytes is {self.max_datagram_bytes}"
            )
        return self

    @property
    def imu_enabled(self) -> bool:
        return Sensor.IMU in self.sensors

    @property
    def esc_enabled(self) -> bool:
        return Sensor.ESC in self.sensors

    @property
    def expected_callbacks(self) -> int:
        """Sensor updates owed per tick: one IMU plus one ESC per actuator."""
        count = 1 if self.imu_enabled else 0
        if self.esc_enabled:
            count += self.num_actuators
        return count

    @classmethod
    def create(cls, **values) -> "BridgeSettings":
        """Construct and validate, mapping pydantic errors to :class:`ConfigurationError`."""
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"invalid bridge configuration: {exc}") from exc

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeSettings":
        """Build settings from environment variables.

        Parameters
        ----------
        environ : Mapping[str, str] or None
            Variables to read, ``os.environ`` when omitted.

        Raises
        ------
        ConfigurationMissing
            If ``NUM_MOTORS`` or ``SUPPORTED_SENSORS`` is unset.
        ConfigurationError
            If a value cannot be parsed or fails validation.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in (ENV_NUM_MOTORS, ENV_SUPPORTED_SENSORS) if name not in env]
        if missing:
            raise ConfigurationMissing(
                "required environment variable(s) not set: " + ", ".join(missing)
            )

        values = {
            "num_actuators": _parse(env, ENV_NUM_MOTORS, int),
            "sensors": parse_sensors(env[ENV_SUPPORTED_SENSORS]),
        }
        if ENV_SITL_PORT in env:
            values["port"] = _parse(env, ENV_SITL_PORT, int)
        if ENV_BIND_ADDRESS in env:
            values["bind_address"] = env[ENV_BIND_ADDRESS]
        if ENV_SENSOR_TIMEOUT_S in env:
            values["sensor_timeout_s"] = _parse(env, ENV_SENSOR_TIMEOUT_S, float)
        if ENV_FLUSH_MAX_ITERATIONS in env:
            values["flush_max_iterations"] = _parse(env, ENV_FLUSH_MAX_ITERATIONS, int)
        if ENV_DIGITAL_TWIN_SDF in env:
            values["digital_twin_sdf"] = env[ENV_DIGITAL_TWIN_SDF]
        if ENV_ROBOT_NAMESPACE in env:
            values["robot_namespace"] = env[ENV_ROBOT_NAMESPACE]
        return cls.create(**values)


def _parse(env: Mapping[str, str], name: str, kind):
    raw = env[name]
    try:
        return kind(raw)
    except ValueError:
        raise ConfigurationError(f"{name}={raw!r} is not a valid {kind.__name__}") from None
