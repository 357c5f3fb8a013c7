#!/usr/bin/env python3
"""
errors.py
=========
Exception taxonomy shared by the wire layer and the bridge core.

Like :mod:`config` this is an import-safe leaf.

* :class:`BindFailure` and :class:`ConfigurationError` are fatal at
  startup.
* :class:`MalformedMessage` is recovered locally: the datagram is
  dropped and the control loop keeps waiting for the next action.
* :class:`SensorTimeout` is reported to the agent as a degraded State.
"""


class BridgeError(Exception):
    """Base class for every error raised by the bridge."""


class BindFailure(BridgeError):
    """The datagram socket could not be bound to the requested address."""


class ConfigurationError(BridgeError):
    """The process configuration is invalid."""


class ConfigurationMissing(ConfigurationError):
    """A required configuration value was not provided."""


class MalformedMessage(BridgeError):
    """A datagram could not be decoded into a valid message."""


class MessageTooLarge(BridgeError):
    """An encoded message does not fit the maximum datagram payload."""


class SensorTimeout(BridgeError):
    """Sensor updates did not arrive (or did not settle) in time."""
