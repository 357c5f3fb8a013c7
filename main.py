#!/usr/bin/env python3
"""
main.py
=======
Process entry point: read configuration from the environment, bind the
agent link and run the step controller until interrupted.

Required environment::

    NUM_MOTORS=4 SUPPORTED_SENSORS=imu,esc python main.py

Optional: ``SITL_PORT`` (default 9002), ``SITL_BIND_ADDRESS``,
``SENSOR_TIMEOUT_S``, ``FLUSH_MAX_ITERATIONS``, ``MONITOR_PORT``.

The bundled :class:`~bridge.rig.TrainingRig` stands in for the external
simulation engine.
"""

import os
import sys
import logging

from logging_setup import setup_logging
from config import ENV_MONITOR_PORT
from errors import BindFailure, ConfigurationError
from bridge.rig import TrainingRig
from bridge.settings import BridgeSettings
from bridge.step_controller import StepController


def main() -> None:
    setup_logging(logging.INFO)
    log = logging.getLogger("main")

    try:
        settings = BridgeSettings.from_env()
    except ConfigurationError as exc:
        log.critical("Refusing to start, configuration is incomplete: %s", exc)
        sys.exit(2)

    log.info(
        "Starting bridge: actuators=%d sensors=%s expected_callbacks=%d",
        settings.num_actuators,
        ",".join(sorted(s.value for s in settings.sensors)) or "none",
        settings.expected_callbacks,
    )

    engine = TrainingRig(settings.num_actuators, settings.sensors)
    controller = StepController(settings, engine)

    try:
        controller.bind()
    except BindFailure as exc:
        log.critical("%s, aborting", exc)
        engine.close()
        sys.exit(1)

    monitor_port = os.environ.get(ENV_MONITOR_PORT)
    if monitor_port:
        from monitor.api import serve_in_background
        serve_in_background(controller, port=int(monitor_port))

    try:
        controller.run_forever()
    except KeyboardInterrupt:
        log.info("Shutting down...")
    except ConfigurationError as exc:
        log.critical("Bridge halted on configuration fault: %s", exc)
        sys.exit(2)
    finally:
        controller.stop()
        engine.close()


if __name__ == "__main__":
    main()
