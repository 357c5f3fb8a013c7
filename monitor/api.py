"""
monitor/api.py
==============
Optional FastAPI server exposing bridge health for dashboards and tests.

Endpoints::

    GET /status   → phase, cycle counters and link metrics
    GET /state    → latest State snapshot

Start it next to a running controller with :func:`serve_in_background`,
or set ``MONITOR_PORT`` when launching :mod:`main`.

.. note::

   This server only reads.  It never steps the simulation or touches the
   agent link.
"""

import logging
import threading
from typing import List

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel

from bridge.step_controller import StepController

log = logging.getLogger("monitor")

# ── Pydantic response schemas ────────────────────────────────────────────────


class LinkMetricsModel(BaseModel):
    """Datagram counters."""
    received: int
    sent: int
    dropped: int
    oversized: int
    malformed: int
    send_failures: int


class StatusResponse(BaseModel):
    """Controller phase and cycle counters."""
    phase: str
    steps: int
    resets: int
    sensor_timeouts: int
    flush_iterations: int
    expected_callbacks: int
    link: LinkMetricsModel


class StateResponse(BaseModel):
    """Latest sensor snapshot."""
    sim_time: float
    status_code: str
    imu_angular_velocity_rpy: List[float]
    imu_orientation_quat: List[float]
    imu_linear_acceleration_xyz: List[float]
    esc_motor_angular_velocity: List[float]
    esc_temperature: List[float]
    esc_current: List[float]
    esc_voltage: List[float]


# ── FastAPI application ──────────────────────────────────────────────────────


def create_app(controller: StepController) -> FastAPI:
    """Build the monitor app bound to one controller."""
    app = FastAPI(
        title="Step Bridge Monitor",
        description="Read-only view of the simulation step bridge.",
        version="1.0",
    )

    @app.get("/status", response_model=StatusResponse)
    def get_status():
        """Phase, counters and link metrics."""
        return StatusResponse(
            expected_callbacks=controller.settings.expected_callbacks,
            **controller.report(),
        )

    @app.get("/state", response_model=StateResponse)
    def get_state():
        """Latest State, as it would be sent to the agent."""
        return StateResponse(**controller.snapshot().as_dict())

    return app


def serve_in_background(
    controller: StepController, host: str = "127.0.0.1", port: int = 8000
) -> threading.Thread:
    """Run the monitor under uvicorn in a daemon thread."""
    server = uvicorn.Server(
        uvicorn.Config(create_app(controller), host=host, port=port, log_level="warning")
    )
    thread = threading.Thread(target=server.run, daemon=True, name="Monitor")
    thread.start()
    log.info("Monitor listening on http://%s:%d", host, port)
    return thread
