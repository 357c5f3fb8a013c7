#!/usr/bin/env python3
"""
bridge/step_controller.py
=========================
Main control loop tying the agent link to the stepped simulation.

Every cycle the controller receives one :class:`~link.message.Action`,
then either

* **STEP** — arms the sensor barrier, publishes the motor command,
  advances the simulation exactly one tick, waits for every owed sensor
  update and replies with the assembled State; or
* **RESET** — runs the :class:`~bridge.flush.SensorFlusher` convergence
  loop and replies with the flushed baseline State.

Exactly one State datagram is sent per accepted Action.  Malformed
datagrams are dropped without touching the held Action.

Public API
----------
* ``bind()``           → ``None`` (raises :class:`errors.BindFailure`)
* ``run_once()``       → ``Optional[State]``
* ``run_forever()``    → ``None``
* ``start()/stop()``   → background thread lifecycle
* ``snapshot()``       → ``State``
* ``report()``         → ``dict``
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from errors import BindFailure, BridgeError, ConfigurationError, MalformedMessage, SensorTimeout
from link.codec import decode_action, encode_state
from link.message import Action, ControlCode, State, StatusCode
from link.udp_transport import DatagramTransport
from link.utils import format_peer
from bridge.aggregator import SensorAggregator
from bridge.engine import SimulationEngine
from bridge.flush import SensorFlusher
from bridge.settings import BridgeSettings

log = logging.getLogger("step_controller")


class ControllerPhase(Enum):
    AWAITING_ACTION = "awaiting_action"
    RESETTING_EPISODE = "resetting_episode"
    STEPPING_TICK = "stepping_tick"


class StepController:
    """Receive action → drive simulation → send state, forever.

    Parameters
    ----------
    settings : BridgeSettings
        Validated process configuration.
    engine : SimulationEngine
        External simulation, passed in by reference.  The controller
        attaches its aggregator as the engine's sensor sink.
    transport : DatagramTransport or None
        Agent link; a fresh unbound transport when omitted.
    aggregator : SensorAggregator or None
        Sensor barrier / State owner; created from ``settings`` when omitted.
    """

    def __init__(
        self,
        settings: BridgeSettings,
        engine: SimulationEngine,
        transport: Optional[DatagramTransport] = None,
        aggregator: Optional[SensorAggregator] = None,
    ) -> None:
        self._settings = settings
        self._engine = engine
        self._transport = transport or DatagramTransport(settings.max_datagram_bytes)
        self._aggregator = aggregator or SensorAggregator(settings.num_actuators)
        self._flusher = SensorFlusher(
            engine,
            self._aggregator,
            threshold=settings.flush_threshold,
            min_samples=settings.flush_min_samples,
            max_iterations=settings.flush_max_iterations,
            imu_enabled=settings.imu_enabled,
        )
        self._engine.attach_sensor_sink(self._aggregator)

        self._action = Action(motor=[0.0] * settings.num_actuators)
        self._phase = ControllerPhase.AWAITING_ACTION

        self.steps = 0
        self.resets = 0
        self.sensor_timeouts = 0
        self.flush_iterations = 0

        self._thread: Optional[threading.Thread] = None
        self._running = False
        self.error: Optional[BaseException] = None

    # ── Accessors ─────────────────────────────────────────────────────────────

    @property
    def settings(self) -> BridgeSettings:
        return self._settings

    @property
    def transport(self) -> DatagramTransport:
        return self._transport

    @property
    def aggregator(self) -> SensorAggregator:
        return self._aggregator

    @property
    def action(self) -> Action:
        """Copy of the most recently accepted Action."""
        return Action(motor=list(self._action.motor), control=self._action.control)

    @property
    def phase(self) -> ControllerPhase:
        return self._phase

    def snapshot(self) -> State:
        """Copy of the shared State as it stands right now."""
        return self._aggregator.snapshot()

    def report(self) -> Dict[str, Any]:
        return {
            "phase": self._phase.value,
            "steps": self.steps,
            "resets": self.resets,
            "sensor_timeouts": self.sensor_timeouts,
            "flush_iterations": self.flush_iterations,
            "link": self._transport.metrics.report(),
        }

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def bind(self) -> None:
        """Bind the transport to the configured address, once."""
        if self._transport.is_bound:
            return
        addr, port = self._settings.bind_address, self._settings.port
        if not self._transport.bind(addr, port):
            raise BindFailure(f"failed to bind {addr}:{port}")

    def start(self) -> None:
        """Bind and spawn the background control thread."""
        if self._running:
            return
        self.bind()
        self._running = True
        self._thread = threading.Thread(
            target=self._loop, daemon=True, name="StepController"
        )
        self._thread.start()
        log.info("StepController started on %s", format_peer(self._transport.address))

    def stop(self) -> None:
        """Signal the thread to stop, wait for it, and release the socket."""
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)
            if self._thread.is_alive():
                # Still inside a cycle; _loop releases the socket on exit
                log.warning("StepController thread busy, deferring transport close")
                self._thread = None
                return
            self._thread = None
        self._transport.close()
        log.info("StepController stopped")

    def run_forever(self) -> None:
        """Run the control loop on the calling thread until :meth:`stop`."""
        self.bind()
        self._running = True
        while self._running:
            self.run_once()

    def _loop(self) -> None:
        try:
            while self._running:
                self.run_once()
        except BridgeError as exc:
            self.error = exc
            self._running = False
            log.critical("StepController halted: %s", exc)
        finally:
            if not self._running:
                self._transport.close()

    # ── One cycle ─────────────────────────────────────────────────────────────

    def run_once(self, timeout: Optional[float] = None) -> Optional[State]:
        """Handle at most one inbound datagram.

        Parameters
        ----------
        timeout : float or None
            Seconds to wait for a datagram; defaults to
            ``settings.recv_timeout_s``.

        Returns
        -------
        State or None
            The State sent back, or None when nothing arrived or the
            datagram was rejected.
        """
        wait = self._settings.recv_timeout_s if timeout is None else timeout
        data = self._transport.try_receive(wait)
        if data is None:
            return None

        try:
            action = decode_action(data, self._settings.num_actuators)
        except MalformedMessage as exc:
            self._transport.metrics.malformed += 1
            log.warning(
                "Dropping malformed action from %s: %s",
                format_peer(self._transport.peer), exc,
            )
            return None

        self._action = action
        state = self.handle_action(action)
        self._transport.send(encode_state(state, self._settings.max_datagram_bytes))
        return state

    def handle_action(self, action: Action) -> State:
        """Execute one decoded Action and return the resulting State."""
        try:
            if action.control is ControlCode.RESET:
                return self._reset_episode()
            return self._step_tick(action.motor)
        finally:
            self._phase = ControllerPhase.AWAITING_ACTION

    def _step_tick(self, motor: Sequence[float]) -> State:
        self._phase = ControllerPhase.STEPPING_TICK
        timeout = self._settings.sensor_timeout_s

        self._aggregator.begin_tick(self._settings.expected_callbacks)
        self._engine.publish_actuator_command(motor)
        self._engine.step_simulation(1)

        complete = self._aggregator.await_tick(timeout)
        self._raise_on_faults()

        status = StatusCode.OK
        if not complete:
            self.sensor_timeouts += 1
            status = StatusCode.SENSOR_TIMEOUT
            log.warning(
                "Sensor barrier timed out after %.3fs with %d update(s) missing",
                timeout, -self._aggregator.owed,
            )

        self.steps += 1
        state = self._aggregator.stamp(self._engine.sim_time, status)
        log.debug("step t=%.6f status=%s motor=%s", state.sim_time, status.name, list(motor))
        return state

    def _reset_episode(self) -> State:
        self._phase = ControllerPhase.RESETTING_EPISODE
        status = StatusCode.OK
        try:
            cycles = self._flusher.flush()
            self.flush_iterations += cycles
        except SensorTimeout as exc:
            self.sensor_timeouts += 1
            status = StatusCode.SENSOR_TIMEOUT
            log.warning("Reset flush incomplete: %s", exc)
        self._raise_on_faults()

        self.resets += 1
        state = self._aggregator.stamp(self._engine.sim_time, status)
        log.info("Episode reset t=%.6f status=%s", state.sim_time, status.name)
        return state

    def _raise_on_faults(self) -> None:
        faults = self._aggregator.take_faults()
        if faults:
            raise ConfigurationError("; ".join(faults))
