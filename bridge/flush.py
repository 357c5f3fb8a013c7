#!/usr/bin/env python3
"""
bridge/flush.py
===============
Reset convergence loop.

A reset alone does not guarantee that the next sensor sample reflects
the reset pose: samples produced before the reset may still be in
flight.  :class:`SensorFlusher` therefore resets, then repeatedly steps
and resets again, until the IMU body rates read quiescent on samples
that arrived after the flush started.

The loop runs on the controller thread and polls the shared State
through the aggregator instead of waiting on the barrier.  A sample read
on one iteration may be slightly stale; the next iteration corrects it.

Deliveries still queued from the final flush step may land after the
flush returns.  They carry reset-pose readings and can count toward the
barrier of the next STEP, which may then report those readings instead
of the commanded tick.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from config import FLUSH_MIN_SAMPLES, FLUSH_RATE_THRESHOLD
from errors import SensorTimeout
from bridge.aggregator import SensorAggregator
from bridge.engine import SimulationEngine

log = logging.getLogger("flush")


def is_quiescent(rates: Sequence[float], threshold: float = FLUSH_RATE_THRESHOLD) -> bool:
    """True when every body-rate magnitude is below ``threshold``."""
    return bool(np.all(np.abs(np.asarray(rates, dtype=float)) < threshold))


class SensorFlusher:
    """Drive the simulation to a quiescent, sensor-flushed baseline.

    Parameters
    ----------
    engine : SimulationEngine
        Simulation to reset and step.
    aggregator : SensorAggregator
        Source of the latest body rates and IMU sample count.
    threshold : float
        Per-axis body-rate magnitude (rad/s) considered at rest.
    min_samples : int
        Fresh IMU samples (and step+reset cycles) required before the
        rates are trusted.  Guards against the sentinel start values and
        against samples produced before the reset.
    max_iterations : int or None
        Upper bound on step+reset cycles; ``None`` is unbounded.
    imu_enabled : bool
        Without an IMU nothing can be measured, so the flush only runs
        ``min_samples`` step+reset cycles.
    """

    def __init__(
        self,
        engine: SimulationEngine,
        aggregator: SensorAggregator,
        threshold: float = FLUSH_RATE_THRESHOLD,
        min_samples: int = FLUSH_MIN_SAMPLES,
        max_iterations: Optional[int] = None,
        imu_enabled: bool = True,
    ) -> None:
        self._engine = engine
        self._aggregator = aggregator
        self.threshold = threshold
        self.min_samples = min_samples
        self.max_iterations = max_iterations
        self.imu_enabled = imu_enabled

    def flush(self) -> int:
        """Run the convergence loop.

        Returns
        -------
        int
            Number of step+reset cycles performed.

        Raises
        ------
        SensorTimeout
            If ``max_iterations`` cycles pass without convergence.
        """
        self._engine.reset_simulation_time_and_pose()
        _, start = self._aggregator.angular_rates()

        iterations = 0
        while True:
            rates, count = self._aggregator.angular_rates()
            if iterations >= self.min_samples and self._settled(rates, count - start):
                break
            if self.max_iterations is not None and iterations >= self.max_iterations:
                raise SensorTimeout(
                    f"rates {rates} did not settle below {self.threshold} "
                    f"after {iterations} reset cycles"
                )
            self._engine.step_simulation(1)
            self._engine.reset_simulation_time_and_pose()
            iterations += 1

        log.debug("Flushed in %d cycles, rates=%s", iterations, rates)
        return iterations

    def _settled(self, rates: Sequence[float], fresh_samples: int) -> bool:
        if not self.imu_enabled:
            return True
        return fresh_samples >= self.min_samples and is_quiescent(rates, self.threshold)
