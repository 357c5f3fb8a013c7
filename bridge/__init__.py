"""
bridge — Step-synchronization core
==================================

Modules
-------
settings
    :class:`BridgeSettings` immutable, validated configuration.
engine
    :class:`SimulationEngine` / :class:`SensorSink` collaborator protocols.
aggregator
    :class:`SensorAggregator` counting barrier and shared State owner.
flush
    :class:`SensorFlusher` post-reset convergence loop.
step_controller
    :class:`StepController` receive → step → respond main loop.
rig
    :class:`TrainingRig` in-process reference engine.
"""
