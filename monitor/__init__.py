"""
monitor — Read-only HTTP status endpoint
========================================

:func:`~monitor.api.create_app` builds a FastAPI app exposing the
controller's counters and latest State.  Not required to run the bridge.
"""
