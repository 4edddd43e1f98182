"""Flags backing the liveness and readiness probes."""

__all__ = ("HealthState",)

import threading


class HealthState:
    """Thread-safe ``processing`` and ``connected`` flags.

    ``processing`` is true while a scan cycle runs. ``connected`` is true
    once the cluster has been reached and stays so until an access check
    fails.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._processing = False
        self._connected = False

    @property
    def processing(self) -> bool:
        with self._lock:
            return self._processing

    @processing.setter
    def processing(self, value: bool) -> None:
        with self._lock:
            self._processing = value

    @property
    def connected(self) -> bool:
        with self._lock:
            return self._connected

    @connected.setter
    def connected(self, value: bool) -> None:
        with self._lock:
            self._connected = value
