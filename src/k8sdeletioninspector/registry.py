"""In-memory registry of objects observed stuck in deletion."""

from __future__ import annotations

__all__ = ("Retention", "StuckRegistry")

import enum
import threading
from collections.abc import Callable

import structlog

from k8sdeletioninspector.resources import StuckObject


class Retention(str, enum.Enum):
    """How long registry entries are kept."""

    CYCLE = "cycle"
    """Entries are cleared at the start of every scan cycle, so the registry
    holds what the latest cycle observed.
    """

    CUMULATIVE = "cumulative"
    """Entries accumulate across cycles without deduplication; an object that
    stays stuck for several cycles appears once per cycle.
    """


class StuckRegistry:
    """Thread-safe record of stuck objects.

    The scan loop is the only writer. Readers (the reclaimer, the HTTP app
    and the stuck-object gauge) get copies, so the lock is never held while
    talking to the cluster.

    Parameters
    ----------
    retention : `Retention`
        What `begin_cycle` does with the previous cycle's entries.
    on_change : callable, optional
        Called with the new entry count after every change.
    """

    def __init__(
        self,
        retention: Retention = Retention.CYCLE,
        on_change: Callable[[int], None] | None = None,
    ) -> None:
        self.retention = Retention(retention)
        self._on_change = on_change
        self._entries: list[StuckObject] = []
        self._lock = threading.Lock()
        self._logger = structlog.getLogger(__name__)

    def record(self, stuck: StuckObject) -> None:
        """Append an entry."""
        with self._lock:
            self._entries.append(stuck)
            count = len(self._entries)
        self._logger.debug(
            f"Stuck object added: {stuck.ref} deleted at "
            f"{stuck.deletion_timestamp.isoformat()}"
        )
        self._notify(count)

    def list(self) -> list[StuckObject]:
        """Return a snapshot of the entries in insertion order."""
        with self._lock:
            return list(self._entries)

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def begin_cycle(self) -> None:
        """Apply the retention policy before a new scan cycle."""
        if self.retention is Retention.CUMULATIVE:
            return
        with self._lock:
            dropped = len(self._entries)
            self._entries = []
        if dropped:
            self._logger.debug(f"Cleared {dropped} entries from last cycle")
        self._notify(0)

    def _notify(self, count: int) -> None:
        if self._on_change is not None:
            self._on_change(count)
