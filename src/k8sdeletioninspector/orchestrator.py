"""Scan cycles and the loop that runs them on an interval."""

from __future__ import annotations

__all__ = ("ScanLoop", "run_scan")

import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone

import structlog
from kubernetes.client.exceptions import ApiException

from k8sdeletioninspector.discovery import (
    discover_core_resource_types,
    discover_group_resource_types,
)
from k8sdeletioninspector.exceptions import ClusterAccessError, InspectorError
from k8sdeletioninspector.k8s import ClusterAccessor
from k8sdeletioninspector.reclaimer import ReclaimResult, reclaim_stale
from k8sdeletioninspector.resources import ScanResult
from k8sdeletioninspector.scanner import scan_namespace
from k8sdeletioninspector.state import InspectorState

logger = structlog.getLogger(__name__)


def run_scan(accessor: ClusterAccessor, state: InspectorState) -> ScanResult:
    """Run one full scan of the cluster, recording stuck objects in
    ``state.registry``.

    Core resource types are scanned in every namespace before the other
    (custom and non-core built-in) types.

    Raises
    ------
    k8sdeletioninspector.exceptions.ClusterAccessError
        Raised if nodes or namespaces can't be listed.
    k8sdeletioninspector.exceptions.DiscoveryError
        Raised if resource discovery fails.
    """
    start = time.monotonic()
    logger.info("Starting scan...")

    logger.debug("Verifying access to cluster")
    try:
        accessor.verify_access()
    except ApiException as err:
        state.health.connected = False
        raise ClusterAccessError(
            f"error verifying access to cluster: {err.status} {err.reason}"
        ) from err
    except Exception as err:
        state.health.connected = False
        raise ClusterAccessError(
            f"error verifying access to cluster: {err}"
        ) from err
    state.health.connected = True

    core_types = discover_core_resource_types(accessor)
    logger.info(f"Found {len(core_types)} core namespaced resources")
    custom_types = discover_group_resource_types(accessor)
    logger.info(f"Found {len(custom_types)} other namespaced resources")

    try:
        namespaces = accessor.list_namespaces()
    except ApiException as err:
        raise ClusterAccessError(
            f"error fetching namespaces: {err.status} {err.reason}"
        ) from err
    logger.info(f"Found {len(namespaces)} namespaces")
    state.metrics.set_namespace_count(len(namespaces))

    total_objects = 0
    for namespace in namespaces:
        try:
            total_objects += scan_namespace(
                accessor, namespace, core_types, state.registry
            )
            total_objects += scan_namespace(
                accessor, namespace, custom_types, state.registry
            )
        except Exception:
            logger.exception(f"Error processing namespace {namespace}")
            continue

    duration = time.monotonic() - start
    state.metrics.record_scan(duration, total_objects)
    return ScanResult(
        success=True,
        namespace_count=len(namespaces),
        total_object_count=total_objects,
        duration=duration,
    )


class ScanLoop:
    """Run scan cycles followed by reclamation, waiting the configured
    interval between them.

    Errors that make scanning pointless (`InspectorError`) end the loop.
    When the loop runs in its own thread (`start`) the error is kept in
    `fatal_error` and ``on_fatal`` is called, so the process can exit and
    be restarted by its supervisor.

    Parameters
    ----------
    accessor : `ClusterAccessor`
        Access to the cluster.
    state : `InspectorState`
        Shared application state.
    on_fatal : callable, optional
        Called without arguments when the loop thread dies.
    clock : callable, optional
        Returns the current aware datetime; used to age stuck objects.
    """

    def __init__(
        self,
        accessor: ClusterAccessor,
        state: InspectorState,
        *,
        on_fatal: Callable[[], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.accessor = accessor
        self.state = state
        self.fatal_error: BaseException | None = None
        self._on_fatal = on_fatal
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run_once(self) -> tuple[ScanResult, list[ReclaimResult]]:
        """Run a scan cycle, then reclaim stale registry entries."""
        self.state.registry.begin_cycle()
        self.state.health.processing = True
        try:
            result = run_scan(self.accessor, self.state)
        finally:
            self.state.health.processing = False
        logger.info(
            f"Scan completed successfully: {result.namespace_count} "
            f"namespaces, {result.total_object_count} objects in "
            f"{result.duration:.1f}s"
        )

        reclaimed = reclaim_stale(
            self.state.registry.list(),
            self.state.config.delete_after,
            self._clock(),
            self.accessor,
        )
        self.state.metrics.record_reclaims(reclaimed)
        for r in reclaimed:
            if not r.ok:
                logger.error(
                    f"Error force deleting {r.stuck_object.ref}: {r.error}"
                )
        return result, reclaimed

    def run(self) -> None:
        """Run cycles until `stop` is called."""
        interval = self.state.config.scan_interval.total_seconds()
        while not self._stop.is_set():
            self.run_once()
            logger.debug(f"Sleeping {interval:.0f}s until the next scan")
            self._stop.wait(interval)

    def start(self) -> threading.Thread:
        """Run the loop in a daemon thread."""
        self._thread = threading.Thread(
            target=self._run_guarded, name="scan-loop", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        """Ask the loop to end and wait for the thread, if any.

        An in-flight cycle is not interrupted; the loop ends once it
        completes.
        """
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def _run_guarded(self) -> None:
        try:
            self.run()
        except InspectorError as err:
            logger.critical(f"Scan loop stopped: {err}")
            self._fail(err)
        except Exception as err:
            logger.exception("Scan loop crashed")
            self._fail(err)

    def _fail(self, err: BaseException) -> None:
        self.fatal_error = err
        self.state.health.processing = False
        if self._on_fatal is not None:
            self._on_fatal()
