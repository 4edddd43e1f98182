"""Application state shared by the scan loop and the HTTP server."""

from __future__ import annotations

__all__ = ("InspectorState",)

from dataclasses import dataclass, field

from k8sdeletioninspector.config import Config
from k8sdeletioninspector.health import HealthState
from k8sdeletioninspector.metrics import ScanMetrics
from k8sdeletioninspector.registry import StuckRegistry


@dataclass
class InspectorState:
    """Everything built once at start-up and handed to the scan loop and
    the HTTP app by reference.
    """

    config: Config
    metrics: ScanMetrics = field(default_factory=ScanMetrics)
    health: HealthState = field(default_factory=HealthState)
    registry: StuckRegistry = field(init=False)

    def __post_init__(self) -> None:
        self.registry = StuckRegistry(
            self.config.retention, on_change=self.metrics.set_stuck_count
        )
