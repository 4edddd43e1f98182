"""Runtime configuration."""

from __future__ import annotations

__all__ = ("Config",)

from dataclasses import dataclass
from datetime import timedelta

from k8sdeletioninspector.registry import Retention


@dataclass(frozen=True)
class Config:
    """Settings collected from command-line options and environment
    variables (see `k8sdeletioninspector.cli`).
    """

    debug: bool = True
    """Log at debug level."""

    metrics_port: int = 9000
    """Port of the HTTP server exposing metrics and probes."""

    kubeconfig: str | None = None
    """Kubeconfig path, used when not running inside a cluster."""

    delete_after_hours: int = 72
    """Hours an object may stay stuck before its deletion is forced."""

    scan_interval_hours: int = 24
    """Hours to wait between the end of a scan and the next one."""

    retention: Retention = Retention.CYCLE
    """Registry retention policy between scan cycles."""

    @property
    def delete_after(self) -> timedelta:
        return timedelta(hours=self.delete_after_hours)

    @property
    def scan_interval(self) -> timedelta:
        return timedelta(hours=self.scan_interval_hours)
