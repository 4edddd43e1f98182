"""Exceptions raised by the inspector."""

__all__ = ("ClusterAccessError", "DiscoveryError", "InspectorError")


class InspectorError(Exception):
    """Base class for inspector errors."""


class ClusterAccessError(InspectorError):
    """The cluster cannot be read (nodes or namespaces can't be listed).

    The process can't do anything useful without basic read access, so this
    error ends the scan loop.
    """


class DiscoveryError(InspectorError):
    """API discovery failed or returned a malformed group-version."""
