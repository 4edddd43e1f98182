"""Value types describing resource kinds, objects and their deletion state."""

from __future__ import annotations

__all__ = (
    "DeletionState",
    "ObjectRef",
    "ResourceType",
    "ScanResult",
    "StuckObject",
    "format_timestamp",
    "parse_group_version",
    "parse_timestamp",
)

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

CORE_GROUP_VERSIONS = frozenset({"v1", "core"})
"""Group-version strings used by the built-in (legacy core) API group."""


@dataclass(frozen=True)
class ResourceType:
    """A Kubernetes API resource kind, identified by group, version and
    plural resource name.

    The core API group has an empty ``group``.
    """

    group: str
    version: str
    resource: str

    @property
    def group_version(self) -> str:
        if self.group:
            return f"{self.group}/{self.version}"
        return self.version

    @property
    def is_core(self) -> bool:
        return self.group == "" and self.group_version in CORE_GROUP_VERSIONS

    def __str__(self) -> str:
        if self.group:
            return f"{self.resource}.{self.version}.{self.group}"
        return f"{self.resource}.{self.version}"


def parse_group_version(group_version: str) -> tuple[str, str]:
    """Split a group-version string into its group and version.

    Parameters
    ----------
    group_version : `str`
        A string such as ``v1`` (core group) or ``apps/v1``.

    Returns
    -------
    group : `str`
        The API group; empty for the core group.
    version : `str`
        The API version.

    Raises
    ------
    ValueError
        Raised if the string is empty or has more than one ``/``.
    """
    parts = group_version.split("/")
    if len(parts) == 1 and parts[0]:
        if parts[0] == "core":
            return "", "v1"
        return "", parts[0]
    if len(parts) == 2 and all(parts):
        return parts[0], parts[1]
    raise ValueError(f"unexpected group-version string: {group_version!r}")


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp from the Kubernetes API into an aware
    UTC datetime.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class ObjectRef:
    """A single object in a namespace."""

    namespace: str
    resource_type: ResourceType
    name: str

    def __str__(self) -> str:
        return f"{self.resource_type.resource}/{self.name} (ns: {self.namespace})"


@dataclass(frozen=True)
class DeletionState:
    """Whether an object was marked for deletion when it was observed."""

    is_deleting: bool
    deletion_timestamp: datetime | None = None
    uid: str | None = None

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> DeletionState:
        metadata = obj.get("metadata", {})
        raw = metadata.get("deletionTimestamp")
        if not raw:
            return cls(is_deleting=False, uid=metadata.get("uid"))
        return cls(
            is_deleting=True,
            deletion_timestamp=parse_timestamp(raw),
            uid=metadata.get("uid"),
        )


@dataclass(frozen=True)
class StuckObject:
    """An object observed with a deletion timestamp set.

    ``uid`` identifies this incarnation of the object; another object
    created later under the same name has a different uid.
    """

    namespace: str
    resource_type: ResourceType
    name: str
    deletion_timestamp: datetime
    uid: str | None = None

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(self.namespace, self.resource_type, self.name)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the entry for the ``/stuck-objects`` endpoint."""
        return {
            "namespace": self.namespace,
            "resource": self.resource_type.resource,
            "name": self.name,
            "deleteTimestamp": format_timestamp(self.deletion_timestamp),
            "groupVersionResource": {
                "group": self.resource_type.group,
                "version": self.resource_type.version,
                "resource": self.resource_type.resource,
            },
        }


@dataclass(frozen=True)
class ScanResult:
    """Outcome of one full scan cycle."""

    success: bool
    namespace_count: int
    total_object_count: int
    duration: float = 0.0
