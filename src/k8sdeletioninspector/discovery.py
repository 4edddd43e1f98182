"""Discovery of the namespaced resource types a cluster serves."""

from __future__ import annotations

__all__ = (
    "IGNORED_GROUP_SUBSTRINGS",
    "discover_core_resource_types",
    "discover_group_resource_types",
    "discover_namespaced_resource_types",
    "resource_types_from_list",
    "should_ignore_group",
)

from typing import Any

import structlog
from kubernetes.client.exceptions import ApiException

from k8sdeletioninspector.exceptions import DiscoveryError
from k8sdeletioninspector.k8s import ClusterAccessor
from k8sdeletioninspector.resources import (
    CORE_GROUP_VERSIONS,
    ResourceType,
    parse_group_version,
)

IGNORED_GROUP_SUBSTRINGS = ("metrics.k8s.io",)
"""Group-versions containing any of these strings are never scanned.

The metrics aggregation API serves ephemeral, read-only objects that are
never stuck in deletion.
"""

logger = structlog.getLogger(__name__)


def should_ignore_group(group_version: str) -> bool:
    """Return `True` if the group-version should be skipped during
    discovery.
    """
    return any(s in group_version for s in IGNORED_GROUP_SUBSTRINGS)


def resource_types_from_list(
    resource_list: dict[str, Any],
) -> list[ResourceType]:
    """Extract the listable, namespaced resource types from an
    ``APIResourceList``.

    Subresources (``pods/log`` and the like) and resources that can't be
    listed are dropped.

    Raises
    ------
    DiscoveryError
        Raised if the list's group-version is malformed.
    """
    group_version = resource_list.get("groupVersion", "")
    try:
        group, version = parse_group_version(group_version)
    except ValueError as err:
        raise DiscoveryError(str(err)) from err

    resource_types = []
    for resource in resource_list.get("resources") or []:
        name = resource.get("name", "")
        if not resource.get("namespaced") or "/" in name:
            continue
        if "list" not in (resource.get("verbs") or []):
            logger.debug(f"Skipping {name} in {group_version}: not listable")
            continue
        resource_types.append(ResourceType(group, version, name))
    return resource_types


def discover_core_resource_types(
    accessor: ClusterAccessor,
) -> list[ResourceType]:
    """Discover the namespaced resource types of the core ``v1`` group.

    Parameters
    ----------
    accessor : `ClusterAccessor`
        Access to the cluster.

    Returns
    -------
    resource_types : `list` of `ResourceType`
        Built-in namespaced kinds such as pods, services and configmaps.

    Raises
    ------
    DiscoveryError
        Raised if the discovery endpoint can't be read.
    """
    try:
        resource_list = accessor.get_core_resources()
    except ApiException as err:
        raise DiscoveryError(
            f"error fetching core API resources: {err.status} {err.reason}"
        ) from err

    group_version = resource_list.get("groupVersion", "v1")
    if group_version not in CORE_GROUP_VERSIONS:
        raise DiscoveryError(
            f"core discovery returned group-version {group_version!r}"
        )
    resource_types = resource_types_from_list(resource_list)
    for resource_type in resource_types:
        logger.debug(f"Added core resource: {resource_type}")
    return resource_types


def discover_group_resource_types(
    accessor: ClusterAccessor,
) -> list[ResourceType]:
    """Discover the namespaced resource types of every named API group at
    its preferred version, in the order the server lists the groups.

    Groups matched by `should_ignore_group` are skipped before their
    resources are fetched.

    Raises
    ------
    DiscoveryError
        Raised if any discovery endpoint can't be read or a group-version
        is malformed.
    """
    try:
        group_versions = accessor.get_api_groups()
    except ApiException as err:
        raise DiscoveryError(
            f"error fetching API groups: {err.status} {err.reason}"
        ) from err

    resource_types: list[ResourceType] = []
    for group_version in group_versions:
        if should_ignore_group(group_version):
            logger.debug(f"Ignoring group version: {group_version}")
            continue
        try:
            resource_list = accessor.get_group_resources(group_version)
        except ApiException as err:
            raise DiscoveryError(
                f"error fetching resources for {group_version}: "
                f"{err.status} {err.reason}"
            ) from err
        resource_list.setdefault("groupVersion", group_version)
        found = resource_types_from_list(resource_list)
        logger.debug(
            f"Found {len(found)} namespaced resources in {group_version}"
        )
        resource_types.extend(found)

    return resource_types


def discover_namespaced_resource_types(
    accessor: ClusterAccessor,
) -> list[ResourceType]:
    """Discover every namespaced resource type the cluster serves at its
    preferred version, built-in and custom.

    Core resources come first, followed by those of
    `discover_group_resource_types`.

    Raises
    ------
    DiscoveryError
        Raised if any discovery endpoint can't be read or a group-version
        is malformed.
    """
    resource_types = discover_core_resource_types(accessor)
    resource_types.extend(discover_group_resource_types(accessor))
    return resource_types
