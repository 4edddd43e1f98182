"""Listing objects and classifying their deletion state."""

from __future__ import annotations

__all__ = (
    "get_deletion_state",
    "list_objects",
    "scan_namespace",
    "scan_object",
    "scan_resource",
)

from collections.abc import Iterable

import structlog
from kubernetes.client.exceptions import ApiException

from k8sdeletioninspector.k8s import ClusterAccessor, is_not_found
from k8sdeletioninspector.registry import StuckRegistry
from k8sdeletioninspector.resources import (
    DeletionState,
    ResourceType,
    StuckObject,
)

logger = structlog.getLogger(__name__)


def list_objects(
    accessor: ClusterAccessor, namespace: str, resource_type: ResourceType
) -> list[str]:
    """List the names of all objects of a resource type in a namespace.

    Raises
    ------
    kubernetes.client.exceptions.ApiException
        Raised if the list call fails. A 404 status means the cluster
        doesn't serve the resource type.
    """
    objects = accessor.list_objects(namespace, resource_type)
    names = [obj["metadata"]["name"] for obj in objects]
    if names:
        logger.debug(
            f"Found {len(names)} objects for resource "
            f"{resource_type.resource} in namespace {namespace}"
        )
    else:
        logger.debug(
            f"No objects found for resource {resource_type.resource} "
            f"in namespace {namespace}"
        )
    return names


def get_deletion_state(
    accessor: ClusterAccessor,
    namespace: str,
    resource_type: ResourceType,
    name: str,
) -> DeletionState:
    """Fetch an object and report whether it carries a deletion timestamp.

    Raises
    ------
    kubernetes.client.exceptions.ApiException
        Raised if the object can't be fetched, including when it was
        deleted after being listed.
    """
    obj = accessor.get_object(namespace, resource_type, name)
    return DeletionState.from_object(obj)


def scan_object(
    accessor: ClusterAccessor,
    namespace: str,
    resource_type: ResourceType,
    name: str,
    registry: StuckRegistry,
) -> bool:
    """Check one object and record it if it is being deleted.

    Returns
    -------
    stuck : `bool`
        `True` if the object was recorded as stuck. Objects that can't be
        fetched are reported as not stuck.
    """
    try:
        state = get_deletion_state(accessor, namespace, resource_type, name)
    except ApiException as err:
        if is_not_found(err):
            logger.info(
                f"Object {name} in namespace {namespace} disappeared "
                "before it could be checked"
            )
        else:
            logger.error(
                f"Error checking if object {name} in namespace {namespace} "
                f"is deleted: {err.status} {err.reason}"
            )
        return False
    except Exception:
        logger.exception(
            f"Error checking if object {name} in namespace {namespace} "
            "is deleted"
        )
        return False

    if not state.is_deleting or state.deletion_timestamp is None:
        return False

    logger.info(
        f"Object {resource_type.resource}/{name} in namespace {namespace} "
        "is marked for deletion"
    )
    registry.record(
        StuckObject(
            namespace=namespace,
            resource_type=resource_type,
            name=name,
            deletion_timestamp=state.deletion_timestamp,
            uid=state.uid,
        )
    )
    return True


def scan_resource(
    accessor: ClusterAccessor,
    namespace: str,
    resource_type: ResourceType,
    registry: StuckRegistry,
) -> int:
    """Scan every object of one resource type in a namespace.

    Returns
    -------
    count : `int`
        The number of objects examined, stuck or not. A resource type the
        cluster doesn't serve, or whose listing fails, counts as zero.
    """
    try:
        names = list_objects(accessor, namespace, resource_type)
    except ApiException as err:
        if is_not_found(err):
            logger.warning(
                f"Resource {resource_type} not found in namespace {namespace}"
            )
        else:
            logger.error(
                f"Error fetching objects for resource {resource_type} in "
                f"namespace {namespace}: {err.status} {err.reason}"
            )
        return 0
    except Exception:
        logger.exception(
            f"Error fetching objects for resource {resource_type} in "
            f"namespace {namespace}"
        )
        return 0

    for name in names:
        scan_object(accessor, namespace, resource_type, name, registry)
    return len(names)


def scan_namespace(
    accessor: ClusterAccessor,
    namespace: str,
    resource_types: Iterable[ResourceType],
    registry: StuckRegistry,
) -> int:
    """Scan a namespace for objects of the given resource types.

    Parameters
    ----------
    accessor : `ClusterAccessor`
        Access to the cluster.
    namespace : `str`
        The namespace to scan.
    resource_types : iterable of `ResourceType`
        Resource types to scan, one after another.
    registry : `StuckRegistry`
        Registry receiving the objects found being deleted.

    Returns
    -------
    count : `int`
        Total number of objects examined in the namespace.
    """
    logger.debug(f"Processing namespace {namespace}")
    total = 0
    for resource_type in resource_types:
        total += scan_resource(accessor, namespace, resource_type, registry)
    return total
