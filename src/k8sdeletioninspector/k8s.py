"""Helpers for interacting with Kubernetes APIs."""

from __future__ import annotations

__all__ = (
    "ClusterAccessor",
    "KubernetesAccessor",
    "create_k8sclient",
    "is_not_found",
)

from typing import Any, Protocol

import kubernetes
import structlog
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError
from kubernetes.dynamic.resource import Resource

from k8sdeletioninspector.resources import ResourceType

LIST_PAGE_SIZE = 500
"""Maximum number of objects requested per list call."""


def create_k8sclient(kubeconfig: str | None = None) -> kubernetes.client:
    """Get a Kubernetes client configured with available cluster
    authentication.

    If in-cluster authentication is available, that is used. Otherwise
    this function falls-back to using a kubectl config file, which is
    appropriate for development.

    Parameters
    ----------
    kubeconfig : `str`, optional
        Path to a kubeconfig file. If not set, the default location
        (``~/.kube/config`` or the ``KUBECONFIG`` environment variable) is
        used.
    """
    logger = structlog.getLogger(__name__)
    try:
        kubernetes.config.load_incluster_config()
        logger.debug("Using in-cluster config to connect to Kubernetes")
    except kubernetes.config.ConfigException:
        kubernetes.config.load_kube_config(config_file=kubeconfig or None)
        logger.debug(f"Using kubeconfig {kubeconfig or '(default)'}")
    return kubernetes.client


def is_not_found(error: Exception) -> bool:
    """Return `True` if ``error`` is an API error with a 404 status."""
    return isinstance(error, ApiException) and error.status == 404


class ClusterAccessor(Protocol):
    """Operations the inspector needs from a Kubernetes cluster.

    Namespaces and nodes are typed, well-known kinds; everything else is
    handled as unstructured JSON objects addressed by a `ResourceType`.
    Implementations raise `kubernetes.client.exceptions.ApiException` for
    API errors. `delete_object` sends ``uid`` as a delete precondition, so
    the server answers 409 if the name now belongs to another object.
    """

    def verify_access(self) -> None: ...

    def list_namespaces(self) -> list[str]: ...

    def get_core_resources(self) -> dict[str, Any]: ...

    def get_api_groups(self) -> list[str]: ...

    def get_group_resources(self, group_version: str) -> dict[str, Any]: ...

    def list_objects(
        self, namespace: str, resource_type: ResourceType
    ) -> list[dict[str, Any]]: ...

    def get_object(
        self, namespace: str, resource_type: ResourceType, name: str
    ) -> dict[str, Any]: ...

    def update_object(
        self,
        namespace: str,
        resource_type: ResourceType,
        name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]: ...

    def delete_object(
        self,
        namespace: str,
        resource_type: ResourceType,
        name: str,
        uid: str | None = None,
    ) -> None: ...


class KubernetesAccessor:
    """`ClusterAccessor` backed by the official Kubernetes Python client.

    Namespaces and nodes go through the typed `CoreV1Api`. Every other
    resource, and API discovery, goes through a
    `kubernetes.dynamic.DynamicClient`, so one code path covers built-in
    and custom kinds. The dynamic client reads the cluster's discovery
    documents when it is created, so it is built on first use.

    Parameters
    ----------
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    """

    def __init__(self, k8s_client: Any) -> None:
        self._api_client = k8s_client.ApiClient()
        self._core_v1 = k8s_client.CoreV1Api(self._api_client)
        self._dynamic_client: DynamicClient | None = None

    @property
    def _dynamic(self) -> DynamicClient:
        if self._dynamic_client is None:
            self._dynamic_client = DynamicClient(self._api_client)
        return self._dynamic_client

    def verify_access(self) -> None:
        """List nodes to check that the cluster is reachable and readable."""
        self._core_v1.list_node(limit=1)

    def list_namespaces(self) -> list[str]:
        response = self._core_v1.list_namespace()
        return [ns.metadata.name for ns in response.items]

    def get_core_resources(self) -> dict[str, Any]:
        """Get the ``APIResourceList`` of the core ``v1`` group."""
        return self._dynamic.request("GET", "/api/v1").to_dict()

    def get_api_groups(self) -> list[str]:
        """Get the preferred group-version of every named API group."""
        group_list = self._dynamic.request("GET", "/apis").to_dict()
        return [
            group["preferredVersion"]["groupVersion"]
            for group in group_list.get("groups") or []
            if group.get("preferredVersion")
        ]

    def get_group_resources(self, group_version: str) -> dict[str, Any]:
        """Get the ``APIResourceList`` of a group-version."""
        return self._dynamic.request("GET", f"/apis/{group_version}").to_dict()

    def list_objects(
        self, namespace: str, resource_type: ResourceType
    ) -> list[dict[str, Any]]:
        """List every object of a resource type in a namespace, following
        the API's pagination.
        """
        resource = self._resource(resource_type)
        items: list[dict[str, Any]] = []
        continue_token = None
        while True:
            page = self._dynamic.get(
                resource,
                namespace=namespace,
                limit=LIST_PAGE_SIZE,
                _continue=continue_token,
            ).to_dict()
            items.extend(page.get("items") or [])
            continue_token = (page.get("metadata") or {}).get("continue")
            if not continue_token:
                return items

    def get_object(
        self, namespace: str, resource_type: ResourceType, name: str
    ) -> dict[str, Any]:
        return self._dynamic.get(
            self._resource(resource_type), name=name, namespace=namespace
        ).to_dict()

    def update_object(
        self,
        namespace: str,
        resource_type: ResourceType,
        name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        return self._dynamic.replace(
            self._resource(resource_type),
            body=body,
            name=name,
            namespace=namespace,
        ).to_dict()

    def delete_object(
        self,
        namespace: str,
        resource_type: ResourceType,
        name: str,
        uid: str | None = None,
    ) -> None:
        body = {"preconditions": {"uid": uid}} if uid else None
        self._dynamic.delete(
            self._resource(resource_type),
            name=name,
            namespace=namespace,
            body=body,
        )

    def _resource(self, resource_type: ResourceType) -> Resource:
        """Look up the dynamic client's description of a resource type.

        Raises
        ------
        kubernetes.client.exceptions.ApiException
            Raised with a 404 status if the cluster doesn't serve the
            resource type.
        """
        try:
            return self._dynamic.resources.get(
                api_version=resource_type.group_version,
                name=resource_type.resource,
            )
        except ResourceNotFoundError as err:
            raise ApiException(status=404, reason=str(err)) from err
