"""Shared fixtures, including an in-memory cluster."""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

import pytest
import structlog
import yaml
from kubernetes.client.exceptions import ApiException

from k8sdeletioninspector.config import Config
from k8sdeletioninspector.discovery import resource_types_from_list
from k8sdeletioninspector.resources import ResourceType
from k8sdeletioninspector.state import InspectorState

PODS = ResourceType("", "v1", "pods")
CONFIGMAPS = ResourceType("", "v1", "configmaps")
DEPLOYMENTS = ResourceType("apps", "v1", "deployments")
WIDGETS = ResourceType("example.com", "v1", "widgets")

CORE_RESOURCES = """
kind: APIResourceList
groupVersion: v1
resources:
- name: bindings
  namespaced: true
  verbs: [create]
- name: configmaps
  namespaced: true
  verbs: [create, delete, get, list, patch, update, watch]
- name: namespaces
  namespaced: false
  verbs: [create, delete, get, list, patch, update, watch]
- name: nodes
  namespaced: false
  verbs: [get, list]
- name: pods
  namespaced: true
  verbs: [create, delete, get, list, patch, update, watch]
- name: pods/log
  namespaced: true
  verbs: [get]
"""

GROUP_RESOURCES = """
apps/v1:
  kind: APIResourceList
  groupVersion: apps/v1
  resources:
  - name: deployments
    namespaced: true
    verbs: [create, delete, get, list, patch, update, watch]
  - name: deployments/scale
    namespaced: true
    verbs: [get, patch, update]
example.com/v1:
  kind: APIResourceList
  groupVersion: example.com/v1
  resources:
  - name: widgets
    namespaced: true
    verbs: [delete, get, list, update]
  - name: clusterwidgets
    namespaced: false
    verbs: [get, list]
metrics.k8s.io/v1beta1:
  kind: APIResourceList
  groupVersion: metrics.k8s.io/v1beta1
  resources:
  - name: pods
    namespaced: true
    verbs: [get, list]
"""


def make_object(
    name: str,
    *,
    deletion_timestamp: str | None = None,
    finalizers: list[str] | None = None,
    uid: str | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "name": name,
        "uid": uid or f"uid-{name}",
        "resourceVersion": "1",
    }
    if deletion_timestamp:
        metadata["deletionTimestamp"] = deletion_timestamp
    if finalizers:
        metadata["finalizers"] = list(finalizers)
    return {"metadata": metadata}


class FakeClusterAccessor:
    """In-memory `ClusterAccessor`.

    Calls are recorded in ``calls``. `fail` makes a call raise an
    `ApiException`, either for every argument or for specific arguments.
    """

    def __init__(
        self,
        namespaces: list[str] | None = None,
        core_resources: dict[str, Any] | None = None,
        group_resources: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self.namespaces = namespaces if namespaces is not None else ["default"]
        self.core_resources = core_resources or yaml.safe_load(CORE_RESOURCES)
        self.group_resources = (
            group_resources
            if group_resources is not None
            else yaml.safe_load(GROUP_RESOURCES)
        )
        self.objects: dict[tuple[str, ResourceType], dict[str, Any]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.hooks: dict[str, Callable[[], None]] = {}
        self._failures: dict[tuple[Any, ...], Exception] = {}

    @property
    def served(self) -> set[ResourceType]:
        served = set(resource_types_from_list(self.core_resources))
        for resource_list in self.group_resources.values():
            served.update(resource_types_from_list(resource_list))
        return served

    def add(
        self, namespace: str, resource_type: ResourceType, obj: dict[str, Any]
    ) -> None:
        bucket = self.objects.setdefault((namespace, resource_type), {})
        bucket[obj["metadata"]["name"]] = obj

    def fail(
        self,
        operation: str,
        *args: Any,
        status: int = 500,
        error: Exception | None = None,
    ) -> None:
        self._failures[(operation, *args)] = error or ApiException(
            status=status, reason="Not Found" if status == 404 else "Error"
        )

    def _call(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, *args))
        if operation in self.hooks:
            self.hooks[operation]()
        for key in ((operation,), (operation, *args)):
            if key in self._failures:
                raise self._failures[key]

    def _bucket(
        self, namespace: str, resource_type: ResourceType
    ) -> dict[str, Any]:
        if resource_type not in self.served:
            raise ApiException(status=404, reason="Not Found")
        return self.objects.setdefault((namespace, resource_type), {})

    def _existing(
        self, namespace: str, resource_type: ResourceType, name: str
    ) -> dict[str, Any]:
        bucket = self._bucket(namespace, resource_type)
        if name not in bucket:
            raise ApiException(status=404, reason="Not Found")
        return bucket[name]

    def verify_access(self) -> None:
        self._call("verify_access")

    def list_namespaces(self) -> list[str]:
        self._call("list_namespaces")
        return list(self.namespaces)

    def get_core_resources(self) -> dict[str, Any]:
        self._call("get_core_resources")
        return copy.deepcopy(self.core_resources)

    def get_api_groups(self) -> list[str]:
        self._call("get_api_groups")
        return list(self.group_resources)

    def get_group_resources(self, group_version: str) -> dict[str, Any]:
        self._call("get_group_resources", group_version)
        return copy.deepcopy(self.group_resources[group_version])

    def list_objects(
        self, namespace: str, resource_type: ResourceType
    ) -> list[dict[str, Any]]:
        self._call("list_objects", namespace, resource_type)
        bucket = self._bucket(namespace, resource_type)
        return [copy.deepcopy(obj) for obj in bucket.values()]

    def get_object(
        self, namespace: str, resource_type: ResourceType, name: str
    ) -> dict[str, Any]:
        self._call("get_object", namespace, resource_type, name)
        return copy.deepcopy(self._existing(namespace, resource_type, name))

    def update_object(
        self,
        namespace: str,
        resource_type: ResourceType,
        name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        self._call("update_object", namespace, resource_type, name)
        self._existing(namespace, resource_type, name)
        self.objects[(namespace, resource_type)][name] = copy.deepcopy(body)
        return body

    def delete_object(
        self,
        namespace: str,
        resource_type: ResourceType,
        name: str,
        uid: str | None = None,
    ) -> None:
        self._call("delete_object", namespace, resource_type, name)
        obj = self._existing(namespace, resource_type, name)
        if uid is not None and obj["metadata"].get("uid") != uid:
            raise ApiException(status=409, reason="Conflict")
        if not obj["metadata"].get("finalizers"):
            del self.objects[(namespace, resource_type)][name]

    def operations(self, name: str) -> list[tuple[Any, ...]]:
        """Return the recorded calls of one operation."""
        return [call for call in self.calls if call[0] == name]


@pytest.fixture(autouse=True)
def reset_structlog() -> Any:
    yield
    structlog.reset_defaults()


@pytest.fixture
def accessor() -> FakeClusterAccessor:
    return FakeClusterAccessor()


@pytest.fixture
def state() -> InspectorState:
    return InspectorState(config=Config(debug=False))
