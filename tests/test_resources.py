"""Tests for the k8sdeletioninspector.resources module."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
import yaml

from k8sdeletioninspector.resources import (
    DeletionState,
    ResourceType,
    StuckObject,
    parse_group_version,
    parse_timestamp,
)


@pytest.mark.parametrize(
    "group_version,expected",
    [
        ("v1", ("", "v1")),
        ("core", ("", "v1")),
        ("apps/v1", ("apps", "v1")),
        ("example.com/v1alpha1", ("example.com", "v1alpha1")),
    ],
)
def test_parse_group_version(
    group_version: str, expected: tuple[str, str]
) -> None:
    assert parse_group_version(group_version) == expected


@pytest.mark.parametrize("group_version", ["", "a/b/c", "apps/", "/v1"])
def test_parse_group_version_malformed(group_version: str) -> None:
    with pytest.raises(ValueError):
        parse_group_version(group_version)


def test_resource_type_group_version() -> None:
    pods = ResourceType("", "v1", "pods")
    assert pods.group_version == "v1"
    assert pods.is_core
    assert str(pods) == "pods.v1"

    widgets = ResourceType("example.com", "v1", "widgets")
    assert widgets.group_version == "example.com/v1"
    assert not widgets.is_core
    assert str(widgets) == "widgets.v1.example.com"


def test_resource_type_equality() -> None:
    assert ResourceType("apps", "v1", "deployments") == ResourceType(
        "apps", "v1", "deployments"
    )
    assert ResourceType("apps", "v1", "deployments") != ResourceType(
        "apps", "v1beta1", "deployments"
    )


def test_parse_timestamp() -> None:
    parsed = parse_timestamp("2024-03-01T12:30:00Z")
    assert parsed == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2024-03-01T14:30:00+02:00") == parsed


def test_deletion_state_from_object() -> None:
    manifest = """
apiVersion: v1
kind: ConfigMap
metadata:
  name: settings
  namespace: default
  uid: 8f0c1d62-5b7e-4f2a-9a51-2d1e3c4b5a69
  deletionTimestamp: "2024-03-01T12:30:00Z"
  finalizers:
  - example.com/cleanup
"""
    state = DeletionState.from_object(yaml.safe_load(manifest))
    assert state.is_deleting
    assert state.uid == "8f0c1d62-5b7e-4f2a-9a51-2d1e3c4b5a69"
    assert state.deletion_timestamp == datetime(
        2024, 3, 1, 12, 30, tzinfo=timezone.utc
    )

    state = DeletionState.from_object({"metadata": {"name": "settings"}})
    assert not state.is_deleting
    assert state.deletion_timestamp is None


def test_stuck_object_to_dict() -> None:
    stuck = StuckObject(
        namespace="default",
        resource_type=ResourceType("example.com", "v1", "widgets"),
        name="gear",
        deletion_timestamp=datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc),
    )
    assert stuck.to_dict() == {
        "namespace": "default",
        "resource": "widgets",
        "name": "gear",
        "deleteTimestamp": "2024-03-01T12:30:00Z",
        "groupVersionResource": {
            "group": "example.com",
            "version": "v1",
            "resource": "widgets",
        },
    }
