"""Shared in-memory fakes for unit tests."""

from __future__ import annotations

import base64
import copy
import json
from typing import Any

import pytest
from kubernetes.client.exceptions import ApiException

from ceph_operator.utils.dependents import DependentList


class FakeStore:
    """Dict-backed ObjectStore that behaves like the API server for get/create/update."""

    def __init__(self, kind: str = "Driver", api_version: str = "csi.ceph.io/v1") -> None:
        self.kind = kind
        self.api_version = api_version
        self.objects: dict[tuple[str | None, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str | None, str]] = []
        self.errors: dict[str, Exception] = {}
        self._version = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def seed(self, obj: dict[str, Any]) -> dict[str, Any]:
        obj = copy.deepcopy(obj)
        metadata = obj.setdefault("metadata", {})
        metadata.setdefault("resourceVersion", self._next_version())
        self.objects[(metadata.get("namespace"), metadata["name"])] = obj
        return obj

    def get(self, name: str, namespace: str | None = None, timeout: float | None = None) -> dict[str, Any]:
        self.calls.append(("get", namespace, name))
        if "get" in self.errors:
            raise self.errors["get"]
        try:
            return copy.deepcopy(self.objects[(namespace, name)])
        except KeyError:
            raise ApiException(status=404, reason="Not Found") from None

    def create(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        metadata = body["metadata"]
        self.calls.append(("create", metadata.get("namespace"), metadata["name"]))
        if "create" in self.errors:
            raise self.errors["create"]
        key = (metadata.get("namespace"), metadata["name"])
        if key in self.objects:
            raise ApiException(status=409, reason="AlreadyExists")
        stored = copy.deepcopy(body)
        stored["metadata"]["resourceVersion"] = self._next_version()
        self.objects[key] = stored
        return copy.deepcopy(stored)

    def update(self, body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        metadata = body["metadata"]
        self.calls.append(("update", metadata.get("namespace"), metadata["name"]))
        if "update" in self.errors:
            raise self.errors["update"]
        key = (metadata.get("namespace"), metadata["name"])
        if key not in self.objects:
            raise ApiException(status=404, reason="Not Found")
        if self.objects[key]["metadata"].get("resourceVersion") != metadata.get("resourceVersion"):
            raise ApiException(status=409, reason="Conflict")
        stored = copy.deepcopy(body)
        stored["metadata"]["resourceVersion"] = self._next_version()
        self.objects[key] = stored
        return copy.deepcopy(stored)

    def list(self, namespace: str, timeout: float | None = None) -> list[dict[str, Any]]:
        self.calls.append(("list", namespace, ""))
        return [copy.deepcopy(obj) for (ns, _), obj in self.objects.items() if ns == namespace]

    def writes(self) -> list[tuple[str, str | None, str]]:
        return [call for call in self.calls if call[0] in ("create", "update")]


class FakeSecret:
    def __init__(self, data: dict[str, str]) -> None:
        self.data = data


class FakeCoreV1Api:
    """Secret subset of CoreV1Api keeping base64 data by name."""

    def __init__(self) -> None:
        self.secrets: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []

    def read_namespaced_secret(self, name: str, namespace: str, **kwargs: Any) -> FakeSecret:
        self.calls.append(("read", name))
        try:
            return FakeSecret(dict(self.secrets[(namespace, name)]["data"]))
        except KeyError:
            raise ApiException(status=404, reason="Not Found") from None

    def create_namespaced_secret(self, namespace: str, body: Any, **kwargs: Any) -> None:
        self.calls.append(("create", body.metadata.name))
        self.secrets[(namespace, body.metadata.name)] = {
            "data": dict(body.data),
            "labels": dict(body.metadata.labels or {}),
            "owner_references": list(body.metadata.owner_references or []),
        }

    def patch_namespaced_secret(self, name: str, namespace: str, body: dict[str, Any], **kwargs: Any) -> None:
        self.calls.append(("patch", name))
        self.secrets[(namespace, name)]["data"].update(body["data"])

    def seed_secret(self, namespace: str, name: str, keyring: str) -> None:
        data = {"keyring": base64.b64encode(keyring.encode("utf-8")).decode("utf-8")}
        self.secrets[(namespace, name)] = {"data": data, "labels": {}, "owner_references": []}

    def keyring(self, namespace: str, name: str) -> str:
        return base64.b64decode(self.secrets[(namespace, name)]["data"]["keyring"]).decode("utf-8")


class FakeExecutor:
    """CommandExecutor returning canned JSON keyed by the leading arguments."""

    def __init__(self, responses: dict[tuple[str, ...], Any] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[list[str]] = []

    def execute(self, args: list[str], timeout: float | None = None) -> str:
        self.calls.append(list(args))
        for length in range(len(args), 0, -1):
            key = tuple(args[:length])
            if key in self.responses:
                response = self.responses[key]
                return response if isinstance(response, str) else json.dumps(response)
        raise AssertionError(f"unexpected command {args}")


class FakeRestarter:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str], int]] = []

    def restart(self, namespace: str, names: list[str], generation: int) -> None:
        self.calls.append((namespace, list(names), generation))


class FakeDependentsLister:
    def __init__(self, *pairs: tuple[str, str]) -> None:
        self.pairs = list(pairs)

    def list_dependents(self, name: str, namespace: str) -> DependentList:
        dependents = DependentList()
        for kind, dependent in self.pairs:
            dependents.add(kind, dependent)
        return dependents


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_core_api() -> FakeCoreV1Api:
    return FakeCoreV1Api()


@pytest.fixture
def fake_restarter() -> FakeRestarter:
    return FakeRestarter()
