"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from project_operator.constants import (
    CORE_GROUP_VERSION,
    FINALIZER,
    KIND_CLUSTER,
    KIND_NODE,
    KIND_PROJECT,
    LABEL_PROJECT,
    TENANT_GROUP_VERSION,
)
from project_operator.store.memory import InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def make_project(store: InMemoryStore) -> Callable[..., dict[str, Any]]:
    """Seed a Project; finalized projects already carry the finalizer."""

    def _make(
        name: str = "demo",
        manager: str = "alice",
        nodes: list[str] | None = None,
        finalized: bool = True,
    ) -> dict[str, Any]:
        obj: dict[str, Any] = {
            "apiVersion": TENANT_GROUP_VERSION,
            "kind": KIND_PROJECT,
            "metadata": {"name": name, "uid": f"uid-{name}"},
            "spec": {"manager": manager, "nodes": list(nodes or [])},
        }
        if finalized:
            obj["metadata"]["finalizers"] = [FINALIZER]
        return store.put(KIND_PROJECT, obj)

    return _make


@pytest.fixture
def make_cluster(store: InMemoryStore) -> Callable[..., dict[str, Any]]:
    def _make(
        name: str,
        project: str | None = "demo",
        masters: list[str] | None = None,
        workers: list[str] | None = None,
    ) -> dict[str, Any]:
        meta: dict[str, Any] = {"name": name}
        if project:
            meta["labels"] = {LABEL_PROJECT: project}
        return store.put(KIND_CLUSTER, {
            "apiVersion": CORE_GROUP_VERSION,
            "kind": KIND_CLUSTER,
            "metadata": meta,
            "masters": [{"id": n, "ipv4": "10.0.0.1"} for n in masters or []],
            "workers": [{"id": n, "ipv4": "10.0.0.2"} for n in workers or []],
        })

    return _make


@pytest.fixture
def make_node(store: InMemoryStore) -> Callable[..., dict[str, Any]]:
    def _make(name: str, project: str | None = None) -> dict[str, Any]:
        meta: dict[str, Any] = {"name": name, "labels": {"kubeclipper.io/region": "default"}}
        if project:
            meta["labels"][LABEL_PROJECT] = project
        return store.put(KIND_NODE, {
            "apiVersion": CORE_GROUP_VERSION,
            "kind": KIND_NODE,
            "metadata": meta,
            "status": {"ipv4DefaultIP": "10.0.0.10"},
        })

    return _make
