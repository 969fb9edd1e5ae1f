"""In-memory resource store used by tests and local dry runs."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from ..constants import (
    KIND_CLUSTER,
    KIND_GLOBAL_ROLE_BINDING,
    KIND_NODE,
    KIND_PROJECT,
    KIND_PROJECT_ROLE,
    KIND_PROJECT_ROLE_BINDING,
)
from ..exceptions import AlreadyExistsError, ConflictError, NotFoundError
from ..models import Cluster, Node, Project, ScopedRole, ScopedRoleBinding
from ..utils.context import check_deadline
from ..utils.labels import matches, parse_selector

_T = TypeVar("_T")


class InMemoryStore:
    """Store backed by dictionaries, with Kubernetes-like write semantics.

    * every write bumps ``metadata.resourceVersion``; an update carrying a
      stale version raises ConflictError
    * updating an object that has a deletion timestamp and no finalizers
      left removes it, as the API server does
    * ``writes`` records ``(operation, kind, name)`` for every successful write
    """

    def __init__(self) -> None:
        self._objects: dict[str, dict[str, dict[str, Any]]] = {}
        self._version = 0
        self._errors: list[tuple[str, str, str | None, Exception]] = []
        self.writes: list[tuple[str, str, str]] = []

    # --- seeding and inspection helpers ---

    def put(self, kind: str, obj: dict[str, Any]) -> dict[str, Any]:
        """Store ``obj`` as-is (no write is recorded)."""
        obj = copy.deepcopy(obj)
        meta = obj.setdefault("metadata", {})
        self._version += 1
        meta["resourceVersion"] = str(self._version)
        self._objects.setdefault(kind, {})[meta["name"]] = obj
        return copy.deepcopy(obj)

    def raw(self, kind: str, name: str) -> dict[str, Any] | None:
        obj = self._objects.get(kind, {}).get(name)
        return copy.deepcopy(obj) if obj is not None else None

    def names(self, kind: str) -> list[str]:
        return sorted(self._objects.get(kind, {}))

    def request_deletion(self, kind: str, name: str) -> None:
        """Simulate a user deleting an object: set the deletion timestamp,
        or remove it right away when it carries no finalizers."""
        obj = self._objects.get(kind, {}).get(name)
        if obj is None:
            raise NotFoundError(kind, name)
        meta = obj["metadata"]
        if meta.get("finalizers"):
            meta.setdefault("deletionTimestamp", datetime.now(timezone.utc).isoformat())
        else:
            del self._objects[kind][name]

    def inject_error(self, operation: str, kind: str, error: Exception, name: str | None = None) -> None:
        """Make the next matching call raise ``error`` instead of running."""
        self._errors.append((operation, kind, name, error))

    def reset_writes(self) -> None:
        self.writes.clear()

    # --- internals ---

    def _enter(self, operation: str, kind: str, name: str | None = None) -> None:
        check_deadline(f"{operation} {kind}")
        for idx, (op, k, n, error) in enumerate(self._errors):
            if op == operation and k == kind and (n is None or n == name):
                del self._errors[idx]
                raise error

    def _get(self, kind: str, name: str, factory: Callable[[dict[str, Any]], _T]) -> _T:
        self._enter("get", kind, name)
        obj = self._objects.get(kind, {}).get(name)
        if obj is None:
            raise NotFoundError(kind, name)
        return factory(copy.deepcopy(obj))

    def _list(self, kind: str, label_selector: str, factory: Callable[[dict[str, Any]], _T]) -> list[_T]:
        self._enter("list", kind)
        requirements = parse_selector(label_selector)
        return [
            factory(copy.deepcopy(obj))
            for name, obj in sorted(self._objects.get(kind, {}).items())
            if matches(obj["metadata"].get("labels"), requirements)
        ]

    def _create(self, kind: str, obj: dict[str, Any]) -> dict[str, Any]:
        name = obj["metadata"]["name"]
        self._enter("create", kind, name)
        if name in self._objects.get(kind, {}):
            raise AlreadyExistsError(kind, name)
        obj = copy.deepcopy(obj)
        self._version += 1
        obj["metadata"]["resourceVersion"] = str(self._version)
        self._objects.setdefault(kind, {})[name] = obj
        self.writes.append(("create", kind, name))
        return copy.deepcopy(obj)

    def _update(self, kind: str, obj: dict[str, Any], status_only: bool = False) -> dict[str, Any]:
        name = obj["metadata"]["name"]
        operation = "update_status" if status_only else "update"
        self._enter(operation, kind, name)
        current = self._objects.get(kind, {}).get(name)
        if current is None:
            raise NotFoundError(kind, name)
        version = obj["metadata"].get("resourceVersion")
        if version is not None and version != current["metadata"].get("resourceVersion"):
            raise ConflictError(kind, name)

        if status_only:
            updated = copy.deepcopy(current)
            updated["status"] = copy.deepcopy(obj.get("status") or {})
        else:
            updated = copy.deepcopy(obj)
            if "status" in current:
                updated["status"] = copy.deepcopy(current["status"])
            else:
                updated.pop("status", None)
            # The deletion timestamp can only be set by a delete request
            deletion = current["metadata"].get("deletionTimestamp")
            if deletion is not None:
                updated["metadata"]["deletionTimestamp"] = deletion
            else:
                updated["metadata"].pop("deletionTimestamp", None)

        self._version += 1
        updated["metadata"]["resourceVersion"] = str(self._version)
        self.writes.append((operation, kind, name))
        meta = updated["metadata"]
        if meta.get("deletionTimestamp") is not None and not meta.get("finalizers"):
            del self._objects[kind][name]
        else:
            self._objects[kind][name] = updated
        return copy.deepcopy(updated)

    def _delete(self, kind: str, name: str) -> None:
        self._enter("delete", kind, name)
        if name not in self._objects.get(kind, {}):
            raise NotFoundError(kind, name)
        del self._objects[kind][name]
        self.writes.append(("delete", kind, name))

    # --- ResourceStore ---

    def get_project(self, name: str) -> Project:
        return self._get(KIND_PROJECT, name, Project.from_dict)

    def update_project(self, project: Project) -> Project:
        return Project.from_dict(self._update(KIND_PROJECT, project.to_dict()))

    def update_project_status(self, project: Project) -> Project:
        return Project.from_dict(self._update(KIND_PROJECT, project.to_dict(), status_only=True))

    def list_clusters(self, label_selector: str) -> list[Cluster]:
        return self._list(KIND_CLUSTER, label_selector, Cluster.from_dict)

    def get_node(self, name: str) -> Node:
        return self._get(KIND_NODE, name, Node.from_dict)

    def list_nodes(self, label_selector: str) -> list[Node]:
        return self._list(KIND_NODE, label_selector, Node.from_dict)

    def update_node(self, node: Node) -> Node:
        return Node.from_dict(self._update(KIND_NODE, node.to_dict()))

    def get_scoped_role(self, name: str) -> ScopedRole:
        return self._get(KIND_PROJECT_ROLE, name, ScopedRole.from_dict)

    def list_scoped_roles(self, label_selector: str) -> list[ScopedRole]:
        return self._list(KIND_PROJECT_ROLE, label_selector, ScopedRole.from_dict)

    def create_scoped_role(self, role: ScopedRole) -> ScopedRole:
        return ScopedRole.from_dict(self._create(KIND_PROJECT_ROLE, role.to_dict()))

    def update_scoped_role(self, role: ScopedRole) -> ScopedRole:
        return ScopedRole.from_dict(self._update(KIND_PROJECT_ROLE, role.to_dict()))

    def delete_scoped_role(self, name: str) -> None:
        self._delete(KIND_PROJECT_ROLE, name)

    def list_scoped_role_bindings(self, label_selector: str) -> list[ScopedRoleBinding]:
        return self._list(KIND_PROJECT_ROLE_BINDING, label_selector, ScopedRoleBinding.from_dict)

    def create_scoped_role_binding(self, binding: ScopedRoleBinding) -> ScopedRoleBinding:
        return ScopedRoleBinding.from_dict(self._create(KIND_PROJECT_ROLE_BINDING, binding.to_dict()))

    def delete_scoped_role_binding(self, name: str) -> None:
        self._delete(KIND_PROJECT_ROLE_BINDING, name)

    def delete_global_role_binding(self, name: str) -> None:
        self._delete(KIND_GLOBAL_ROLE_BINDING, name)
