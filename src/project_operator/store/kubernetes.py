"""Resource store backed by the Kubernetes custom objects API."""

from __future__ import annotations

import logging
import time
from typing import Any

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from .. import metrics
from ..constants import (
    API_VERSION,
    CORE_GROUP,
    FIELD_MANAGER,
    IAM_GROUP,
    KIND_CLUSTER,
    KIND_GLOBAL_ROLE_BINDING,
    KIND_NODE,
    KIND_PROJECT,
    KIND_PROJECT_ROLE,
    KIND_PROJECT_ROLE_BINDING,
    PLURAL_CLUSTERS,
    PLURAL_GLOBAL_ROLE_BINDINGS,
    PLURAL_NODES,
    PLURAL_PROJECT_ROLE_BINDINGS,
    PLURAL_PROJECT_ROLES,
    PLURAL_PROJECTS,
    TENANT_GROUP,
)
from ..exceptions import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    StoreError,
    TransientStoreError,
    ValidationError,
)
from ..models import Cluster, Node, Project, ScopedRole, ScopedRoleBinding
from ..utils.context import check_deadline, remaining_time
from ..utils.labels import parse_selector
from ..utils.rate_limit import is_rate_limit_error, rate_limit_k8s

logger = logging.getLogger(__name__)

# kind -> (group, plural)
RESOURCES: dict[str, tuple[str, str]] = {
    KIND_PROJECT: (TENANT_GROUP, PLURAL_PROJECTS),
    KIND_CLUSTER: (CORE_GROUP, PLURAL_CLUSTERS),
    KIND_NODE: (CORE_GROUP, PLURAL_NODES),
    KIND_PROJECT_ROLE: (IAM_GROUP, PLURAL_PROJECT_ROLES),
    KIND_PROJECT_ROLE_BINDING: (IAM_GROUP, PLURAL_PROJECT_ROLE_BINDINGS),
    KIND_GLOBAL_ROLE_BINDING: (IAM_GROUP, PLURAL_GLOBAL_ROLE_BINDINGS),
}


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


def translate_api_exception(e: ApiException, operation: str, kind: str, name: str | None) -> StoreError | ValidationError:
    """Map an API error onto the store error kinds.

    Args:
        e: Exception raised by the Kubernetes client
        operation: Store operation ("get", "list", "create", ...)
        kind: Resource kind
        name: Object name, if the call addressed a single object

    Returns:
        The exception to raise in its place
    """
    target = name or "*"
    if e.status == 404:
        return NotFoundError(kind, target)
    if e.status == 409:
        if operation == "create":
            return AlreadyExistsError(kind, target)
        return ConflictError(kind, target, message=f"{kind} {target!r}: {e.reason}")
    if e.status in (400, 422):
        return ValidationError(f"{operation} {kind} {target!r} rejected: {e.reason}")
    if is_rate_limit_error(e.status, str(e)):
        metrics.rate_limit_hits_total.labels(api_type="k8s").inc()
    return TransientStoreError(f"{operation} {kind} {target!r} failed: {e.status} {e.reason}", kind=kind, name=name)


class KubernetesStore:
    """Store implementation over cluster-scoped custom resources."""

    def __init__(self, api: client.CustomObjectsApi | None = None) -> None:
        if api is None:
            load_kube_config()
            api = client.CustomObjectsApi()
        self.api = api

    def _call(self, operation: str, kind: str, name: str | None, method: Any, /, **kwargs: Any) -> Any:
        check_deadline(f"{operation} {kind}")
        timeout = remaining_time()
        if timeout is not None:
            kwargs["_request_timeout"] = timeout

        start_time = time.time()
        op_label = f"{operation}_{kind.lower()}"
        try:
            result = rate_limit_k8s(method)(**kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=op_label, result="success").inc()
            return result
        except ApiException as e:
            result = "not_found" if e.status == 404 else "error"
            metrics.api_call_total.labels(api_type="k8s", operation=op_label, result=result).inc()
            raise translate_api_exception(e, operation, kind, name) from e
        except HTTPError as e:
            metrics.api_call_total.labels(api_type="k8s", operation=op_label, result="error").inc()
            raise TransientStoreError(f"{operation} {kind} failed: {e}", kind=kind, name=name) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=op_label).observe(duration)

    def _get(self, kind: str, name: str) -> dict[str, Any]:
        group, plural = RESOURCES[kind]
        return self._call(
            "get", kind, name, self.api.get_cluster_custom_object,
            group=group, version=API_VERSION, plural=plural, name=name,
        )

    def _list(self, kind: str, label_selector: str) -> list[dict[str, Any]]:
        # Reject malformed selectors before they reach the API server
        parse_selector(label_selector)
        group, plural = RESOURCES[kind]
        result = self._call(
            "list", kind, None, self.api.list_cluster_custom_object,
            group=group, version=API_VERSION, plural=plural, label_selector=label_selector,
        )
        items = result.get("items", [])
        return sorted(items, key=lambda obj: obj.get("metadata", {}).get("name", ""))

    def _create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        group, plural = RESOURCES[kind]
        return self._call(
            "create", kind, body["metadata"]["name"], self.api.create_cluster_custom_object,
            group=group, version=API_VERSION, plural=plural, body=body, field_manager=FIELD_MANAGER,
        )

    def _replace(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        group, plural = RESOURCES[kind]
        name = body["metadata"]["name"]
        return self._call(
            "update", kind, name, self.api.replace_cluster_custom_object,
            group=group, version=API_VERSION, plural=plural, name=name, body=body,
            field_manager=FIELD_MANAGER,
        )

    def _delete(self, kind: str, name: str) -> None:
        group, plural = RESOURCES[kind]
        self._call(
            "delete", kind, name, self.api.delete_cluster_custom_object,
            group=group, version=API_VERSION, plural=plural, name=name,
        )

    # --- ResourceStore ---

    def get_project(self, name: str) -> Project:
        return Project.from_dict(self._get(KIND_PROJECT, name))

    def update_project(self, project: Project) -> Project:
        return Project.from_dict(self._replace(KIND_PROJECT, project.to_dict()))

    def update_project_status(self, project: Project) -> Project:
        group, plural = RESOURCES[KIND_PROJECT]
        updated = self._call(
            "update_status", KIND_PROJECT, project.name, self.api.replace_cluster_custom_object_status,
            group=group, version=API_VERSION, plural=plural, name=project.name, body=project.to_dict(),
            field_manager=FIELD_MANAGER,
        )
        return Project.from_dict(updated)

    def list_clusters(self, label_selector: str) -> list[Cluster]:
        return [Cluster.from_dict(obj) for obj in self._list(KIND_CLUSTER, label_selector)]

    def get_node(self, name: str) -> Node:
        return Node.from_dict(self._get(KIND_NODE, name))

    def list_nodes(self, label_selector: str) -> list[Node]:
        return [Node.from_dict(obj) for obj in self._list(KIND_NODE, label_selector)]

    def update_node(self, node: Node) -> Node:
        return Node.from_dict(self._replace(KIND_NODE, node.to_dict()))

    def get_scoped_role(self, name: str) -> ScopedRole:
        return ScopedRole.from_dict(self._get(KIND_PROJECT_ROLE, name))

    def list_scoped_roles(self, label_selector: str) -> list[ScopedRole]:
        return [ScopedRole.from_dict(obj) for obj in self._list(KIND_PROJECT_ROLE, label_selector)]

    def create_scoped_role(self, role: ScopedRole) -> ScopedRole:
        return ScopedRole.from_dict(self._create(KIND_PROJECT_ROLE, role.to_dict()))

    def update_scoped_role(self, role: ScopedRole) -> ScopedRole:
        return ScopedRole.from_dict(self._replace(KIND_PROJECT_ROLE, role.to_dict()))

    def delete_scoped_role(self, name: str) -> None:
        self._delete(KIND_PROJECT_ROLE, name)

    def list_scoped_role_bindings(self, label_selector: str) -> list[ScopedRoleBinding]:
        return [
            ScopedRoleBinding.from_dict(obj)
            for obj in self._list(KIND_PROJECT_ROLE_BINDING, label_selector)
        ]

    def create_scoped_role_binding(self, binding: ScopedRoleBinding) -> ScopedRoleBinding:
        return ScopedRoleBinding.from_dict(self._create(KIND_PROJECT_ROLE_BINDING, binding.to_dict()))

    def delete_scoped_role_binding(self, name: str) -> None:
        self._delete(KIND_PROJECT_ROLE_BINDING, name)

    def delete_global_role_binding(self, name: str) -> None:
        self._delete(KIND_GLOBAL_ROLE_BINDING, name)
