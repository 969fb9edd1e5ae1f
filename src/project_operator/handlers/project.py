"""Handlers for Project resources and the Cluster/Node watches feeding them."""

from __future__ import annotations

import time
from typing import Any

import kopf

from ..config import OperatorConfig
from ..constants import (
    CORE_GROUP_VERSION,
    KIND_CLUSTER,
    KIND_NODE,
    KIND_PROJECT,
    PHASE_FINALIZER,
    TENANT_GROUP_VERSION,
)
from ..controller import ProjectController
from ..exceptions import ProjectOperatorError
from ..mapping import ClusterProjectIndex, projects_for_node
from ..models import Cluster, Node
from ..reconciler import ProjectState, ReconcileResult
from ..utils.events import emit_cleanup_completed, emit_finalizer_added, emit_manager_rotated
from .base import BaseHandler

_config = OperatorConfig.from_env()


class ProjectHandler(BaseHandler):
    """Routes watch events to the project controller."""

    def __init__(self, max_retry_delay: float = 60.0, mapped_attempts: int = 3):
        super().__init__(KIND_PROJECT, max_retry_delay=max_retry_delay)
        self.controller: ProjectController | None = None
        self.mapped_attempts = mapped_attempts
        self.clusters = ClusterProjectIndex()

    def _require_controller(self) -> ProjectController:
        if self.controller is None:
            raise kopf.TemporaryError("project controller is not initialized yet", delay=1)
        return self.controller

    def reconcile(self, meta: dict[str, Any], body: dict[str, Any] | None = None, retry: int = 0) -> ReconcileResult:
        """Reconcile the project named in ``meta``.

        Raises:
            kopf.TemporaryError: On retryable failures, with exponential delay
            kopf.PermanentError: On validation failures
        """
        controller = self._require_controller()
        name = meta["name"]
        try:
            result = self.reconcile_with_metrics(meta, lambda: controller.process(name), body=body)
        except ProjectOperatorError as e:
            raise self.to_kopf_error(e, retry) from e

        if body is not None:
            self.emit_outcome(body, result)
        return result

    def emit_outcome(self, body: dict[str, Any], result: ReconcileResult) -> None:
        """Post events for the lifecycle transitions of a finished pass."""
        if result.state is ProjectState.TERMINATING_CLEANING:
            emit_cleanup_completed(body)
            return
        if any(w.phase == PHASE_FINALIZER for w in result.writes):
            emit_finalizer_added(body)
        manager = (body.get("spec") or {}).get("manager", "")
        for old in result.rotated_managers:
            emit_manager_rotated(body, old or "<none>", manager)

    def reconcile_mapped(self, keys: set[str], source_kind: str, source_name: str) -> None:
        """Reconcile every project a Cluster or Node event maps to.

        kopf does not retry ``on.event`` handlers, so retryable failures are
        requeued here with exponential backoff, up to ``mapped_attempts``
        passes per project. A project that still fails is logged and left to
        the periodic resync.
        """
        for key in sorted(keys):
            self._reconcile_with_backoff(key, source_kind, source_name)

    def _reconcile_with_backoff(self, key: str, source_kind: str, source_name: str) -> None:
        meta = {"name": key}
        error: Exception | None = None
        for attempt in range(self.mapped_attempts):
            try:
                self.reconcile(meta, retry=attempt)
                return
            except kopf.PermanentError as e:
                error = e
                break
            except kopf.TemporaryError as e:
                error = e
                if attempt + 1 < self.mapped_attempts:
                    time.sleep(e.delay or 0)
        self.log_warning(
            meta,
            f"Reconcile triggered by {source_kind} {source_name} failed: {error}",
            reason="MappedReconcileFailed",
            source_kind=source_kind,
            source_name=source_name,
        )


# Global handler instance
_handler = ProjectHandler(max_retry_delay=_config.max_retry_delay_seconds)


def set_controller(controller: ProjectController | None) -> None:
    _handler.controller = controller


def get_controller() -> ProjectController | None:
    return _handler.controller


@kopf.on.create(TENANT_GROUP_VERSION, KIND_PROJECT)
@kopf.on.update(TENANT_GROUP_VERSION, KIND_PROJECT)
@kopf.on.resume(TENANT_GROUP_VERSION, KIND_PROJECT)
def handle_project(
    body: dict[str, Any],
    meta: dict[str, Any],
    retry: int = 0,
    **kwargs: Any,
) -> None:
    """Handle Project creation and changes."""
    _handler.reconcile(meta, body=body, retry=retry)


# Optional: the controller owns its own finalizer, kopf must not add one
@kopf.on.delete(TENANT_GROUP_VERSION, KIND_PROJECT, optional=True)
def handle_project_delete(
    body: dict[str, Any],
    meta: dict[str, Any],
    retry: int = 0,
    **kwargs: Any,
) -> None:
    """Handle Project deletion by running the cleanup pass."""
    _handler.log_info(meta, "Project is being deleted", event="deletion", reason="Deletion")
    _handler.reconcile(meta, body=body, retry=retry)


@kopf.timer(TENANT_GROUP_VERSION, KIND_PROJECT, interval=_config.resync_interval_seconds)
def resync_project(
    body: dict[str, Any],
    meta: dict[str, Any],
    retry: int = 0,
    **kwargs: Any,
) -> None:
    """Periodically re-run the reconcile so missed Cluster/Node events converge."""
    _handler.reconcile(meta, body=body, retry=retry)


@kopf.on.event(CORE_GROUP_VERSION, KIND_CLUSTER)
def handle_cluster_event(body: dict[str, Any], type: str | None = None, **kwargs: Any) -> None:
    """Reconcile the project that owns a changed cluster, and its previous owner."""
    cluster = Cluster.from_dict(body)
    keys = _handler.clusters.observe(cluster, deleted=(type == "DELETED"))
    _handler.reconcile_mapped(keys, KIND_CLUSTER, cluster.name)


@kopf.on.event(CORE_GROUP_VERSION, KIND_NODE)
def handle_node_event(body: dict[str, Any], type: str | None = None, **kwargs: Any) -> None:
    """Reconcile the project of a node that is being deleted."""
    node = Node.from_dict(body)
    keys = projects_for_node(node, deleted=(type == "DELETED"))
    _handler.reconcile_mapped(keys, KIND_NODE, node.metadata.name)
