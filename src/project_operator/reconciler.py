"""Reconciliation engine for Project resources.

A pass reads the Project and everything derived from it from the store and
issues a write only where the stored state has drifted from the desired
state. Running a pass twice without external changes performs no writes on
the second run.

The finalizer state machine decides which phases run::

    Active-NoFinalizer --add finalizer--> Active-Finalized
        (the pass stops and asks for a requeue; the next pass re-fetches)
    Active-Finalized --scoped roles, manager binding, membership,
        node labels, status--> Active-Finalized
    Terminating-Cleaning --delete roles and bindings, drop finalizer-->
        Terminating-Done (the store purges the object)
"""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from . import metrics
from .catalog import DEFAULT_CATALOG, RoleTemplateCatalog, scoped_name
from .constants import (
    ADMIN_TEMPLATE,
    ANNOTATION_INTERNAL,
    KIND_CLUSTER,
    KIND_GLOBAL_ROLE_BINDING,
    KIND_NODE,
    KIND_PROJECT,
    KIND_PROJECT_ROLE,
    KIND_PROJECT_ROLE_BINDING,
    LABEL_PROJECT,
    LABEL_PROJECT_ROLE_BINDING_MANAGER,
    FINALIZER,
    PHASE_CLEANUP,
    PHASE_FINALIZER,
    PHASE_MANAGER_BINDING,
    PHASE_MEMBERSHIP,
    PHASE_NODE_LABELS,
    PHASE_SCOPED_ROLES,
    PHASE_STATUS,
)
from .exceptions import AlreadyExistsError, NotFoundError, ValidationError
from .logging import log_resource_event
from .models import (
    ObjectMeta,
    Project,
    ProjectCount,
    RoleRef,
    ScopedRoleBinding,
    Subject,
    role_matches,
)
from .store.base import ResourceStore, delete_ignore_not_found
from .tracing import trace_span
from .utils.errors import sanitize_exception
from .utils.labels import format_selector


class ProjectState(enum.Enum):
    """Finalizer lifecycle states of a Project."""

    ACTIVE_NO_FINALIZER = "Active-NoFinalizer"
    ACTIVE_FINALIZED = "Active-Finalized"
    TERMINATING_CLEANING = "Terminating-Cleaning"
    TERMINATING_DONE = "Terminating-Done"


def project_state(project: Project, finalizer: str = FINALIZER) -> ProjectState:
    """Classify a project by its deletion timestamp and finalizer token."""
    has_token = project.has_finalizer(finalizer)
    if not project.is_deleting:
        return ProjectState.ACTIVE_FINALIZED if has_token else ProjectState.ACTIVE_NO_FINALIZER
    return ProjectState.TERMINATING_CLEANING if has_token else ProjectState.TERMINATING_DONE


@dataclass(frozen=True)
class CorrectiveWrite:
    phase: str
    kind: str
    operation: str
    name: str


@dataclass
class ReconcileResult:
    """Outcome of one reconcile pass."""

    project: str
    state: ProjectState | None = None
    requeue: bool = False
    writes: list[CorrectiveWrite] = field(default_factory=list)
    rotated_managers: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.state is not None


class ProjectReconciler:
    """Converges a Project's derived state toward its desired state.

    Args:
        store: Resource store to read from and write to
        catalog: Role templates provisioned for every project
        finalizer: Finalizer token owned by this controller
    """

    def __init__(
        self,
        store: ResourceStore,
        catalog: RoleTemplateCatalog = DEFAULT_CATALOG,
        finalizer: str = FINALIZER,
    ):
        if ADMIN_TEMPLATE not in catalog:
            raise ValidationError(f"role template catalog must define {ADMIN_TEMPLATE!r}")
        self.store = store
        self.catalog = catalog
        self.finalizer = finalizer
        self.logger = logging.getLogger(__name__)

    # --- entry point ---

    def reconcile(self, name: str) -> ReconcileResult:
        """Run one pass for the project ``name``.

        Returns:
            The pass outcome; ``requeue`` is set when the pass stopped after
            adding the finalizer and a fresh pass must follow

        Raises:
            ProjectOperatorError: Any error other than the tolerated
                NotFound cases aborts the remaining phases
        """
        result = ReconcileResult(project=name)
        with trace_span("reconcile_project", kind=KIND_PROJECT, attributes={"project.name": name}):
            try:
                project = self.store.get_project(name)
            except NotFoundError:
                self._log(name, "Project not found, nothing to reconcile", reason="NotFound")
                return result

            result.state = project_state(project, self.finalizer)

            if result.state is ProjectState.ACTIVE_NO_FINALIZER:
                with self._phase(PHASE_FINALIZER, name):
                    self.add_finalizer(project, result)
                # The next pass starts from a fresh read
                result.requeue = True
                return result

            if result.state is ProjectState.TERMINATING_CLEANING:
                self.finalize(project, result)
                return result

            if result.state is ProjectState.TERMINATING_DONE:
                return result

            with self._phase(PHASE_SCOPED_ROLES, name):
                self.ensure_scoped_roles(project, result)
            with self._phase(PHASE_MANAGER_BINDING, name):
                self.rotate_manager_binding(project, result)
            with self._phase(PHASE_MEMBERSHIP, name):
                project = self.sync_membership(project, result)
            with self._phase(PHASE_NODE_LABELS, name):
                self.sync_node_labels(project, result)
            with self._phase(PHASE_STATUS, name):
                self.sync_status(project, result)

        return result

    # --- 4.1 finalizer lifecycle ---

    def add_finalizer(self, project: Project, result: ReconcileResult | None = None) -> Project:
        """Persist the finalizer token on an active project."""
        desired = project.deepcopy()
        desired.metadata.finalizers.append(self.finalizer)
        updated = self.store.update_project(desired)
        self._record(result, PHASE_FINALIZER, KIND_PROJECT, "update", project.name)
        return updated

    def finalize(self, project: Project, result: ReconcileResult | None = None) -> None:
        """Remove everything derived from a terminating project, then release it."""
        with self._phase(PHASE_CLEANUP, project.name):
            self.delete_scoped_objects(project, result)
        with self._phase(PHASE_FINALIZER, project.name):
            desired = project.deepcopy()
            desired.metadata.finalizers = [f for f in desired.metadata.finalizers if f != self.finalizer]
            self.store.update_project(desired)
            self._record(result, PHASE_FINALIZER, KIND_PROJECT, "update", project.name)
        self._log(project.name, "Cleanup completed, finalizer removed", reason="Finalized")

    def delete_scoped_objects(self, project: Project, result: ReconcileResult | None = None) -> None:
        """Delete the project's scoped roles, bindings and the manager's view binding.

        Objects that are already gone are skipped.
        """
        selector = format_selector({LABEL_PROJECT: project.name})

        for role in self.store.list_scoped_roles(selector):
            if delete_ignore_not_found(self.store.delete_scoped_role, role.name):
                self._record(result, PHASE_CLEANUP, KIND_PROJECT_ROLE, "delete", role.name)

        for binding in self.store.list_scoped_role_bindings(selector):
            if delete_ignore_not_found(self.store.delete_scoped_role_binding, binding.name):
                self._record(result, PHASE_CLEANUP, KIND_PROJECT_ROLE_BINDING, "delete", binding.name)

        if project.manager:
            view_binding = scoped_name(project.name, project.manager)
            if delete_ignore_not_found(self.store.delete_global_role_binding, view_binding):
                self._record(result, PHASE_CLEANUP, KIND_GLOBAL_ROLE_BINDING, "delete", view_binding)

    # --- 4.2 scoped role provisioning ---

    def ensure_scoped_roles(self, project: Project, result: ReconcileResult | None = None) -> None:
        """Create or replace one scoped role per catalog template. Never deletes."""
        for template in self.catalog:
            desired = template.render(project.name)
            try:
                existing = self.store.get_scoped_role(desired.name)
            except NotFoundError:
                self.store.create_scoped_role(desired)
                self._record(result, PHASE_SCOPED_ROLES, KIND_PROJECT_ROLE, "create", desired.name)
                continue

            if role_matches(desired, existing):
                continue

            desired.metadata.resource_version = existing.metadata.resource_version
            self.store.update_scoped_role(desired)
            self._record(result, PHASE_SCOPED_ROLES, KIND_PROJECT_ROLE, "update", desired.name)

    # --- 4.3 manager binding rotation ---

    def desired_manager_binding(self, project: Project) -> ScopedRoleBinding:
        """Binding of the current manager to the project's admin role."""
        return ScopedRoleBinding(
            metadata=ObjectMeta(
                name=scoped_name(project.name, project.manager),
                labels={
                    LABEL_PROJECT: project.name,
                    LABEL_PROJECT_ROLE_BINDING_MANAGER: "true",
                },
                annotations={ANNOTATION_INTERNAL: "true"},
            ),
            role_ref=RoleRef(name=scoped_name(project.name, ADMIN_TEMPLATE)),
            subjects=[Subject(name=project.manager)],
        )

    def rotate_manager_binding(self, project: Project, result: ReconcileResult | None = None) -> None:
        """Make the current manager the subject of the project's manager binding.

        Every binding marked as the manager binding whose subject is not the
        current manager is deleted together with that user's global view
        binding, and the desired binding is created. Normally at most one
        such binding exists; several are each handled the same way.
        """
        if not project.manager:
            self._log(
                project.name,
                "Project has no manager, skipping manager binding",
                reason="NoManager",
                level=logging.WARNING,
            )
            return

        desired = self.desired_manager_binding(project)
        selector = format_selector({
            LABEL_PROJECT: project.name,
            LABEL_PROJECT_ROLE_BINDING_MANAGER: "true",
        })
        bindings = self.store.list_scoped_role_bindings(selector)

        if not bindings:
            self.store.create_scoped_role_binding(desired)
            self._record(result, PHASE_MANAGER_BINDING, KIND_PROJECT_ROLE_BINDING, "create", desired.name)
            return

        for binding in bindings:
            old_manager = binding.first_subject
            if old_manager == project.manager:
                continue

            if delete_ignore_not_found(self.store.delete_scoped_role_binding, binding.name):
                self._record(result, PHASE_MANAGER_BINDING, KIND_PROJECT_ROLE_BINDING, "delete", binding.name)
            if old_manager:
                view_binding = scoped_name(project.name, old_manager)
                if delete_ignore_not_found(self.store.delete_global_role_binding, view_binding):
                    self._record(result, PHASE_MANAGER_BINDING, KIND_GLOBAL_ROLE_BINDING, "delete", view_binding)

            try:
                self.store.create_scoped_role_binding(desired)
                self._record(result, PHASE_MANAGER_BINDING, KIND_PROJECT_ROLE_BINDING, "create", desired.name)
            except AlreadyExistsError:
                # Recreated while handling an earlier stale binding
                pass

            if result is not None:
                result.rotated_managers.append(old_manager or "")
            self._log(
                project.name,
                f"Manager binding rotated from {old_manager or '<none>'} to {project.manager}",
                reason="ManagerRotated",
            )

    # --- 4.4 node membership ---

    def sync_membership(self, project: Project, result: ReconcileResult | None = None) -> Project:
        """Set the member nodes to the union of the nodes of the project's clusters.

        Returns:
            The project as persisted, so later phases see the new member list
        """
        clusters = self.store.list_clusters(format_selector({LABEL_PROJECT: project.name}))
        desired: set[str] = set()
        for cluster in clusters:
            desired |= cluster.node_ids()

        if desired == set(project.nodes):
            return project

        updated = project.deepcopy()
        updated.nodes = sorted(desired)
        persisted = self.store.update_project(updated)
        self._record(result, PHASE_MEMBERSHIP, KIND_PROJECT, "update", project.name)
        return persisted

    # --- 4.5 node labels and status ---

    def sync_node_labels(self, project: Project, result: ReconcileResult | None = None) -> None:
        """Label member nodes with the project and unlabel nodes that left it.

        The first failing node write aborts the phase.
        """
        members = set(project.nodes)
        labelled = self.store.list_nodes(format_selector({LABEL_PROJECT: project.name}))

        for node in labelled:
            if node.name in members:
                continue
            node.metadata.labels.pop(LABEL_PROJECT, None)
            self.store.update_node(node)
            self._record(result, PHASE_NODE_LABELS, KIND_NODE, "leave", node.name)

        for node_id in project.nodes:
            node = self.store.get_node(node_id)
            if node.project == project.name:
                continue
            node.metadata.labels[LABEL_PROJECT] = project.name
            self.store.update_node(node)
            self._record(result, PHASE_NODE_LABELS, KIND_NODE, "join", node.name)

    def sync_status(self, project: Project, result: ReconcileResult | None = None) -> Project:
        """Recount clusters and member nodes; persist only if the object changed."""
        clusters = self.store.list_clusters(format_selector({LABEL_PROJECT: project.name}))
        desired = project.deepcopy()
        desired.count = ProjectCount(cluster=len(clusters), node=len(project.nodes))

        if desired == project:
            return project

        persisted = self.store.update_project_status(desired)
        self._record(result, PHASE_STATUS, KIND_PROJECT, "update_status", project.name)
        return persisted

    # --- helpers ---

    @contextmanager
    def _phase(self, phase: str, project: str) -> Iterator[None]:
        with trace_span(f"phase_{phase}", kind=KIND_PROJECT, attributes={"project.name": project, "phase": phase}):
            try:
                yield
            except Exception as e:
                metrics.phase_failures_total.labels(phase=phase, error_type=type(e).__name__).inc()
                self._log(
                    project,
                    f"Phase {phase} failed: {sanitize_exception(e)}",
                    reason="PhaseFailed",
                    event="error",
                    level=logging.ERROR,
                    phase=phase,
                    error_type=type(e).__name__,
                )
                raise

    def _record(
        self,
        result: ReconcileResult | None,
        phase: str,
        kind: str,
        operation: str,
        name: str,
    ) -> None:
        metrics.drift_corrected_total.labels(phase=phase, resource_type=kind, operation=operation).inc()
        if result is not None:
            result.writes.append(CorrectiveWrite(phase=phase, kind=kind, operation=operation, name=name))
        self._log(
            result.project if result is not None else name,
            f"{operation} {kind} {name}",
            reason="DriftCorrected",
            level=logging.DEBUG,
            phase=phase,
        )

    def _log(
        self,
        project: str,
        message: str,
        reason: str = "Info",
        event: str = "info",
        level: int = logging.INFO,
        **kwargs: object,
    ) -> None:
        log_resource_event(
            self.logger,
            resource_kind=KIND_PROJECT,
            resource_name=project,
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )
