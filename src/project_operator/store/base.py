"""Resource store interface consumed by the reconciler."""

from __future__ import annotations

from typing import Callable, Protocol

from ..exceptions import NotFoundError
from ..models import Cluster, Node, Project, ScopedRole, ScopedRoleBinding


class ResourceStore(Protocol):
    """Protocol defining the store operations the reconciler relies on.

    Reads raise NotFoundError for missing objects. Lists take an
    equality-based label selector and return objects ordered by name.
    Creates raise AlreadyExistsError, updates raise ConflictError or
    NotFoundError, deletes raise NotFoundError.
    """

    def get_project(self, name: str) -> Project:
        """Get a project by name."""
        ...

    def update_project(self, project: Project) -> Project:
        """Replace a project's metadata and spec."""
        ...

    def update_project_status(self, project: Project) -> Project:
        """Replace a project's status."""
        ...

    def list_clusters(self, label_selector: str) -> list[Cluster]:
        """List clusters matching the selector."""
        ...

    def get_node(self, name: str) -> Node:
        """Get a node by name."""
        ...

    def list_nodes(self, label_selector: str) -> list[Node]:
        """List nodes matching the selector."""
        ...

    def update_node(self, node: Node) -> Node:
        """Replace a node."""
        ...

    def get_scoped_role(self, name: str) -> ScopedRole:
        """Get a project role by name."""
        ...

    def list_scoped_roles(self, label_selector: str) -> list[ScopedRole]:
        """List project roles matching the selector."""
        ...

    def create_scoped_role(self, role: ScopedRole) -> ScopedRole:
        """Create a project role."""
        ...

    def update_scoped_role(self, role: ScopedRole) -> ScopedRole:
        """Replace a project role."""
        ...

    def delete_scoped_role(self, name: str) -> None:
        """Delete a project role."""
        ...

    def list_scoped_role_bindings(self, label_selector: str) -> list[ScopedRoleBinding]:
        """List project role bindings matching the selector."""
        ...

    def create_scoped_role_binding(self, binding: ScopedRoleBinding) -> ScopedRoleBinding:
        """Create a project role binding."""
        ...

    def delete_scoped_role_binding(self, name: str) -> None:
        """Delete a project role binding."""
        ...

    def delete_global_role_binding(self, name: str) -> None:
        """Delete a global (platform scoped) role binding."""
        ...


def delete_ignore_not_found(delete: Callable[[str], None], name: str) -> bool:
    """Call ``delete(name)``, treating an already-missing object as deleted.

    Returns:
        True if the object was deleted, False if it did not exist
    """
    try:
        delete(name)
    except NotFoundError:
        return False
    return True
