"""Map Cluster and Node changes onto the Project keys that must be reconciled."""

from __future__ import annotations

from .models import Cluster, Node


def projects_for_cluster(cluster: Cluster) -> set[str]:
    """A changed cluster affects the project named by its project label.

    Clusters without a project label map to no project.
    """
    return {cluster.project} if cluster.project else set()


def projects_for_node(node: Node, deleted: bool = False) -> set[str]:
    """Only deletions of nodes that belong to a project are mapped.

    A node counts as deleted when it carries a deletion timestamp or when the
    watch reported it gone (``deleted``). Joins are not mapped here; they
    surface through the owning cluster.
    """
    if not deleted and node.metadata.deletion_timestamp is None:
        return set()
    if not node.project:
        return set()
    return {node.project}


class ClusterProjectIndex:
    """Remembers the project label last seen on each cluster.

    A cluster moved from one project to another must reconcile both: the new
    owner gains its nodes and the old owner has to drop them. Watch events
    only carry the new object, so the previous owner comes from this index.
    kopf replays every existing cluster when the watch starts, which fills
    the index after a restart.
    """

    def __init__(self) -> None:
        self._owners: dict[str, str] = {}

    def previous(self, name: str) -> str | None:
        return self._owners.get(name)

    def observe(self, cluster: Cluster, deleted: bool = False) -> set[str]:
        """Record ``cluster`` and return every project its change affects."""
        keys = projects_for_cluster(cluster)
        previous = self._owners.pop(cluster.name, None)
        if previous:
            keys.add(previous)
        if cluster.project and not deleted:
            self._owners[cluster.name] = cluster.project
        return keys
