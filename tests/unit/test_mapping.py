"""Tests for mapping Cluster and Node changes to Project keys."""

from __future__ import annotations

from project_operator.constants import LABEL_PROJECT
from project_operator.mapping import ClusterProjectIndex, projects_for_cluster, projects_for_node
from project_operator.models import Cluster, Node


class TestProjectsForCluster:
    """Test cases for projects_for_cluster."""

    def test_labelled_cluster(self):
        cluster = Cluster.from_dict({"metadata": {"name": "c1", "labels": {LABEL_PROJECT: "demo"}}})

        assert projects_for_cluster(cluster) == {"demo"}

    def test_unlabelled_cluster(self):
        assert projects_for_cluster(Cluster.from_dict({"metadata": {"name": "c1"}})) == set()


class TestProjectsForNode:
    """Test cases for projects_for_node."""

    def test_deleting_node_with_project(self):
        node = Node.from_dict({
            "metadata": {
                "name": "n1",
                "labels": {LABEL_PROJECT: "demo"},
                "deletionTimestamp": "2024-01-01T00:00:00Z",
            },
        })

        assert projects_for_node(node) == {"demo"}

    def test_deleted_event(self):
        node = Node.from_dict({"metadata": {"name": "n1", "labels": {LABEL_PROJECT: "demo"}}})

        assert projects_for_node(node, deleted=True) == {"demo"}

    def test_live_node_not_mapped(self):
        node = Node.from_dict({"metadata": {"name": "n1", "labels": {LABEL_PROJECT: "demo"}}})

        assert projects_for_node(node) == set()

    def test_deleting_node_without_project(self):
        node = Node.from_dict({"metadata": {"name": "n1", "deletionTimestamp": "2024-01-01T00:00:00Z"}})

        assert projects_for_node(node) == set()


def cluster(name: str, project: str | None) -> Cluster:
    labels = {LABEL_PROJECT: project} if project else {}
    return Cluster.from_dict({"metadata": {"name": name, "labels": labels}})


class TestClusterProjectIndex:
    """Test cases for tracking the previous owner of each cluster."""

    def test_first_sight_maps_current_owner(self):
        index = ClusterProjectIndex()

        assert index.observe(cluster("c1", "a")) == {"a"}
        assert index.previous("c1") == "a"

    def test_reassignment_maps_both_owners(self):
        index = ClusterProjectIndex()
        index.observe(cluster("c1", "a"))

        assert index.observe(cluster("c1", "b")) == {"a", "b"}
        assert index.previous("c1") == "b"

    def test_unchanged_owner_maps_once(self):
        index = ClusterProjectIndex()
        index.observe(cluster("c1", "a"))

        assert index.observe(cluster("c1", "a")) == {"a"}

    def test_label_removed_maps_old_owner(self):
        index = ClusterProjectIndex()
        index.observe(cluster("c1", "a"))

        assert index.observe(cluster("c1", None)) == {"a"}
        assert index.previous("c1") is None

    def test_deleted_cluster_is_forgotten(self):
        index = ClusterProjectIndex()
        index.observe(cluster("c1", "a"))

        assert index.observe(cluster("c1", "a"), deleted=True) == {"a"}
        assert index.previous("c1") is None
