"""Models for Project, Cluster, Node and the scoped access-control objects.

Every model converts to and from the custom object dictionaries returned by
the Kubernetes API. Models that the operator only partially owns (Project,
Cluster, Node) keep the original dictionary in ``raw`` so that a full update
does not drop fields the operator does not know about.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping

from .constants import (
    IAM_GROUP,
    IAM_GROUP_VERSION,
    KIND_PROJECT_ROLE,
    KIND_PROJECT_ROLE_BINDING,
    KIND_USER,
    LABEL_PROJECT,
    RBAC_GROUP,
)


@dataclass
class ObjectMeta:
    """Subset of Kubernetes object metadata used by the reconciler."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: str | None = None
    resource_version: str | None = None
    uid: str | None = None

    @classmethod
    def from_dict(cls, meta: Mapping[str, Any]) -> ObjectMeta:
        return cls(
            name=meta.get("name", ""),
            labels=dict(meta.get("labels") or {}),
            annotations=dict(meta.get("annotations") or {}),
            finalizers=list(meta.get("finalizers") or []),
            deletion_timestamp=meta.get("deletionTimestamp"),
            resource_version=meta.get("resourceVersion"),
            uid=meta.get("uid"),
        )

    def to_dict(self) -> dict[str, Any]:
        meta: dict[str, Any] = {"name": self.name}
        if self.labels:
            meta["labels"] = dict(self.labels)
        if self.annotations:
            meta["annotations"] = dict(self.annotations)
        if self.finalizers:
            meta["finalizers"] = list(self.finalizers)
        if self.deletion_timestamp is not None:
            meta["deletionTimestamp"] = self.deletion_timestamp
        if self.resource_version is not None:
            meta["resourceVersion"] = self.resource_version
        if self.uid is not None:
            meta["uid"] = self.uid
        return meta


def _merge_meta(raw_meta: Mapping[str, Any], meta: ObjectMeta) -> dict[str, Any]:
    """Overlay the owned metadata fields on top of the original metadata."""
    merged = copy.deepcopy(dict(raw_meta))
    for key in ("labels", "annotations", "finalizers", "deletionTimestamp", "resourceVersion", "uid"):
        merged.pop(key, None)
    merged.update(meta.to_dict())
    return merged


@dataclass
class ProjectCount:
    """Status counters of a project."""

    cluster: int = 0
    node: int = 0


@dataclass
class Project:
    """Tenant boundary grouping clusters, nodes and scoped roles."""

    metadata: ObjectMeta
    manager: str = ""
    nodes: list[str] = field(default_factory=list)
    count: ProjectCount = field(default_factory=ProjectCount)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def is_deleting(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    def has_finalizer(self, token: str) -> bool:
        return token in self.metadata.finalizers

    def deepcopy(self) -> Project:
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> Project:
        spec = obj.get("spec") or {}
        count = (obj.get("status") or {}).get("count") or {}
        return cls(
            metadata=ObjectMeta.from_dict(obj.get("metadata") or {}),
            manager=spec.get("manager", ""),
            nodes=list(spec.get("nodes") or []),
            count=ProjectCount(
                cluster=int(count.get("cluster", 0)),
                node=int(count.get("node", 0)),
            ),
            raw=copy.deepcopy(dict(obj)),
        )

    def to_dict(self) -> dict[str, Any]:
        obj = copy.deepcopy(self.raw)
        obj["metadata"] = _merge_meta(self.raw.get("metadata") or {}, self.metadata)
        spec = obj.setdefault("spec", {})
        spec["manager"] = self.manager
        spec["nodes"] = list(self.nodes)
        status = obj.setdefault("status", {})
        status["count"] = {"cluster": self.count.cluster, "node": self.count.node}
        return obj


@dataclass
class Cluster:
    """Cluster owned by at most one project through its project label."""

    metadata: ObjectMeta
    masters: list[str] = field(default_factory=list)
    workers: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def project(self) -> str:
        return self.metadata.labels.get(LABEL_PROJECT, "")

    def node_ids(self) -> set[str]:
        """All node identifiers the cluster owns, masters and workers alike."""
        return set(self.masters) | set(self.workers)

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> Cluster:
        return cls(
            metadata=ObjectMeta.from_dict(obj.get("metadata") or {}),
            masters=[n["id"] for n in obj.get("masters") or [] if n.get("id")],
            workers=[n["id"] for n in obj.get("workers") or [] if n.get("id")],
            raw=copy.deepcopy(dict(obj)),
        )


@dataclass
class Node:
    """Host machine; the operator only ever touches its project label."""

    metadata: ObjectMeta
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def project(self) -> str:
        return self.metadata.labels.get(LABEL_PROJECT, "")

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> Node:
        return cls(
            metadata=ObjectMeta.from_dict(obj.get("metadata") or {}),
            raw=copy.deepcopy(dict(obj)),
        )

    def to_dict(self) -> dict[str, Any]:
        obj = copy.deepcopy(self.raw)
        obj["metadata"] = _merge_meta(self.raw.get("metadata") or {}, self.metadata)
        return obj


@dataclass(frozen=True)
class PolicyRule:
    """Access rule; all fields are tuples so rules are hashable and immutable."""

    verbs: tuple[str, ...] = ()
    api_groups: tuple[str, ...] = ()
    resources: tuple[str, ...] = ()
    resource_names: tuple[str, ...] = ()
    non_resource_urls: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, rule: Mapping[str, Any]) -> PolicyRule:
        return cls(
            verbs=tuple(rule.get("verbs") or ()),
            api_groups=tuple(rule.get("apiGroups") or ()),
            resources=tuple(rule.get("resources") or ()),
            resource_names=tuple(rule.get("resourceNames") or ()),
            non_resource_urls=tuple(rule.get("nonResourceURLs") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        rule: dict[str, Any] = {"verbs": list(self.verbs)}
        if self.api_groups:
            rule["apiGroups"] = list(self.api_groups)
        if self.resources:
            rule["resources"] = list(self.resources)
        if self.resource_names:
            rule["resourceNames"] = list(self.resource_names)
        if self.non_resource_urls:
            rule["nonResourceURLs"] = list(self.non_resource_urls)
        return rule


@dataclass
class ScopedRole:
    """Per-project role (ProjectRole) named ``{project}-{template}``."""

    metadata: ObjectMeta
    rules: list[PolicyRule] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> ScopedRole:
        return cls(
            metadata=ObjectMeta.from_dict(obj.get("metadata") or {}),
            rules=[PolicyRule.from_dict(r) for r in obj.get("rules") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": IAM_GROUP_VERSION,
            "kind": KIND_PROJECT_ROLE,
            "metadata": self.metadata.to_dict(),
            "rules": [r.to_dict() for r in self.rules],
        }


@dataclass(frozen=True)
class RoleRef:
    name: str
    kind: str = KIND_PROJECT_ROLE
    api_group: str = IAM_GROUP


@dataclass(frozen=True)
class Subject:
    name: str
    kind: str = KIND_USER
    api_group: str = RBAC_GROUP


@dataclass
class ScopedRoleBinding:
    """Binding of subjects to a scoped role (ProjectRoleBinding)."""

    metadata: ObjectMeta
    role_ref: RoleRef
    subjects: list[Subject] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def first_subject(self) -> str | None:
        return self.subjects[0].name if self.subjects else None

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> ScopedRoleBinding:
        ref = obj.get("roleRef") or {}
        return cls(
            metadata=ObjectMeta.from_dict(obj.get("metadata") or {}),
            role_ref=RoleRef(
                name=ref.get("name", ""),
                kind=ref.get("kind", KIND_PROJECT_ROLE),
                api_group=ref.get("apiGroup", IAM_GROUP),
            ),
            subjects=[
                Subject(
                    name=s.get("name", ""),
                    kind=s.get("kind", KIND_USER),
                    api_group=s.get("apiGroup", RBAC_GROUP),
                )
                for s in obj.get("subjects") or []
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": IAM_GROUP_VERSION,
            "kind": KIND_PROJECT_ROLE_BINDING,
            "metadata": self.metadata.to_dict(),
            "roleRef": {
                "apiGroup": self.role_ref.api_group,
                "kind": self.role_ref.kind,
                "name": self.role_ref.name,
            },
            "subjects": [
                {"apiGroup": s.api_group, "kind": s.kind, "name": s.name}
                for s in self.subjects
            ],
        }


def mappings_equal(a: Mapping[str, str] | None, b: Mapping[str, str] | None) -> bool:
    """Compare label or annotation maps; a missing map equals an empty one."""
    return dict(a or {}) == dict(b or {})


def rules_equal(a: list[PolicyRule] | tuple[PolicyRule, ...], b: list[PolicyRule] | tuple[PolicyRule, ...]) -> bool:
    """Compare rule lists in order. Element order inside a rule is significant."""
    return tuple(a) == tuple(b)


def role_matches(desired: ScopedRole, existing: ScopedRole) -> bool:
    """Return True when ``existing`` needs no update to match ``desired``."""
    return (
        mappings_equal(desired.metadata.labels, existing.metadata.labels)
        and mappings_equal(desired.metadata.annotations, existing.metadata.annotations)
        and rules_equal(desired.rules, existing.rules)
    )
