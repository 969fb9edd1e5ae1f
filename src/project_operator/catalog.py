"""Role template catalog used to provision per-project scoped roles."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from .constants import ADMIN_TEMPLATE, ANNOTATION_AGGREGATION_ROLES, ANNOTATION_INTERNAL, LABEL_PROJECT
from .exceptions import ValidationError
from .models import ObjectMeta, PolicyRule, ScopedRole


def scoped_name(project: str, name: str) -> str:
    """Name of a per-project object: ``{project}-{name}``."""
    return f"{project}-{name}"


@dataclass(frozen=True)
class RoleTemplate:
    """Immutable definition of a project role tier."""

    name: str
    rules: tuple[PolicyRule, ...] = ()
    labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    annotations: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("role template name is required")
        if not self.rules:
            raise ValidationError(f"role template {self.name!r} has no rules")
        # Freeze whatever the caller passed in
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))
        object.__setattr__(self, "annotations", MappingProxyType(dict(self.annotations)))

    def render(self, project: str) -> ScopedRole:
        """Build the desired scoped role of this template for ``project``."""
        labels = dict(self.labels)
        labels[LABEL_PROJECT] = project
        return ScopedRole(
            metadata=ObjectMeta(
                name=scoped_name(project, self.name),
                labels=labels,
                annotations=dict(self.annotations),
            ),
            rules=list(self.rules),
        )


class RoleTemplateCatalog:
    """Ordered, read-only collection of role templates keyed by name."""

    def __init__(self, templates: list[RoleTemplate] | tuple[RoleTemplate, ...]):
        seen: set[str] = set()
        for template in templates:
            if template.name in seen:
                raise ValidationError(f"duplicate role template {template.name!r}")
            seen.add(template.name)
        self._templates = tuple(templates)
        self._by_name = MappingProxyType({t.name: t for t in self._templates})

    def __iter__(self) -> Iterator[RoleTemplate]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> RoleTemplate:
        try:
            return self._by_name[name]
        except KeyError:
            raise ValidationError(f"unknown role template {name!r}") from None

    def names(self) -> list[str]:
        return [t.name for t in self._templates]

    @classmethod
    def from_dicts(cls, items: list[dict[str, Any]]) -> RoleTemplateCatalog:
        """Load a catalog from plain dictionaries (e.g. a parsed config file)."""
        templates = []
        for item in items:
            if not isinstance(item, dict) or "name" not in item:
                raise ValidationError(f"malformed role template: {item!r}")
            templates.append(
                RoleTemplate(
                    name=item["name"],
                    rules=tuple(PolicyRule.from_dict(r) for r in item.get("rules") or []),
                    labels=item.get("labels") or {},
                    annotations=item.get("annotations") or {},
                )
            )
        return cls(templates)


def _aggregation(*roles: str) -> str:
    return json.dumps(list(roles), separators=(",", ":"))


ADMIN_ROLE_TEMPLATE = RoleTemplate(
    name=ADMIN_TEMPLATE,
    annotations={
        ANNOTATION_AGGREGATION_ROLES: _aggregation(
            "role-template-view-users",
            "role-template-view-dns",
            "role-template-view-backuppoints",
            "role-template-view-templates",
            "role-template-view-registries",
            "role-template-view-projectroles",
            "role-template-create-projectroles",
            "role-template-edit-projectroles",
            "role-template-delete-projectroles",
            "role-template-view-projectmembers",
            "role-template-create-projectmembers",
            "role-template-edit-projectmembers",
            "role-template-delete-projectmembers",
            "role-template-view-clusters",
            "role-template-access-clusters",
            "role-template-create-clusters",
            "role-template-edit-clusters",
            "role-template-delete-clusters",
            "role-template-view-nodes",
            "role-template-create-nodes",
            "role-template-edit-nodes",
            "role-template-delete-nodes",
        ),
        ANNOTATION_INTERNAL: "true",
    },
    rules=(
        PolicyRule(api_groups=("*",), resources=("*",), verbs=("*",)),
        PolicyRule(non_resource_urls=("*",), verbs=("*",)),
    ),
)

USER_ROLE_TEMPLATE = RoleTemplate(
    name="user",
    annotations={
        ANNOTATION_AGGREGATION_ROLES: _aggregation(
            "role-template-view-dns",
            "role-template-view-backuppoints",
            "role-template-view-templates",
            "role-template-view-registries",
            "role-template-view-clusters",
            "role-template-access-clusters",
            "role-template-create-clusters",
            "role-template-edit-clusters",
            "role-template-delete-clusters",
            "role-template-view-nodes",
            "role-template-create-nodes",
            "role-template-edit-nodes",
            "role-template-delete-nodes",
        ),
        ANNOTATION_INTERNAL: "true",
    },
    rules=(
        PolicyRule(
            api_groups=("core.kubeclipper.io",),
            resources=("domains", "domains/records", "backuppoints", "templates"),
            verbs=("get", "list", "watch"),
        ),
        PolicyRule(
            api_groups=("core.kubeclipper.io",),
            resources=(
                "clusters",
                "clusters/plugins",
                "clusters/join",
                "clusters/nodes",
                "clusters/backups",
                "clusters/cronbackups",
                "clusters/certification",
                "clusters/kubeconfig",
                "nodes",
                "operations",
            ),
            verbs=("*",),
        ),
    ),
)

VIEW_ROLE_TEMPLATE = RoleTemplate(
    name="view",
    annotations={
        ANNOTATION_AGGREGATION_ROLES: _aggregation(
            "role-template-view-dns",
            "role-template-view-backuppoints",
            "role-template-view-templates",
            "role-template-view-registries",
            "role-template-view-projectroles",
            "role-template-view-projectmembers",
            "role-template-view-clusters",
            "role-template-view-nodes",
        ),
        ANNOTATION_INTERNAL: "true",
    },
    rules=(
        PolicyRule(api_groups=("*",), resources=("*",), verbs=("get", "list", "watch")),
    ),
)

DEFAULT_CATALOG = RoleTemplateCatalog((ADMIN_ROLE_TEMPLATE, USER_ROLE_TEMPLATE, VIEW_ROLE_TEMPLATE))
