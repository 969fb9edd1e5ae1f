"""Tests for the role template catalog."""

from __future__ import annotations

import json

import pytest

from project_operator.catalog import (
    ADMIN_ROLE_TEMPLATE,
    DEFAULT_CATALOG,
    RoleTemplate,
    RoleTemplateCatalog,
    scoped_name,
)
from project_operator.constants import ADMIN_TEMPLATE, ANNOTATION_AGGREGATION_ROLES, LABEL_PROJECT
from project_operator.exceptions import ValidationError
from project_operator.models import PolicyRule


class TestDefaultCatalog:
    """Test cases for the built-in templates."""

    def test_names_in_order(self):
        assert DEFAULT_CATALOG.names() == ["admin", "user", "view"]
        assert len(DEFAULT_CATALOG) == 3

    def test_lookup(self):
        assert "admin" in DEFAULT_CATALOG
        assert DEFAULT_CATALOG.get("view").name == "view"

    def test_admin_template_matches_manager_role_name(self):
        """The manager binding refers to the admin template by its constant name."""
        assert DEFAULT_CATALOG.get(ADMIN_TEMPLATE) is ADMIN_ROLE_TEMPLATE

    def test_unknown_template(self):
        with pytest.raises(ValidationError):
            DEFAULT_CATALOG.get("owner")

    def test_aggregation_annotation_is_json_list(self):
        roles = json.loads(ADMIN_ROLE_TEMPLATE.annotations[ANNOTATION_AGGREGATION_ROLES])

        assert "role-template-view-projectmembers" in roles


class TestRoleTemplate:
    """Test cases for RoleTemplate."""

    def test_render(self):
        role = ADMIN_ROLE_TEMPLATE.render("demo")

        assert role.name == "demo-admin"
        assert role.metadata.labels == {LABEL_PROJECT: "demo"}
        assert role.rules == list(ADMIN_ROLE_TEMPLATE.rules)

    def test_render_does_not_share_state(self):
        role = ADMIN_ROLE_TEMPLATE.render("demo")
        role.metadata.annotations.clear()
        role.rules.clear()

        assert ADMIN_ROLE_TEMPLATE.render("demo").rules
        assert ADMIN_ROLE_TEMPLATE.annotations

    def test_template_is_immutable(self):
        with pytest.raises(TypeError):
            ADMIN_ROLE_TEMPLATE.annotations["x"] = "y"

    def test_requires_rules(self):
        with pytest.raises(ValidationError):
            RoleTemplate(name="empty")

    def test_requires_name(self):
        with pytest.raises(ValidationError):
            RoleTemplate(name="", rules=(PolicyRule(verbs=("get",)),))

    def test_scoped_name(self):
        assert scoped_name("demo", "alice") == "demo-alice"


class TestRoleTemplateCatalog:
    """Test cases for building catalogs."""

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError):
            RoleTemplateCatalog([ADMIN_ROLE_TEMPLATE, ADMIN_ROLE_TEMPLATE])

    def test_from_dicts(self):
        catalog = RoleTemplateCatalog.from_dicts([
            {"name": "admin", "rules": [{"verbs": ["*"]}], "labels": {"tier": "top"}},
        ])

        template = catalog.get("admin")
        assert template.rules == (PolicyRule(verbs=("*",)),)
        assert template.render("demo").metadata.labels == {"tier": "top", LABEL_PROJECT: "demo"}

    def test_from_dicts_malformed(self):
        with pytest.raises(ValidationError):
            RoleTemplateCatalog.from_dicts([{"rules": []}])
