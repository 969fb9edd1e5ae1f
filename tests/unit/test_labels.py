"""Tests for label selector helpers."""

from __future__ import annotations

import pytest

from project_operator.constants import LABEL_PROJECT, LABEL_PROJECT_ROLE_BINDING_MANAGER
from project_operator.exceptions import ValidationError
from project_operator.utils.labels import format_selector, matches, parse_selector


class TestFormatSelector:
    """Test cases for format_selector."""

    def test_single_requirement(self):
        assert format_selector({LABEL_PROJECT: "demo"}) == "kubeclipper.io/project=demo"

    def test_multiple_requirements(self):
        selector = format_selector({LABEL_PROJECT: "demo", LABEL_PROJECT_ROLE_BINDING_MANAGER: "true"})

        assert selector == "kubeclipper.io/project=demo,kubeclipper.io/project-role-binding-manager=true"

    def test_invalid_value(self):
        with pytest.raises(ValidationError):
            format_selector({LABEL_PROJECT: "not a valid value"})

    def test_invalid_key(self):
        with pytest.raises(ValidationError):
            format_selector({"Bad/Prefix/key": "x"})


class TestParseSelector:
    """Test cases for parse_selector."""

    def test_roundtrip(self):
        requirements = {LABEL_PROJECT: "demo", "tier": "gold"}

        assert parse_selector(format_selector(requirements)) == requirements

    def test_double_equals(self):
        assert parse_selector("tier==gold") == {"tier": "gold"}

    def test_empty(self):
        assert parse_selector("") == {}

    def test_malformed(self):
        with pytest.raises(ValidationError):
            parse_selector("tier")

    def test_set_based_rejected(self):
        with pytest.raises(ValidationError):
            parse_selector("tier in (gold)")


class TestMatches:
    """Test cases for matches."""

    def test_all_requirements_met(self):
        assert matches({"a": "1", "b": "2"}, {"a": "1"})

    def test_missing_label(self):
        assert not matches({"a": "1"}, {"b": "2"})

    def test_none_labels(self):
        assert not matches(None, {"a": "1"})
        assert matches(None, {})
