"""Equality-based label selectors."""

from __future__ import annotations

import re
from typing import Mapping

from ..exceptions import ValidationError

# Optional DNS prefix, then a name segment, as accepted by Kubernetes
_KEY_RE = re.compile(
    r"^([a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*/)?"
    r"[A-Za-z0-9]([-A-Za-z0-9_.]{0,61}[A-Za-z0-9])?$"
)
_VALUE_RE = re.compile(r"^([A-Za-z0-9]([-A-Za-z0-9_.]{0,61}[A-Za-z0-9])?)?$")


def _validate(key: str, value: str) -> None:
    if not _KEY_RE.match(key):
        raise ValidationError(f"invalid label key {key!r}")
    if not _VALUE_RE.match(value):
        raise ValidationError(f"invalid label value {value!r} for key {key!r}")


def format_selector(requirements: Mapping[str, str]) -> str:
    """Build a selector string such as ``a=b,c=d`` from key/value pairs.

    Raises:
        ValidationError: If a key or value is not a valid label
    """
    parts = []
    for key, value in requirements.items():
        _validate(key, value)
        parts.append(f"{key}={value}")
    return ",".join(parts)


def parse_selector(selector: str) -> dict[str, str]:
    """Parse an equality-based selector back into key/value pairs.

    Raises:
        ValidationError: If the selector is malformed
    """
    requirements: dict[str, str] = {}
    if not selector.strip():
        return requirements
    for part in selector.split(","):
        key, sep, value = part.partition("=")
        if not sep:
            raise ValidationError(f"malformed label selector {selector!r}")
        key = key.strip()
        value = value.lstrip("=").strip()
        _validate(key, value)
        requirements[key] = value
    return requirements


def matches(labels: Mapping[str, str] | None, requirements: Mapping[str, str]) -> bool:
    """Return True when every requirement is satisfied by ``labels``."""
    labels = labels or {}
    return all(labels.get(key) == value for key, value in requirements.items())
