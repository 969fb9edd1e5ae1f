"""Utility functions for the Project Operator."""

from .context import (
    check_deadline,
    get_context_dict,
    get_correlation_id,
    new_correlation_id,
    reconcile_deadline,
    remaining_time,
    with_correlation_id,
)
from .errors import sanitize_error_message, sanitize_exception
from .events import emit_event
from .labels import format_selector, matches, parse_selector
from .rate_limit import is_rate_limit_error, rate_limit_k8s

__all__ = [
    "emit_event",
    "check_deadline",
    "reconcile_deadline",
    "remaining_time",
    "get_correlation_id",
    "new_correlation_id",
    "with_correlation_id",
    "get_context_dict",
    "sanitize_error_message",
    "sanitize_exception",
    "format_selector",
    "parse_selector",
    "matches",
    "rate_limit_k8s",
    "is_rate_limit_error",
]
