"""Utilities for emitting Kubernetes events on Project resources."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CLEANUP_COMPLETED,
    EVENT_REASON_FINALIZER_ADDED,
    EVENT_REASON_MANAGER_ROTATED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource body (or at least its apiVersion, kind and metadata)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_finalizer_added(body: dict[str, Any]) -> None:
    emit_event(body, EVENT_REASON_FINALIZER_ADDED, "Finalizer added")


def emit_cleanup_completed(body: dict[str, Any]) -> None:
    emit_event(body, EVENT_REASON_CLEANUP_COMPLETED, "Scoped roles and bindings removed")


def emit_manager_rotated(body: dict[str, Any], old: str, new: str) -> None:
    """Emit manager rotated event."""
    emit_event(body, EVENT_REASON_MANAGER_ROTATED, f"Manager binding moved from {old} to {new}")
