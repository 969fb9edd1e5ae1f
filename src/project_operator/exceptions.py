"""Exceptions raised by the resource store and the reconciler."""

from __future__ import annotations


class ProjectOperatorError(Exception):
    """Base class for all operator errors."""

    retryable = True


# --- Store Exceptions ---
class StoreError(ProjectOperatorError):
    """A store operation failed."""

    def __init__(self, message: str, kind: str | None = None, name: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.name = name


class NotFoundError(StoreError):
    """The object does not exist."""

    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} {name!r} not found", kind=kind, name=name)


class AlreadyExistsError(StoreError):
    """An object with the same name already exists."""

    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} {name!r} already exists", kind=kind, name=name)


class ConflictError(StoreError):
    """An update lost a race against a concurrent writer."""

    def __init__(self, kind: str, name: str, message: str | None = None):
        super().__init__(
            message or f"{kind} {name!r} was modified concurrently",
            kind=kind,
            name=name,
        )


class TransientStoreError(StoreError):
    """Network or storage failure; safe to retry."""


# --- Fatal Exceptions ---
class ValidationError(ProjectOperatorError):
    """Malformed selector, template or object. Not retried automatically."""

    retryable = False


# --- Cancellation ---
class Cancelled(ProjectOperatorError):
    """The reconcile deadline expired before the pass completed."""
