"""Per-pass context: correlation IDs and the reconcile deadline."""

from __future__ import annotations

import contextvars
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from ..exceptions import Cancelled

# Context variable for storing correlation ID
correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

# Monotonic instant after which store calls must stop
deadline: contextvars.ContextVar[float | None] = contextvars.ContextVar(
    "deadline", default=None
)


def get_correlation_id() -> str | None:
    """Get the correlation ID from the current context."""
    return correlation_id.get()


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:16]


@contextmanager
def with_correlation_id(corr_id: str) -> Iterator[str]:
    """Context manager to set a correlation ID for the duration of a block.

    Args:
        corr_id: Correlation ID to use

    Yields:
        The correlation ID
    """
    token = correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        correlation_id.reset(token)


@contextmanager
def reconcile_deadline(timeout: float | None) -> Iterator[float | None]:
    """Bound every store call made inside the block by ``timeout`` seconds.

    A ``None`` timeout leaves any enclosing deadline in place.

    Yields:
        The absolute monotonic deadline, or None when unbounded
    """
    if timeout is None:
        yield deadline.get()
        return
    expires = time.monotonic() + timeout
    outer = deadline.get()
    if outer is not None:
        expires = min(expires, outer)
    token = deadline.set(expires)
    try:
        yield expires
    finally:
        deadline.reset(token)


def remaining_time() -> float | None:
    """Seconds left before the current deadline, or None when unbounded."""
    expires = deadline.get()
    if expires is None:
        return None
    return max(0.0, expires - time.monotonic())


def check_deadline(operation: str = "store call") -> None:
    """Raise Cancelled if the current deadline has passed.

    Raises:
        Cancelled: When the deadline has expired
    """
    left = remaining_time()
    if left is not None and left <= 0:
        raise Cancelled(f"deadline exceeded before {operation}")


def get_context_dict(additional: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get a dictionary of context values.

    Args:
        additional: Additional key-value pairs to include

    Returns:
        Dictionary with context values including correlation_id
    """
    ctx = {}

    corr_id = get_correlation_id()
    if corr_id:
        ctx["correlation_id"] = corr_id

    if additional:
        ctx.update(additional)

    return ctx
