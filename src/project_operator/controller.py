"""Serialized driver around the reconciler."""

from __future__ import annotations

import logging
import threading

from .reconciler import ProjectReconciler, ReconcileResult
from .utils.context import new_correlation_id, reconcile_deadline, with_correlation_id

logger = logging.getLogger(__name__)


def backoff_delay(retry: int, max_delay: float = 60.0, base: float = 1.0) -> float:
    """Exponential backoff: 1s, 2s, 4s, ... capped at ``max_delay``."""
    return min(max_delay, base * (2 ** max(0, retry)))


class ProjectController:
    """Runs reconcile passes one at a time for the whole process.

    A pass that ends with ``requeue`` (the finalizer was just added) is
    followed immediately by a fresh pass, up to ``max_passes`` per call.

    Args:
        reconciler: Engine to drive
        timeout: Deadline in seconds for all passes of one call; None disables it
        max_passes: Upper bound on back-to-back passes for one key
    """

    def __init__(self, reconciler: ProjectReconciler, timeout: float | None = 30.0, max_passes: int = 2):
        self.reconciler = reconciler
        self.timeout = timeout
        self.max_passes = max_passes
        self._lock = threading.Lock()

    def process(self, key: str) -> ReconcileResult:
        """Reconcile the project ``key``.

        Raises:
            ProjectOperatorError: The first error of the failing pass
        """
        with self._lock, with_correlation_id(new_correlation_id()), reconcile_deadline(self.timeout):
            result = self.reconciler.reconcile(key)
            passes = 1
            while result.requeue and passes < self.max_passes:
                previous = result
                result = self.reconciler.reconcile(key)
                result.writes[:0] = previous.writes
                passes += 1
            return result
