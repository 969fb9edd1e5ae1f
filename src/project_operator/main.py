"""Main entry point for the Project Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import handlers  # noqa: F401  (registers the kopf handlers)
from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .controller import ProjectController
from .handlers.project import set_controller
from .reconciler import ProjectReconciler
from .store.kubernetes import KubernetesStore
from .tracing import initialize_tracing

logger = logging.getLogger(__name__)


def build_controller(config: OperatorConfig, store: Any = None) -> ProjectController:
    """Wire the store, reconciler and controller together."""
    if store is None:
        store = KubernetesStore()
    reconciler = ProjectReconciler(store)
    return ProjectController(reconciler, timeout=config.reconcile_timeout_seconds)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    config = OperatorConfig.from_env()

    # Set up structured JSON logging
    structured_logging.setup_structured_logging(config.log_level)

    # Configure persistence
    # Use AnnotationsProgressStorage to avoid conflicts with status updates
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = 0
    settings.networking.request_timeout = config.reconcile_timeout_seconds
    # One reconcile in flight per process
    settings.execution.max_workers = 1

    initialize_tracing()

    set_controller(build_controller(config))

    # Start metrics HTTP server with health check endpoints
    health.start_metrics_server(config.metrics_port)
    logger.info(f"Project operator started, metrics on port {config.metrics_port}")


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Stop routing events to the controller."""
    set_controller(None)


def main() -> None:
    """Run the operator against the whole cluster."""
    kopf.run(clusterwide=True)


if __name__ == "__main__":
    main()
