"""Operator configuration read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .exceptions import ValidationError


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class OperatorConfig:
    """Runtime settings of the operator process."""

    metrics_port: int = 8080
    reconcile_timeout_seconds: float = 30.0
    resync_interval_seconds: float = 300.0
    max_retry_delay_seconds: float = 60.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Build the configuration from the process environment.

        Raises:
            ValidationError: If a numeric setting cannot be parsed
        """
        return cls(
            metrics_port=int(_env_float("METRICS_PORT", "8080")),
            reconcile_timeout_seconds=_env_float("RECONCILE_TIMEOUT_SECONDS", "30"),
            resync_interval_seconds=_env_float("RESYNC_INTERVAL_SECONDS", "300"),
            max_retry_delay_seconds=_env_float("MAX_RETRY_DELAY_SECONDS", "60"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
