"""Operator entrypoint: kopf startup, cleanup and run."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .config import get_config
from .constants import API_GROUP
from .tracing import initialize_tracing, shutdown_tracing

logger = logging.getLogger(__name__)

_server = None


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    global _server

    structured_logging.setup_structured_logging()
    config = get_config()

    # annotations keep kopf's bookkeeping out of the status the reconciler owns
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix=API_GROUP)
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(prefix=API_GROUP)

    settings.posting.level = logging.INFO
    settings.networking.request_timeout = config.request_timeout_seconds
    settings.execution.max_workers = config.max_workers

    initialize_tracing()

    _server = health.start_metrics_server(config.metrics_port)
    health.mark_ready()
    logger.info(f"Operator started, metrics on port {config.metrics_port}")


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Report not ready, stop serving metrics and flush traces."""
    global _server

    health.mark_not_ready()
    if _server is not None:
        _server.shutdown()
        _server = None
    shutdown_tracing()


def run() -> None:
    """Run the operator until interrupted."""
    config = get_config()
    if config.watch_namespace:
        kopf.run(namespaces=[config.watch_namespace])
    else:
        kopf.run(clusterwide=True)


if __name__ == "__main__":
    run()
