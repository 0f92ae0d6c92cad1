"""ferryman runtime entrypoint for Kubernetes deployments.

This module provides the ASGI application factory used by Granian. It
assembles the scheduler from the environment and delegates app construction
to :func:`ferryman.api.app.create_app`, keeping the
``ferryman.runtime:create_app`` entrypoint stable.

Configuration is driven by environment variables:

- ``FERRYMAN_HOST``: Bind address (default ``0.0.0.0``)
- ``FERRYMAN_PORT``: Listen port (default ``8080``)
- ``FERRYMAN_LOG_LEVEL``: Log level (default ``INFO``)
- ``FERRYMAN_POLICY_PATH``: YAML coordination policy (optional; the built-in
  default policy applies when unset)
- ``FERRYMAN_EXECUTOR_QUEUE``: Dramatiq queue for start/cancel messages
  (default ``ferryman-runs``)
- ``FERRYMAN_DATABASE_URL``: Database URL for the run audit (optional)
- ``FERRYMAN_DISPATCH_TIMEOUT_S``, ``FERRYMAN_TERMINAL_GRACE_S``,
  ``FERRYMAN_MAX_ADMISSION_ATTEMPTS``, ``FERRYMAN_SWEEP_INTERVAL_S``:
  scheduler tuning, see :class:`~ferryman.coordination.config.SchedulerConfig`

Run the service directly with ``python -m ferryman.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from ferryman.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

    from ferryman.audit.writer import RunAuditWriter
    from ferryman.policy.models import CoordinationPolicy

__all__ = ["build_policy", "create_app", "main"]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid FERRYMAN_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def build_policy() -> CoordinationPolicy:
    """Load the policy named by ``FERRYMAN_POLICY_PATH`` or the default one."""
    from ferryman.policy.loader import load_policy
    from ferryman.policy.models import default_policy

    path = os.environ.get("FERRYMAN_POLICY_PATH", "").strip()
    if not path:
        return default_policy()
    policy = load_policy(path)
    log_info(
        logger,
        "Loaded coordination policy from %s (workflow=%s, classes=%d)",
        path,
        policy.workflow,
        len(policy.classes),
    )
    return policy


def _build_audit_writer() -> RunAuditWriter | None:
    database_url = os.environ.get("FERRYMAN_DATABASE_URL")
    if database_url is None:
        return None

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from ferryman.audit.writer import RunAuditWriter

    engine = create_async_engine(database_url)
    return RunAuditWriter(async_sessionmaker(engine, expire_on_commit=False))


def create_app() -> falcon.asgi.App:
    """Create the coordination app from environment configuration.

    Returns
    -------
    falcon.asgi.App
        App with event intake, run callbacks, health probes and the
        periodic sweep.

    """
    from ferryman.api.app import AppDependencies
    from ferryman.api.app import create_app as _create_api_app
    from ferryman.coordination.config import SchedulerConfig
    from ferryman.coordination.scheduler import Scheduler
    from ferryman.executor.dramatiq_executor import (
        DEFAULT_QUEUE_NAME,
        DramatiqExecutor,
    )

    config = SchedulerConfig.from_env()
    queue_name = os.environ.get("FERRYMAN_EXECUTOR_QUEUE", "").strip()
    executor = DramatiqExecutor(queue_name=queue_name or DEFAULT_QUEUE_NAME)
    scheduler = Scheduler(build_policy(), executor, config=config)

    deps = AppDependencies(
        scheduler=scheduler,
        audit_writer=_build_audit_writer(),
        sweep_interval=config.sweep_interval,
    )
    return _create_api_app(deps)


def main() -> None:
    """Start the ferryman runtime server using Granian.

    Reads ``FERRYMAN_HOST``, ``FERRYMAN_PORT``, and ``FERRYMAN_LOG_LEVEL``
    from the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("FERRYMAN_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port_str = os.environ.get("FERRYMAN_PORT", "8080")
    port = _parse_port(port_str)
    log_level_str = os.environ.get("FERRYMAN_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid FERRYMAN_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting ferryman runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "ferryman.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
