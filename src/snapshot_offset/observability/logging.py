"""
Structured Logging Configuration with structlog
Log output goes to stderr; stdout is reserved for the resolved offset document
"""

import logging
import sys
from typing import Any, List, Optional

import structlog

# Driver and library loggers that are noisy at DEBUG
QUIET_LOGGERS = ("oracledb", "urllib3", "docker")


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure structlog for snapshot offset resolution

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "console")
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        _renderer(log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Replace the context bound to every log message of this run

    Args:
        **kwargs: Key-value pairs to add to log context (e.g. service_name)
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**kwargs)


def log_pending_transaction(
    logger: structlog.stdlib.BoundLogger,
    transaction_id: str,
    start_scn: int,
    snapshot_scn: int,
) -> None:
    """Log a transaction still in flight at the snapshot SCN"""
    logger.info(
        "Found in-progress transaction",
        transaction_id=transaction_id,
        start_scn=start_scn,
        snapshot_scn=snapshot_scn,
    )


def log_resolution_outcome(
    logger: structlog.stdlib.BoundLogger,
    mode: str,
    duration_ms: float,
    scn: Optional[int] = None,
    pending_transactions: int = 0,
    error: Optional[str] = None,
) -> None:
    """
    Log the end of a snapshot offset resolution (success or failure)

    Args:
        logger: Structlog logger
        mode: Transaction boundary mode in effect
        duration_ms: Resolution duration in milliseconds
        scn: Resolved SCN (success only)
        pending_transactions: Number of in-flight transactions found
        error: Error message if resolution failed
    """
    if error is None:
        logger.info(
            "Resolved snapshot offset",
            mode=mode,
            scn=scn,
            pending_transactions=pending_transactions,
            duration_ms=round(duration_ms, 3),
        )
    else:
        logger.error(
            "Failed to resolve snapshot offset",
            mode=mode,
            error=error,
            duration_ms=round(duration_ms, 3),
        )
