"""
Snapshot Offset Main Entrypoint
Resolves the snapshot offset for the configured Oracle database and prints it as JSON
"""

import argparse
import json
import sys
from typing import List, Optional

from snapshot_offset.cdc.snapshot_offset import determine_snapshot_offset
from snapshot_offset.config.loader import load_config
from snapshot_offset.db.oracle import OracleConnection
from snapshot_offset.observability.logging import bind_context, configure_logging, get_logger
from snapshot_offset.observability.metrics import start_metrics_server
from snapshot_offset.observability.tracing import init_tracing

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="snapshot-offset",
        description="Resolve the SCN and in-flight transactions a LogMiner stream resumes from",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML configuration (environment variables are used if omitted)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entrypoint

    Returns:
        Process exit code
    """
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except Exception as e:
        configure_logging()
        logger.error("Invalid snapshot offset configuration", config=args.config, error=str(e))
        return 1

    configure_logging(
        log_level=config.observability.log_level,
        log_format=config.observability.log_format,
    )
    bind_context(service_name=config.oracle.service_name)

    if config.observability.enable_metrics:
        start_metrics_server(port=config.observability.metrics_port)
    if config.observability.enable_tracing:
        init_tracing()

    logger.info(
        "Resolving snapshot offset",
        mode=config.log_mining.transaction_snapshot_boundary_mode.value,
    )

    try:
        with OracleConnection(config.oracle) as connection:
            offset = determine_snapshot_offset(config, connection, logger=logger)
    except Exception as e:
        logger.error("Snapshot offset resolution failed", error=str(e))
        return 1

    print(json.dumps(offset.to_dict()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
