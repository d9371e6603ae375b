"""
Prometheus Metrics for Snapshot Offset Resolution
"""

import structlog
from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = structlog.get_logger(__name__)

# Counters
resolutions_total = Counter(
    "cdc_snapshot_offset_resolutions_total",
    "Snapshot offset resolutions by boundary mode and outcome",
    ["mode", "outcome"],
)

pending_transactions_discovered_total = Counter(
    "cdc_pending_transactions_discovered_total",
    "In-flight transactions discovered at the snapshot SCN by source",
    ["source"],
)

# Gauges
mining_session_log_files = Gauge(
    "cdc_mining_session_log_files",
    "Log files added to the last transaction log search session",
)

# Histograms
stabilization_samples = Histogram(
    "cdc_scn_stabilization_samples",
    "Samples taken before the current SCN left the DDL timestamp bucket",
    buckets=(1, 2, 3, 5, 10, 25, 50, 100),
)

resolution_duration_seconds = Histogram(
    "cdc_snapshot_offset_resolution_duration_seconds",
    "Time taken to resolve a snapshot offset",
    ["mode"],
    buckets=(0.01, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)


def start_metrics_server(port: int = 9090) -> None:
    """
    Start Prometheus metrics HTTP server

    Args:
        port: HTTP port to expose /metrics endpoint (default 9090)
    """
    start_http_server(port)
    logger.info("Prometheus metrics server started", port=port)


def increment_resolutions(mode: str, outcome: str) -> None:
    """Increment resolutions counter (outcome is success or failure)"""
    resolutions_total.labels(mode=mode, outcome=outcome).inc()


def increment_pending_transactions(source: str, count: int = 1) -> None:
    """Increment discovered transactions counter (source is view or log)"""
    if count > 0:
        pending_transactions_discovered_total.labels(source=source).inc(count)


def set_mining_session_log_files(count: int) -> None:
    mining_session_log_files.set(count)


def observe_stabilization_samples(samples: int) -> None:
    stabilization_samples.observe(samples)


def observe_resolution_duration(mode: str, duration_seconds: float) -> None:
    resolution_duration_seconds.labels(mode=mode).observe(duration_seconds)
