"""
Snapshot Offset Resolution
Determines the SCN and in-flight transactions the streaming phase resumes from
"""

import time
from typing import Callable, Dict, Optional

import structlog

from snapshot_offset.cdc.errors import ResolutionError
from snapshot_offset.cdc.stabilizer import (
    SequenceNumberStabilizer,
    StabilizationPolicy,
    latest_table_ddl_scn,
)
from snapshot_offset.cdc.transactions import PendingTransactionTracker
from snapshot_offset.config.settings import SnapshotOffsetSettings
from snapshot_offset.db.connection import BaseConnection
from snapshot_offset.models.offset import SnapshotOffset, TransactionBoundaryMode
from snapshot_offset.observability.logging import log_pending_transaction, log_resolution_outcome
from snapshot_offset.observability.metrics import (
    increment_resolutions,
    observe_resolution_duration,
)
from snapshot_offset.observability.tracing import trace_offset_resolution

ConnectionFactory = Callable[[BaseConnection], BaseConnection]


def _duplicate(connection: BaseConnection) -> BaseConnection:
    return connection.duplicate()


def _elapsed_ms(start_time: float) -> float:
    return (time.monotonic() - start_time) * 1000


class SnapshotOffsetResolver:
    """
    Resolves the snapshot offset

    The current SCN comes from the stabilizer (SKIP) or from the transaction
    view (VIEW_ONLY, VIEW_AND_LOG). Log mining runs on a separate session: the
    snapshot connection holds a save point that LogMiner's commit/rollback
    would invalidate, and a PDB session cannot run LogMiner.
    """

    def __init__(
        self,
        config: SnapshotOffsetSettings,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        connection_factory: ConnectionFactory = _duplicate,
        tracker: Optional[PendingTransactionTracker] = None,
    ):
        """
        Initialize resolver

        Args:
            config: Snapshot offset configuration
            logger: Logger progress and discovered transactions are reported to
            connection_factory: Opens the secondary session from the snapshot connection
            tracker: Pending transaction tracker (built from config if None)
        """
        self.config = config
        self.mode = config.log_mining.transaction_snapshot_boundary_mode
        self.policy = StabilizationPolicy(
            max_attempts=config.log_mining.stabilization_max_attempts,
            pause_seconds=config.log_mining.stabilization_pause_ms / 1000.0,
        )
        self.log = (logger or structlog.get_logger(__name__)).bind(component="snapshot_offset")
        self.connection_factory = connection_factory
        self.tracker = tracker or PendingTransactionTracker(
            config.log_mining,
            clustered=config.oracle.is_clustered,
            policy=self.policy,
        )

    def resolve(self, connection: BaseConnection) -> SnapshotOffset:
        """
        Resolve the snapshot offset

        Args:
            connection: Snapshot connection

        Returns:
            SnapshotOffset with the current SCN and in-flight transactions

        Raises:
            ResolutionError: If no current SCN can be obtained or the log search fails
            DatabaseError: If a catalog or view query fails
        """
        start_time = time.monotonic()
        span = trace_offset_resolution(self.mode.value)

        try:
            offset = self._resolve(connection)
        except Exception as e:
            increment_resolutions(self.mode.value, "failure")
            log_resolution_outcome(
                self.log, self.mode.value, _elapsed_ms(start_time), error=str(e)
            )
            raise
        finally:
            span.end()
            observe_resolution_duration(self.mode.value, time.monotonic() - start_time)

        increment_resolutions(self.mode.value, "success")
        log_resolution_outcome(
            self.log,
            self.mode.value,
            _elapsed_ms(start_time),
            scn=offset.scn,
            pending_transactions=len(offset.pending_transactions),
        )
        return offset

    def _resolve(self, connection: BaseConnection) -> SnapshotOffset:
        reference_scn = latest_table_ddl_scn(connection, self.config.snapshot.table_ids())
        pending_transactions: Dict[str, int] = {}

        if self.mode == TransactionBoundaryMode.SKIP:
            current_scn = SequenceNumberStabilizer(connection, self.policy).stabilize(reference_scn)
        else:
            current_scn, pending_transactions = self.tracker.from_view(connection, reference_scn)

        if current_scn is None:
            raise ResolutionError("Failed to resolve current SCN")

        with self.connection_factory(connection) as mining_connection:
            mining_connection.set_autocommit(False)
            if self.config.oracle.pdb_name:
                mining_connection.reset_session_to_cdb()

            self._extend_from_logs(mining_connection, current_scn, pending_transactions)

        if pending_transactions:
            for transaction_id, start_scn in pending_transactions.items():
                log_pending_transaction(self.log, transaction_id, start_scn, current_scn)
        elif self.mode != TransactionBoundaryMode.SKIP:
            self.log.info("Found no in-progress transactions")

        return SnapshotOffset.create(current_scn, pending_transactions)

    def _extend_from_logs(
        self,
        connection: BaseConnection,
        current_scn: int,
        pending_transactions: Dict[str, int],
    ) -> None:
        view = self.tracker.transaction_view

        if self.mode == TransactionBoundaryMode.SKIP:
            self.log.info("No in-progress transactions will be captured")
        elif self.mode == TransactionBoundaryMode.VIEW_ONLY:
            self.log.info("Skipping transaction logs for resolving snapshot offset", view=view)
        else:
            self.log.info(
                "Consulting transaction view and logs for resolving snapshot offset", view=view
            )
            self.tracker.from_log(connection, current_scn, pending_transactions)


def determine_snapshot_offset(
    config: SnapshotOffsetSettings,
    connection: BaseConnection,
    logger: Optional[structlog.stdlib.BoundLogger] = None,
) -> SnapshotOffset:
    """
    Resolve the snapshot offset for a snapshot connection

    Args:
        config: Snapshot offset configuration
        connection: Snapshot connection
        logger: Optional logger for progress reporting

    Returns:
        Resolved SnapshotOffset
    """
    return SnapshotOffsetResolver(config, logger=logger).resolve(connection)
