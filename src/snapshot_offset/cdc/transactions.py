"""
Pending transaction discovery
Finds transactions in flight at the snapshot SCN from the transaction view and the logs
"""

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

import structlog

from snapshot_offset.cdc.errors import ResolutionError
from snapshot_offset.cdc.log_files import LogFileSelector
from snapshot_offset.cdc.stabilizer import SequenceNumberStabilizer, StabilizationPolicy
from snapshot_offset.config.settings import LogMiningSettings
from snapshot_offset.db import sql
from snapshot_offset.db.connection import BaseConnection, DatabaseError
from snapshot_offset.models.log_file import LogFile
from snapshot_offset.models.offset import transaction_id_to_hex
from snapshot_offset.models.scn import parse_scn
from snapshot_offset.observability.metrics import (
    increment_pending_transactions,
    set_mining_session_log_files,
)

logger = structlog.get_logger(__name__)

# ORA-01307: no LogMiner session is currently active
SESSION_ALREADY_CLOSED_ERROR = "ORA-01307"


@contextmanager
def mining_session(connection: BaseConnection, log_files: List[LogFile]) -> Iterator[None]:
    """
    LogMiner session over exactly the given log files

    The session is stopped on exit, including when adding files or starting
    the session fails.

    Raises:
        ResolutionError: If the session cannot be stopped
    """
    try:
        for log_file in log_files:
            logger.debug("Adding log file to mining session", file=log_file.file_name)
            connection.execute_without_committing(sql.add_log_file_statement(log_file.file_name))

        logger.debug("Starting mining session")
        connection.execute_without_committing(sql.START_MINING_SESSION)
        yield
    finally:
        stop_mining_session(connection)


def stop_mining_session(connection: BaseConnection) -> None:
    """
    Stop the current LogMiner session; an already closed session is not an error

    Raises:
        ResolutionError: If stopping fails for any other reason
    """
    try:
        logger.debug("Stopping mining session")
        connection.execute_without_committing(sql.STOP_MINING_SESSION)
    except DatabaseError as e:
        if SESSION_ALREADY_CLOSED_ERROR in str(e).upper():
            logger.debug("LogMiner mining session is already closed")
            return
        raise ResolutionError(f"Failed to stop mining session: {e}") from e


class PendingTransactionTracker:
    """
    Discovers transactions in progress at the snapshot SCN

    Two sources:
    - from_view(): the open transaction view, stabilized against the latest DDL SCN
    - from_log(): START records mined from the most recent log files
    """

    def __init__(
        self,
        settings: LogMiningSettings,
        clustered: bool = False,
        policy: Optional[StabilizationPolicy] = None,
    ):
        """
        Initialize tracker

        Args:
            settings: Log mining settings (retention, destination, archive-only mode)
            clustered: Whether the database is RAC, selecting the global transaction view
            policy: Stabilization bounds for the view query
        """
        self.settings = settings
        self.transaction_view = sql.transaction_view_name(clustered)
        self.policy = policy or StabilizationPolicy()

    def from_view(
        self,
        connection: BaseConnection,
        reference_scn: Optional[int],
    ) -> Tuple[Optional[int], Dict[str, int]]:
        """
        Current SCN and the transactions the view reports open before it

        The current SCN and the transaction list come from one statement, so
        both describe the same instant; the statement is repeated while the SCN
        shares a timestamp with reference_scn.

        Args:
            connection: Source database connection
            reference_scn: SCN of the latest DDL, or None

        Returns:
            (current SCN or None, hex transaction id -> start SCN)

        Raises:
            DatabaseError: If the transaction view cannot be queried
        """
        query = sql.pending_transactions_query(self.transaction_view)

        def sample() -> Tuple[Optional[int], Dict[str, int]]:
            try:
                rows = connection.query(query)
            except DatabaseError as e:
                logger.warning(
                    "Could not query the transaction view",
                    view=self.transaction_view,
                    error=str(e),
                )
                raise

            current_scn: Optional[int] = None
            transactions: Dict[str, int] = {}
            for row in rows:
                if current_scn is None:
                    current_scn = parse_scn(row["CURRENT_SCN"])
                start_scn = parse_scn(row["START_SCN"])
                if start_scn is not None:
                    transactions[transaction_id_to_hex(row["XID"])] = start_scn
            return current_scn, transactions

        stabilizer = SequenceNumberStabilizer(connection, self.policy)
        current_scn, transactions = stabilizer.run(reference_scn, sample)

        for transaction_id, start_scn in transactions.items():
            logger.debug(
                "Pending transaction found in view",
                transaction_id=transaction_id,
                start_scn=start_scn,
            )
        increment_pending_transactions("view", len(transactions))

        return current_scn, transactions

    def from_log(
        self,
        connection: BaseConnection,
        current_scn: int,
        pending_transactions: Dict[str, int],
    ) -> None:
        """
        Add transactions mined from the logs that were open at current_scn

        Transactions already in pending_transactions keep their recorded start SCN.

        Args:
            connection: Connection dedicated to the mining session
            current_scn: Snapshot SCN
            pending_transactions: Mapping extended in place

        Raises:
            DatabaseError: If the log catalog cannot be queried
            ResolutionError: If the log search fails
        """
        selector = LogFileSelector(connection, self.settings)
        try:
            oldest_scn = selector.oldest_scn_available()
            log_files = selector.select(oldest_scn)
        except DatabaseError as e:
            logger.warning("Could not query the log catalog", error=str(e))
            raise

        if not log_files:
            logger.warning("No log files available, skipping transaction log search")
            return

        search_set = selector.reduce_to_search_set(log_files)
        set_mining_session_log_files(len(search_set))
        if not search_set:
            logger.warning("No redo thread has a current log, skipping transaction log search")
            return

        discovered = 0
        try:
            with mining_session(connection, search_set):
                logger.info(
                    "Querying transaction logs, please wait...",
                    log_files=len(search_set),
                    current_scn=current_scn,
                )
                rows = connection.query(sql.transaction_starts_query(current_scn))

                for row in rows:
                    start_scn = parse_scn(row["START_SCN"])
                    if start_scn is None:
                        continue
                    transaction_id = transaction_id_to_hex(row["XID"])
                    if transaction_id not in pending_transactions:
                        logger.info(
                            "Transaction found in logs",
                            transaction_id=transaction_id,
                            start_scn=start_scn,
                        )
                        pending_transactions[transaction_id] = start_scn
                        discovered += 1

        except ResolutionError:
            raise
        except Exception as e:
            logger.error("Transaction log search failed", error=str(e))
            raise ResolutionError("Failed to resolve snapshot offset") from e

        increment_pending_transactions("log", discovered)
