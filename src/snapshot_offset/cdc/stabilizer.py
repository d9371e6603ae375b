"""
Current SCN stabilization
Re-samples the current SCN until it no longer shares a timestamp bucket with the latest DDL
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, TypeVar

import structlog

from snapshot_offset.cdc.errors import StabilizationError
from snapshot_offset.db import sql
from snapshot_offset.db.connection import BaseConnection, DatabaseError
from snapshot_offset.models.scn import parse_scn
from snapshot_offset.observability.metrics import observe_stabilization_samples

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# ORA-08180: no snapshot found based on specified time
DDL_TOO_OLD_ERROR = "ORA-08180"


@dataclass
class StabilizationPolicy:
    """
    Bounds for a stabilization loop

    Attributes:
        max_attempts: Maximum number of samples, None to wait indefinitely
        pause_seconds: Pause before each re-sample
    """

    max_attempts: Optional[int] = None
    pause_seconds: float = 0.0


def latest_table_ddl_scn(
    connection: BaseConnection,
    tables: Sequence[Tuple[str, str]],
) -> Optional[int]:
    """
    SCN of the most recent DDL on any captured table

    Args:
        connection: Source database connection
        tables: (owner, table) pairs

    Returns:
        SCN, or None if no tables are given or the DDL is too old to map
    """
    if not tables:
        return None

    query, params = sql.latest_table_ddl_scn_query(tables)
    try:
        row = connection.query_one(query, params)
    except DatabaseError as e:
        if DDL_TOO_OLD_ERROR in str(e).upper():
            logger.debug("No latest table SCN could be resolved, defaulting to current SCN")
            return None
        raise

    return parse_scn(row["DDL_SCN"]) if row else None


class SequenceNumberStabilizer:
    """
    Samples the current SCN until it diverges from a reference SCN's timestamp

    SCN_TO_TIMESTAMP has a coarse granularity; an SCN that maps to the same
    timestamp as a recent DDL cannot be ordered against it.
    """

    def __init__(
        self,
        connection: BaseConnection,
        policy: Optional[StabilizationPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.connection = connection
        self.policy = policy or StabilizationPolicy()
        self._sleep = sleep

    def are_same_timestamp(self, first: Optional[int], second: Optional[int]) -> bool:
        """Whether both SCNs are known and map to the same database timestamp"""
        if first is None or second is None:
            return False
        return self.connection.query_one(sql.same_timestamp_query(first, second)) is not None

    def current_scn(self) -> Optional[int]:
        row = self.connection.query_one(sql.CURRENT_SCN_QUERY)
        return parse_scn(row["CURRENT_SCN"]) if row else None

    def run(
        self,
        reference_scn: Optional[int],
        sample: Callable[[], Tuple[Optional[int], T]],
    ) -> Tuple[Optional[int], T]:
        """
        Repeat a sample until its SCN leaves the reference SCN's timestamp bucket

        Args:
            reference_scn: SCN of the latest DDL, or None
            sample: Callable returning (observed SCN, sampled state)

        Returns:
            The first sample whose SCN diverged from the reference

        Raises:
            StabilizationError: If max_attempts samples all matched the reference
        """
        attempts = 0
        while True:
            attempts += 1
            scn, state = sample()

            if not self.are_same_timestamp(reference_scn, scn):
                observe_stabilization_samples(attempts)
                if attempts > 1:
                    logger.debug("Current SCN stabilized", scn=scn, attempts=attempts)
                return scn, state

            if self.policy.max_attempts is not None and attempts >= self.policy.max_attempts:
                raise StabilizationError(
                    f"SCN {scn} still maps to the timestamp of SCN {reference_scn} "
                    f"after {attempts} attempts"
                )

            logger.debug(
                "Current SCN shares timestamp with latest DDL, sampling again",
                scn=scn,
                reference_scn=reference_scn,
                attempt=attempts,
            )
            if self.policy.pause_seconds > 0:
                self._sleep(self.policy.pause_seconds)

    def stabilize(self, reference_scn: Optional[int]) -> Optional[int]:
        """
        Current SCN that no longer shares a timestamp with reference_scn

        Args:
            reference_scn: SCN of the latest DDL, or None

        Returns:
            Current SCN, or None if the database reported none
        """
        scn, _ = self.run(reference_scn, lambda: (self.current_scn(), None))
        return scn
