"""
Log file selection for transaction log searches
"""

from typing import Dict, List, Optional, Tuple

import structlog

from snapshot_offset.config.settings import LogMiningSettings
from snapshot_offset.db import sql
from snapshot_offset.db.connection import BaseConnection
from snapshot_offset.models.log_file import LogFile
from snapshot_offset.models.scn import parse_scn

logger = structlog.get_logger(__name__)


class LogFileSelector:
    """
    Finds the online and archived log files to mine from a given SCN

    Honors the archive log retention window, the archive destination and
    archive-only mode from the log mining settings.
    """

    def __init__(self, connection: BaseConnection, settings: LogMiningSettings):
        self.connection = connection
        self.settings = settings

    def oldest_scn_available(self) -> Optional[int]:
        """
        Oldest SCN still held in online or retained archive logs

        Returns:
            SCN, or None if the log catalog is empty
        """
        row = self.connection.query_one(
            sql.oldest_first_change_query(
                self.settings.archive_log_retention_hours,
                self.settings.archive_destination_name,
            )
        )
        return parse_scn(row["OLDEST_SCN"]) if row else None

    def select(self, since_scn: Optional[int]) -> List[LogFile]:
        """
        Log files holding changes at or after since_scn

        Args:
            since_scn: Lower SCN bound, None for every available log

        Returns:
            Log files sorted by sequence; an archived copy replaces the online
            log with the same thread and sequence
        """
        rows = self.connection.query(
            sql.minable_log_files_query(
                since_scn or 0,
                self.settings.archive_log_retention_hours,
                self.settings.archive_log_only_mode,
                self.settings.archive_destination_name,
            )
        )

        by_position: Dict[Tuple[int, int], LogFile] = {}
        for row in rows:
            log_file = LogFile.from_row(row)
            if self.settings.archive_log_only_mode and not log_file.is_archive:
                continue
            if not log_file.covers_or_follows(since_scn):
                continue

            key = (log_file.thread, log_file.sequence)
            existing = by_position.get(key)
            if existing is None or (log_file.is_archive and not existing.is_archive):
                by_position[key] = log_file

        log_files = sorted(by_position.values(), key=lambda f: (f.sequence, f.thread))
        logger.debug("Found log files", since_scn=since_scn, count=len(log_files))
        return log_files

    @staticmethod
    def reduce_to_search_set(all_log_files: List[LogFile]) -> List[LogFile]:
        """
        Smallest set of log files needed to find transactions open at the current SCN

        Per redo thread: the current log plus the newest log before it. Threads
        whose newest log is not current are skipped.

        Args:
            all_log_files: Log files of every thread

        Returns:
            Log files ordered by thread, then sequence
        """
        by_thread: Dict[int, List[LogFile]] = {}
        for log_file in all_log_files:
            by_thread.setdefault(log_file.thread, []).append(log_file)

        search_set: List[LogFile] = []
        for thread in sorted(by_thread):
            logs = sorted(by_thread[thread], key=lambda f: f.sequence)
            newest = logs[-1]
            if not newest.is_current:
                logger.debug("Thread has no current log, skipping", thread=thread)
                continue

            previous = [f for f in logs if f.sequence < newest.sequence]
            if previous:
                search_set.append(previous[-1])
            search_set.append(newest)

        return search_set

