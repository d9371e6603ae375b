"""
LogFile Data Model - Redo/archive log segment descriptor
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from snapshot_offset.models.scn import parse_scn


class LogFileType(str, Enum):
    """Where the log segment lives"""

    ARCHIVE = "ARCHIVE"
    REDO = "REDO"


@dataclass(frozen=True)
class LogFile:
    """
    A single redo or archive log segment

    Attributes:
        file_name: Path of the log member on the database host
        first_scn: First SCN recorded in the segment
        next_scn: First SCN of the following segment (None while unsealed)
        sequence: Log sequence number, ordered within a redo thread
        thread: Redo thread (one per RAC instance)
        log_type: ARCHIVE or online REDO
        is_current: Whether this is the online log currently being written
    """

    file_name: str
    first_scn: Optional[int]
    next_scn: Optional[int]
    sequence: int
    thread: int
    log_type: LogFileType
    is_current: bool = False

    def __post_init__(self) -> None:
        """Validate LogFile after initialization"""
        if not self.file_name:
            raise ValueError("file_name must be non-empty")

        if self.sequence < 0:
            raise ValueError("sequence must be non-negative")

        if self.is_current and self.log_type != LogFileType.REDO:
            raise ValueError("only online redo logs can be current")

    @property
    def is_archive(self) -> bool:
        return self.log_type == LogFileType.ARCHIVE

    def covers_or_follows(self, scn: Optional[int]) -> bool:
        """Whether the segment holds changes at or after the given SCN"""
        if scn is None or self.is_current or self.next_scn is None:
            return True
        return self.next_scn > scn

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "LogFile":
        """
        Build a LogFile from a log catalog row

        Args:
            row: Row with FILE_NAME, FIRST_CHANGE, NEXT_CHANGE, STATUS, TYPE, SEQ, THREAD

        Returns:
            LogFile instance
        """
        log_type = LogFileType.ARCHIVE if row["TYPE"] == "ARCHIVED" else LogFileType.REDO
        status = (row.get("STATUS") or "").upper()

        return cls(
            file_name=row["FILE_NAME"],
            first_scn=parse_scn(row["FIRST_CHANGE"]),
            next_scn=parse_scn(row["NEXT_CHANGE"]),
            sequence=int(row["SEQ"]),
            thread=int(row["THREAD"]),
            log_type=log_type,
            is_current=log_type == LogFileType.REDO and status == "CURRENT",
        )
