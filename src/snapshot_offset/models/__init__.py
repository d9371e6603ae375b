"""
Data models for snapshot offset resolution
"""

from snapshot_offset.models.log_file import LogFile, LogFileType
from snapshot_offset.models.offset import SnapshotOffset, TransactionBoundaryMode

__all__ = ["LogFile", "LogFileType", "SnapshotOffset", "TransactionBoundaryMode"]
