"""
CDC snapshot offset resolution: SCN stabilization, log file selection and pending transactions
"""

from snapshot_offset.cdc.errors import ResolutionError, StabilizationError
from snapshot_offset.cdc.log_files import LogFileSelector
from snapshot_offset.cdc.snapshot_offset import SnapshotOffsetResolver, determine_snapshot_offset
from snapshot_offset.cdc.stabilizer import SequenceNumberStabilizer, StabilizationPolicy
from snapshot_offset.cdc.transactions import PendingTransactionTracker

__all__ = [
    "determine_snapshot_offset",
    "LogFileSelector",
    "PendingTransactionTracker",
    "ResolutionError",
    "SequenceNumberStabilizer",
    "SnapshotOffsetResolver",
    "StabilizationError",
    "StabilizationPolicy",
]
