"""
Source database access for snapshot offset resolution
"""

from snapshot_offset.db.connection import BaseConnection, DatabaseError

__all__ = ["BaseConnection", "DatabaseError"]
