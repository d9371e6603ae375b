"""
Configuration models and loaders
"""

from snapshot_offset.config.loader import load_config
from snapshot_offset.config.settings import SnapshotOffsetSettings

__all__ = ["load_config", "SnapshotOffsetSettings"]
