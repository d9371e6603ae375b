"""
Snapshot offset resolution for Oracle LogMiner change data capture
"""

__version__ = "1.0.0"
