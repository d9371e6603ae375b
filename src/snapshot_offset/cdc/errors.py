"""
Snapshot offset resolution errors
"""


class ResolutionError(Exception):
    """Snapshot offset could not be resolved; the underlying cause is chained"""

    pass


class StabilizationError(ResolutionError):
    """Current SCN did not leave the reference timestamp bucket within the allowed attempts"""

    pass
