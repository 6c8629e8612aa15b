"""
Error taxonomy for the matching engine.

Every failure reported to a caller is one of these types. Empty results
(no candidates, everything below threshold) are never errors.
"""


class ReconError(Exception):
    """Base class for all matching-engine errors."""
    pass


class InvalidArgument(ReconError, ValueError):
    """Raised when an ingestion call is malformed (empty ids, empty attribute lists)."""
    pass


class InvalidQuery(ReconError, ValueError):
    """Raised when a recommend query is malformed or its counts are inconsistent."""
    pass


class StorageUnavailable(ReconError):
    """Raised when the storage collaborator fails. Not retried at this layer."""
    pass
