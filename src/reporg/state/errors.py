"""Record store errors."""


class StoreError(Exception):
    """Base exception for record store operations."""


class RecordNotFoundError(StoreError):
    """Raised when a record id does not exist in the store."""


class DuplicateRecordError(StoreError):
    """Raised when a uniqueness constraint would be violated."""
