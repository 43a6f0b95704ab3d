"""Domain errors raised by the store services."""
from typing import Optional


class MiniprobeError(Exception):
    """Base class for all store errors."""
    pass


class NotFoundError(MiniprobeError):
    """A referenced record no longer exists."""

    def __init__(self, resource: str = "Resource", resource_id: Optional[int] = None):
        self.resource = resource
        self.resource_id = resource_id
        detail = f"{resource} not found"
        if resource_id is not None:
            detail = f"{resource} with ID {resource_id} not found"
        super().__init__(detail)


class ConflictError(MiniprobeError):
    """A uniqueness constraint would be violated (e.g. duplicate token hash)."""
    pass


class InvalidInputError(MiniprobeError):
    """A required field is missing or malformed."""
    pass


class UnauthorizedError(MiniprobeError):
    """A presented client token matches no registered client."""
    pass


class ConstraintViolationError(MiniprobeError):
    """The database rejected a write because of an integrity constraint."""
    pass


class StorageUnavailableError(MiniprobeError):
    """Transient engine-level failure. Callers may retry."""
    pass
