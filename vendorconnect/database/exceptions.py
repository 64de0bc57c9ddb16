"""Custom exceptions for database operations."""

from ..exceptions import VendorConnectError


class DatabaseError(VendorConnectError):
    """Base exception for database errors."""
    pass


class DatabaseConstraintError(DatabaseError):
    """Database constraint violation (duplicate, foreign key, etc)."""
    status_code = 400


class DatabaseOperationError(DatabaseError):
    """General database operation failed."""
    pass
