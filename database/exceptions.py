"""Database exceptions."""

class DatabaseError(Exception):
    """Base class for database errors."""
    pass

class DatabaseSchemaError(DatabaseError):
    """Raised when schema loading or migration fails."""
    pass

class DuplicateRecordError(DatabaseError):
    """Raised when a write violates a uniqueness constraint."""
    def __init__(self, table: str, constraint: str):
        self.table = table
        self.constraint = constraint
        super().__init__(f"Duplicate record in {table} ({constraint})")

class TransactionConflictError(DatabaseError):
    """Raised when a transaction could not be serialized and may be retried."""
    pass

__all__ = [
    'DatabaseError',
    'DatabaseSchemaError',
    'DuplicateRecordError',
    'TransactionConflictError'
]
