"""
Exception classes for basesync.
"""

from typing import Any, Dict, Optional


class BaseSyncError(Exception):
    """Base exception for all basesync errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(BaseSyncError):
    """Raised when there's an error in configuration."""

    pass


class ValidationError(BaseSyncError):
    """Raised when there's a validation error."""

    pass


class SchemaDefinitionError(ValidationError):
    """Raised when a source schema definition cannot be loaded or is invalid."""

    pass


class DuplicateNameError(SchemaDefinitionError):
    """Raised when two tables, or two fields of a table, share a name ignoring case."""

    def __init__(
        self,
        kind: str,
        name: str,
        table_name: Optional[str] = None,
    ) -> None:
        message = f"Duplicate {kind} name '{name}'"
        if table_name:
            message += f" in table '{table_name}'"
        super().__init__(message, {"kind": kind})
        self.kind = kind
        self.name = name
        self.table_name = table_name


class StoreError(BaseSyncError):
    """Raised when there's an error talking to the schema store."""

    pass


class StoreUnavailable(StoreError):
    """Raised when the schema store cannot be reached or returns an invalid response."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details = {}
        if operation:
            details["operation"] = operation
        if status_code:
            details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body

        super().__init__(message, details, cause)
        self.operation = operation
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(StoreUnavailable):
    """Raised when the store keeps rate limiting after all retries."""

    def __init__(
        self,
        retry_after: Optional[float] = None,
        operation: Optional[str] = None,
    ) -> None:
        message = "Schema store rate limit exceeded"
        if retry_after:
            message += f", retry after {retry_after} seconds"

        super().__init__(message, operation=operation, status_code=429)
        self.retry_after = retry_after


class FieldApplicationFailed(StoreError):
    """A single field could not be added to a destination table."""

    def __init__(
        self,
        table_id: str,
        field_name: str,
        field_type: str,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            f"Failed to add field '{field_name}' ({field_type}) to table {table_id}",
            cause=cause,
        )
        self.table_id = table_id
        self.field_name = field_name
        self.field_type = field_type
