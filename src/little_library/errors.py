"""
Error taxonomy for the Little Library MCP Server.

Every failure a tool can report maps onto one of these classes:

1. **RequestValidationError**: malformed input, raised before any storage access
2. **NotFoundError**: entity absent *or* owned by another organization
3. **ConflictError**: a precondition on current state was violated
4. **CollisionExhaustedError**: no free emoji ID within the attempt budget
5. **StoreUnavailableError**: transient database failure, safe to retry

Each class carries an HTTP-like ``status_code`` so tool responses keep the
same semantics as the REST endpoints they replace.
"""

from typing import Any

from pydantic import ValidationError


class LibraryError(Exception):
    """Base exception for all domain and store errors."""

    status_code: int = 500
    error_type: str = "internal_error"
    retryable: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the ``error`` block of a tool response."""
        return {
            "type": self.error_type,
            "status": self.status_code,
            "message": str(self),
            "retryable": self.retryable,
        }


class RequestValidationError(LibraryError):
    """Raised when tool arguments fail schema validation."""

    status_code = 400
    error_type = "validation_error"

    def __init__(self, message: str, fields: list[dict[str, str]] | None = None):
        super().__init__(message)
        self.fields = fields or []

    @classmethod
    def from_pydantic(cls, exc: ValidationError, message: str = "Validation error"):
        """Collect every violated field from a Pydantic error."""
        fields = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"]) or "__root__"
            fields.append({"field": location, "message": error["msg"]})
        return cls(message, fields)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["details"] = self.fields
        return data


class NotFoundError(LibraryError):
    """Raised when an entity does not resolve under the active tenant."""

    status_code = 404
    error_type = "not_found"


class ConflictError(LibraryError):
    """Raised when the current state rejects the requested transition."""

    status_code = 409
    error_type = "conflict"


class CopyUnavailableError(ConflictError):
    """Raised when a copy is not available for checkout."""

    # The checkout endpoint reports unavailable copies as a bad request
    status_code = 400

    def __init__(self, copy_id: str, status: str | None = None):
        message = "Copy is not available"
        if status:
            message = f"Copy is not available (current status: {status})"
        super().__init__(message)
        self.copy_id = copy_id
        self.status = status


class LoanAlreadyReturnedError(ConflictError):
    """Raised when returning a loan that is already closed."""

    status_code = 400

    def __init__(self, loan_id: str):
        super().__init__("Book already returned")
        self.loan_id = loan_id


class CollisionExhaustedError(LibraryError):
    """Raised when no unique emoji ID was found within the attempt budget."""

    status_code = 500
    error_type = "identifier_space_exhausted"

    def __init__(self, attempts: int):
        super().__init__(f"Unable to generate unique emoji ID after {attempts} attempts")
        self.attempts = attempts


class StoreUnavailableError(LibraryError):
    """Raised when the record store fails for infrastructure reasons."""

    status_code = 503
    error_type = "store_unavailable"
    retryable = True
