"""Application error taxonomy.

Every error raised by the services carries an ``ErrorCode`` that fixes the
HTTP status returned to the caller and whether retrying the same request can
succeed. The exception handlers in ``copay_ledger.main`` turn these into
``ErrorResponse`` bodies.

    ApiError
    ├── ResourceNotFoundError     404, not retryable
    ├── InvalidInputError         400, not retryable
    ├── InvalidParameterError     400, not retryable
    ├── BusinessValidationError   422, not retryable
    ├── ConcurrencyConflictError  500, retryable
    └── CreditLedgerInvariantError 500, not retryable
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes with their HTTP status and retry policy."""

    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INPUT_INVALID = "INPUT_INVALID"
    PARAMETER_INVALID = "PARAMETER_INVALID"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BUSINESS_VALIDATION_ERROR = "BUSINESS_VALIDATION_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    LEDGER_INCONSISTENT = "LEDGER_INCONSISTENT"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def retryable(self) -> bool:
        return self is ErrorCode.INTERNAL_SERVER_ERROR


_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.INPUT_INVALID: 400,
    ErrorCode.PARAMETER_INVALID: 400,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.BUSINESS_VALIDATION_ERROR: 422,
    ErrorCode.INTERNAL_SERVER_ERROR: 500,
    ErrorCode.LEDGER_INCONSISTENT: 500,
}


class ApiError(Exception):
    """Base class for errors that are reported to API callers."""

    error_code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return self.error_code.http_status

    @property
    def retryable(self) -> bool:
        return self.error_code.retryable

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


class ResourceNotFoundError(ApiError):
    """A referenced resource does not exist or is not eligible for the operation."""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            f"{resource} not found with id: {identifier}",
            details={"resource": resource, "id": str(identifier)},
        )


class InvalidInputError(ApiError):
    error_code = ErrorCode.INPUT_INVALID

    def __init__(self, field: str, value: Any):
        super().__init__(
            f"Invalid value '{value}' for field '{field}'",
            details={"field": field, "value": str(value)},
        )


class InvalidParameterError(ApiError):
    error_code = ErrorCode.PARAMETER_INVALID

    def __init__(self, parameter: str):
        super().__init__(
            f"Unsupported query parameter: {parameter}",
            details={"parameter": parameter},
        )


class BusinessValidationError(ApiError):
    """A business rule rejected the request; the caller must correct it."""

    error_code = ErrorCode.BUSINESS_VALIDATION_ERROR

    def __init__(self, reason: str, message: str, details: dict[str, Any] | None = None):
        self.reason = reason
        super().__init__(message, details={"reason": reason, **(details or {})})


class ConcurrencyConflictError(ApiError):
    """A conditional write kept losing to concurrent writers."""

    error_code = ErrorCode.INTERNAL_SERVER_ERROR


class CreditLedgerInvariantError(ApiError):
    """The credit ledger is internally inconsistent.

    Raised when a reversal finds an OVERPAYMENT_CREDIT entry with no matching
    balance row, or a balance too small to absorb the reversal. This is never
    a user error.
    """

    error_code = ErrorCode.LEDGER_INCONSISTENT
