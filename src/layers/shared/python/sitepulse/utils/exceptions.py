"""Custom exception classes for Sitepulse."""


class SitepulseError(Exception):
    """Base exception for all Sitepulse errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 500,
        details: dict | None = None,
    ):
        """Initialize SitepulseError.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            status_code: HTTP status code for API responses.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(SitepulseError):
    """Raised when a requested resource or route is not found."""

    def __init__(self, resource_type: str, resource_id: str, message: str | None = None):
        """Initialize NotFoundError.

        Args:
            resource_type: Type of resource (e.g., "Route", "PaymentClick").
            resource_id: Identifier of the missing resource.
            message: Optional custom message.
        """
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            message=message or f"{resource_type} '{resource_id}' not found",
            error_code="NOT_FOUND",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ValidationError(SitepulseError):
    """Raised when user input is rejected."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: list[dict] | None = None,
    ):
        """Initialize ValidationError.

        Args:
            message: Error message.
            errors: List of validation errors with field and message.
        """
        self.errors = errors or []
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            details={"errors": self.errors},
        )


class PersistenceError(SitepulseError):
    """Raised when the document store rejects or fails an operation.

    The message is safe to log; API responses use a generic message.
    """

    def __init__(self, operation: str, original_error: str | None = None):
        """Initialize PersistenceError.

        Args:
            operation: Store operation that failed (e.g., "put_item").
            original_error: Underlying error text, for logs only.
        """
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            message=f"Store operation '{operation}' failed",
            error_code="PERSISTENCE_ERROR",
            status_code=500,
            details={"operation": operation},
        )


class UpstreamProviderError(SitepulseError):
    """Raised when an external geolocation provider call fails.

    Always recovered locally by the caller; never surfaced to clients.
    """

    def __init__(
        self,
        service: str,
        message: str | None = None,
        original_error: str | None = None,
    ):
        """Initialize UpstreamProviderError."""
        self.service = service
        self.original_error = original_error
        super().__init__(
            message=message or f"External service '{service}' returned an error",
            error_code="UPSTREAM_PROVIDER_ERROR",
            status_code=502,
            details={
                "service": service,
                "original_error": original_error,
            },
        )
