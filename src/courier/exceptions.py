"""Courier exception hierarchy.

Provides structured exceptions for error handling throughout the codebase.
All exceptions inherit from CourierError for easy catching.

Synchronous errors (validation, quota, tenant isolation) surface to the
caller of a registry operation. Delivery errors stay inside the worker and
are only observable through the delivery log and endpoint counters.
"""

from __future__ import annotations


class CourierError(Exception):
    """Base exception for all Courier errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "courier_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(CourierError):
    """Invalid input provided.

    Raised for a bad URL, an unknown event name or a malformed retry policy.
    Rejected synchronously, never enqueued.

    Attributes:
        field: The field that failed validation.
        message: Description of the validation failure.
    """

    code: str = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
            }
        }


class QuotaExceededError(CourierError):
    """Owner is at the endpoint limit of their plan.

    Attributes:
        plan: Plan tier of the owner.
        limit: Maximum endpoints allowed on that plan.
    """

    code: str = "quota_exceeded"

    def __init__(self, plan: str, limit: int) -> None:
        self.plan = plan
        self.limit = limit
        super().__init__(f"Maximum endpoints limit ({limit}) reached for {plan} plan")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "plan": self.plan,
                "limit": self.limit,
                "message": self.message,
            }
        }


class NotFoundError(CourierError):
    """Resource not found.

    Also raised for resources owned by another tenant, so that cross-tenant
    reads cannot be told apart from missing records.

    Attributes:
        resource_type: Type of resource (e.g., "endpoint").
        resource_id: ID of the missing resource.
    """

    code: str = "not_found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "resource_type": self.resource_type,
                "resource_id": self.resource_id,
                "message": self.message,
            }
        }


class ForbiddenError(CourierError):
    """Caller may not act on a scope it does not own."""

    code: str = "forbidden"


class DeliveryError(CourierError):
    """A single delivery attempt failed.

    Covers transport errors, timeouts and non-2xx responses. Recoverable:
    the worker schedules a retry while the policy allows it.

    Attributes:
        status_code: HTTP status if a response was received.
    """

    code: str = "delivery_failed"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RetriesExhaustedError(CourierError):
    """Every attempt allowed by the retry policy has failed.

    Terminal. Logged by the worker and never raised to an event producer.

    Attributes:
        endpoint_id: Endpoint the envelope was addressed to.
        attempts: Number of attempts made.
    """

    code: str = "retries_exhausted"

    def __init__(self, endpoint_id: str, attempts: int, last_error: str | None = None) -> None:
        self.endpoint_id = endpoint_id
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Delivery to {endpoint_id} abandoned after {attempts} attempts: {last_error}"
        )


class StorageError(CourierError):
    """Storage operation failed."""

    code: str = "storage_error"


class ConfigurationError(CourierError):
    """Configuration error.

    Raised when required configuration is missing or invalid.
    """

    code: str = "configuration_error"
