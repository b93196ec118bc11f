"""Courier: signed webhook delivery for multi-tenant platforms.

Turns internal domain events into signed HTTP calls to tenant-owned
endpoints, retries failures with bounded exponential backoff, deactivates
chronically failing endpoints and keeps per-endpoint delivery history.

Quick Start:
    from courier.models import EndpointSpec
    from courier.service import WebhookService

    async with WebhookService.create() as courier:
        await courier.create_endpoint(
            owner_id="tenant_1",
            spec=EndpointSpec(url="https://example.com/hooks", events=["message.received"]),
        )
        await courier.trigger("message.received", {"from": "X"}, owner_id="tenant_1")
"""

__version__ = "0.1.0"

# Configuration
from .config import BreakerSettings, Settings, settings

# Exceptions
from .exceptions import (
    ConfigurationError,
    CourierError,
    DeliveryError,
    ForbiddenError,
    NotFoundError,
    QuotaExceededError,
    RetriesExhaustedError,
    StorageError,
    ValidationError,
)

# Logging
from .logging import configure_logging, get_logger, log_context

# Models
from .models import (
    EVENT_CATALOG,
    DeliveryLogEntry,
    DeliveryStats,
    Endpoint,
    EndpointPatch,
    EndpointSpec,
    EventEnvelope,
    RetryPolicy,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "BreakerSettings",
    "Settings",
    "settings",
    # Exceptions
    "CourierError",
    "ValidationError",
    "QuotaExceededError",
    "NotFoundError",
    "ForbiddenError",
    "DeliveryError",
    "RetriesExhaustedError",
    "StorageError",
    "ConfigurationError",
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
    # Models
    "EVENT_CATALOG",
    "DeliveryLogEntry",
    "DeliveryStats",
    "Endpoint",
    "EndpointPatch",
    "EndpointSpec",
    "EventEnvelope",
    "RetryPolicy",
]
