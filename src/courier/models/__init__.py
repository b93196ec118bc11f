"""Data models for Courier.

Endpoint Types:
    - Endpoint: A tenant's registered delivery target
    - RetryPolicy: Exponential backoff schedule
    - EndpointSpec / EndpointPatch: Owner input for create/update

Delivery Types:
    - EventEnvelope: Immutable payload wrapper sent to endpoints
    - DeliveryAttempt: One try to deliver one envelope (transient)
    - DeliveryLogEntry: Observed outcome of an attempt
    - DeliveryStats: Per-endpoint statistics
    - TestDeliveryResult / RegistrationResult: Probe outcomes
"""

from .base import generate_id, utc_now
from .delivery import (
    AttemptState,
    DeliveryAttempt,
    DeliveryLogEntry,
    DeliveryStats,
    RegistrationResult,
    TestDeliveryResult,
)
from .endpoint import (
    EVENT_CATALOG,
    TEST_EVENT,
    Endpoint,
    EndpointPatch,
    EndpointSpec,
    EventName,
    PlanTier,
    RetryPolicy,
)
from .envelope import EventEnvelope

__all__ = [
    # Helpers
    "generate_id",
    "utc_now",
    # Endpoint types
    "EVENT_CATALOG",
    "TEST_EVENT",
    "Endpoint",
    "EndpointPatch",
    "EndpointSpec",
    "EventName",
    "PlanTier",
    "RetryPolicy",
    # Delivery types
    "AttemptState",
    "DeliveryAttempt",
    "DeliveryLogEntry",
    "DeliveryStats",
    "EventEnvelope",
    "RegistrationResult",
    "TestDeliveryResult",
]
