"""Endpoint registry: validated, tenant-isolated CRUD for endpoints.

Every read and write is scoped to the owning tenant. An endpoint owned by
someone else is reported exactly like a missing one.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import pydantic
from pydantic import HttpUrl, TypeAdapter

from courier.config import Settings
from courier.exceptions import ForbiddenError, NotFoundError, QuotaExceededError, ValidationError
from courier.logging import get_logger
from courier.models import (
    EVENT_CATALOG,
    Endpoint,
    RegistrationResult,
    TestDeliveryResult,
    utc_now,
)

from .signing import generate_secret

if TYPE_CHECKING:
    from courier.models import EndpointPatch, EndpointSpec
    from courier.storage import EndpointStore

logger = get_logger(__name__)

Tester = Callable[[Endpoint], Awaitable[TestDeliveryResult]]

_http_url = TypeAdapter(HttpUrl)


class EndpointRegistry:
    """Owns endpoint configuration for every tenant.

    Create and update run a synchronous probe delivery (``webhook.test``)
    through the configured tester. A failing probe never blocks the write;
    its outcome is returned alongside the endpoint.

    Example:
        ```python
        registry = EndpointRegistry(store, settings, tester=dispatcher.test_delivery)
        result = await registry.create(
            "tenant_1",
            EndpointSpec(url="https://example.com/hooks", events=["message.received"]),
        )
        if result.test and not result.test.success:
            print("Endpoint saved but unreachable:", result.test.error)
        ```
    """

    def __init__(
        self,
        store: EndpointStore,
        settings: Settings | None = None,
        tester: Tester | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or Settings()
        self._tester = tester

    def set_tester(self, tester: Tester | None) -> None:
        """Set the probe used after create and after URL/event updates."""
        self._tester = tester

    @staticmethod
    def supported_events() -> list[str]:
        """Event names an endpoint can subscribe to."""
        return list(EVENT_CATALOG)

    async def create(self, owner_id: str, spec: EndpointSpec) -> RegistrationResult:
        """Register a new endpoint for an owner.

        Raises:
            ValidationError: Bad URL, unknown event or out-of-range settings.
            QuotaExceededError: Owner already holds the plan's maximum.
            ForbiddenError: The scope belongs to another owner.
        """
        self._validate_url(spec.url)
        self._validate_events(spec.events)
        if spec.scope_id is not None:
            await self._check_scope(owner_id, spec.scope_id)
        await self._check_quota(owner_id)

        endpoint = self._build(
            owner_id=owner_id,
            scope_id=spec.scope_id,
            url=spec.url,
            secret=generate_secret() if spec.secret is None else spec.secret,
            events=spec.events,
            headers=spec.headers,
            timeout_ms=(
                self._settings.default_timeout_ms if spec.timeout_ms is None else spec.timeout_ms
            ),
            retry_policy=spec.retry_policy or self._settings.default_retry_policy,
            description=spec.description,
        )
        await self._store.store_endpoint(endpoint)
        logger.info("endpoint_created", endpoint_id=endpoint.id, owner_id=owner_id, url=endpoint.url)

        test = await self._probe(endpoint)
        return RegistrationResult(endpoint=endpoint, test=test)

    async def get(self, endpoint_id: str, owner_id: str) -> Endpoint:
        """Get an owner's endpoint.

        Raises:
            NotFoundError: Missing, or owned by another tenant.
        """
        endpoint = await self._store.get_endpoint(endpoint_id)
        if endpoint is None or endpoint.owner_id != owner_id:
            raise NotFoundError("endpoint", endpoint_id)
        return endpoint

    async def list_for_owner(self, owner_id: str, scope_id: str | None = None) -> list[Endpoint]:
        """List an owner's endpoints, newest first."""
        return await self._store.list_endpoints(owner_id, scope_id)

    async def update(
        self,
        endpoint_id: str,
        owner_id: str,
        patch: EndpointPatch,
    ) -> RegistrationResult:
        """Apply an owner's partial update.

        Setting ``active=True`` re-enables an endpoint the circuit breaker
        deactivated; its counters are kept.

        Raises:
            NotFoundError: Missing, or owned by another tenant.
            ValidationError: Invalid new values.
        """
        current = await self.get(endpoint_id, owner_id)
        changes = patch.changes()
        if not changes:
            return RegistrationResult(endpoint=current)

        if "url" in changes:
            self._validate_url(str(changes["url"]))
        if "events" in changes:
            self._validate_events(changes["events"])  # type: ignore[arg-type]

        candidate = self._build(**{**current.model_dump(), **changes, "updated_at": utc_now()})
        validated = {name: getattr(candidate, name) for name in [*changes, "updated_at"]}

        updated = await self._store.update_endpoint(endpoint_id, validated)
        if updated is None:
            raise NotFoundError("endpoint", endpoint_id)
        logger.info("endpoint_updated", endpoint_id=endpoint_id, fields=sorted(changes))

        test = None
        if "url" in changes or "events" in changes:
            test = await self._probe(updated)
        return RegistrationResult(endpoint=updated, test=test)

    async def delete(self, endpoint_id: str, owner_id: str) -> None:
        """Delete an owner's endpoint and its history.

        Attempts already queued for it are abandoned when they come due.

        Raises:
            NotFoundError: Missing, or owned by another tenant.
        """
        await self.get(endpoint_id, owner_id)
        await self._store.delete_endpoint(endpoint_id)
        logger.info("endpoint_deleted", endpoint_id=endpoint_id, owner_id=owner_id)

    async def regenerate_secret(self, endpoint_id: str, owner_id: str) -> str:
        """Replace the endpoint's signing secret.

        Returns:
            The new secret.
        """
        await self.get(endpoint_id, owner_id)
        secret = generate_secret()
        await self._store.update_endpoint(endpoint_id, {"secret": secret, "updated_at": utc_now()})
        logger.info("endpoint_secret_regenerated", endpoint_id=endpoint_id)
        return secret

    async def _check_scope(self, owner_id: str, scope_id: str) -> None:
        scope_owner = await self._store.get_scope_owner(scope_id)
        if scope_owner is not None and scope_owner != owner_id:
            raise ForbiddenError(f"Scope {scope_id} belongs to another owner")

    async def _check_quota(self, owner_id: str) -> None:
        plan = await self._store.get_owner_plan(owner_id) or self._settings.default_plan
        limit = self._settings.endpoint_limit(plan)
        existing = await self._store.count_endpoints(owner_id)
        if existing >= limit:
            raise QuotaExceededError(plan, limit)

    async def _probe(self, endpoint: Endpoint) -> TestDeliveryResult | None:
        if self._tester is None:
            return None
        result = await self._tester(endpoint)
        if not result.success:
            logger.warning(
                "endpoint_probe_failed",
                endpoint_id=endpoint.id,
                url=endpoint.url,
                error=result.error,
            )
        return result

    def _validate_url(self, url: str) -> None:
        if len(url) > self._settings.url_max_length:
            raise ValidationError(
                "url", f"must be at most {self._settings.url_max_length} characters"
            )
        try:
            _http_url.validate_python(url)
        except pydantic.ValidationError as e:
            raise ValidationError("url", "must be an absolute http or https URL") from e

    @staticmethod
    def _validate_events(events: list[str]) -> None:
        if not events:
            raise ValidationError("events", "at least one event is required")
        unknown = [event for event in events if event not in EVENT_CATALOG]
        if unknown:
            raise ValidationError("events", f"unsupported events: {', '.join(unknown)}")

    @staticmethod
    def _build(**fields: Any) -> Endpoint:
        """Construct an Endpoint, reporting field errors as ValidationError."""
        try:
            return Endpoint.model_validate(fields)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "endpoint"
            raise ValidationError(field, first["msg"]) from e
