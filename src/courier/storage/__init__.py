"""Storage backends for Courier.

Example:
    ```python
    from courier.storage import InMemoryEndpointStore

    store = InMemoryEndpointStore()
    endpoints = await store.list_endpoints(owner_id="tenant_1")
    ```
"""

from .base import EndpointStore
from .memory import InMemoryEndpointStore

__all__ = [
    "EndpointStore",
    "InMemoryEndpointStore",
]
