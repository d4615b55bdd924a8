"""
IdempotencyRepository protocol.

Records which entity a creation request produced so that a retried request
carrying the same ``Idempotency-Key`` gets the same entity back instead of
creating a second one.
"""

from typing import Optional, Protocol, runtime_checkable

from storefront.domain import IdempotencyRecord


@runtime_checkable
class IdempotencyRepository(Protocol):
    async def get(self, scope: str, key: str) -> Optional[IdempotencyRecord]:
        """Find the record for ``key`` within ``scope`` (e.g. "order")."""
        ...

    async def save(self, record: IdempotencyRecord) -> None:
        ...
