"""
Memory implementation of IdempotencyRepository.
"""

from typing import Dict, Optional, Tuple

from storefront.domain import IdempotencyRecord
from storefront.repositories.idempotency import IdempotencyRepository


class MemoryIdempotencyRepository(IdempotencyRepository):
    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], IdempotencyRecord] = {}

    async def get(self, scope: str, key: str) -> Optional[IdempotencyRecord]:
        return self._records.get((scope, key))

    async def save(self, record: IdempotencyRecord) -> None:
        self._records[(record.scope, record.key)] = record
