"""
Replay protection for creation requests.

A creation request may carry an idempotency key. The first request with a
key creates the entity and records which entity it produced; a retry with
the same key and the same request body gets that entity back. Reusing the
key for a different request is refused.
"""

import hashlib
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from storefront.domain import IdempotencyRecord
from storefront.errors import IdempotencyKeyReusedError
from storefront.locks import KeyedLocks
from storefront.repositories.idempotency import IdempotencyRepository
from storefront.retry import RetryPolicy, run_with_retry
from storefront.validation import ensure_idempotency_repository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def request_fingerprint(payload: Dict[str, Any]) -> str:
    """Stable hash of a request body."""
    canonical = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class IdempotencyGuard:
    def __init__(
        self,
        idempotency_repo: IdempotencyRepository,
        locks: KeyedLocks,
        retry_policy: RetryPolicy,
    ) -> None:
        self.idempotency_repo = ensure_idempotency_repository(
            idempotency_repo
        )
        self.locks = locks
        self.retry_policy = retry_policy

    async def run(
        self,
        scope: str,
        key: Optional[str],
        payload: Dict[str, Any],
        create: Callable[[], Awaitable[T]],
        load: Callable[[int], Awaitable[T]],
        entity_id: Callable[[T], int],
    ) -> T:
        """Create once per key.

        Args:
            scope: Kind of request, e.g. "order"
            key: Client-supplied idempotency key; None disables replay
            payload: Request body the key is bound to
            create: Performs the creation
            load: Loads a previously created entity by id
            entity_id: Extracts the id of a created entity

        Raises:
            IdempotencyKeyReusedError: key seen before with another payload
        """
        if not key:
            return await create()

        fingerprint = request_fingerprint(payload)

        async def attempt() -> T:
            async with self.locks.hold((scope, key)):
                record = await self.idempotency_repo.get(scope, key)
                if record is not None:
                    if record.request_hash != fingerprint:
                        logger.warning(
                            "Idempotency key reused with a different request",
                            extra={"scope": scope, "idempotency_key": key},
                        )
                        raise IdempotencyKeyReusedError(scope, key)
                    logger.info(
                        "Replaying idempotent request",
                        extra={
                            "scope": scope,
                            "idempotency_key": key,
                            "entity_id": record.entity_id,
                        },
                    )
                    return await load(record.entity_id)

                entity = await create()
                await self.idempotency_repo.save(
                    IdempotencyRecord(
                        key=key,
                        scope=scope,
                        request_hash=fingerprint,
                        entity_id=entity_id(entity),
                    )
                )
                return entity

        return await run_with_retry(
            attempt, self.retry_policy, f"idempotent {scope} creation"
        )
