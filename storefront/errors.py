"""
Error taxonomy for the order pricing and lifecycle engine.

Business-rule failures are raised as subclasses of StorefrontError. Each
carries a stable machine-readable ``code`` and the HTTP status the API layer
renders it with. Transient contention errors (TransientError) are internal:
the retry layer consumes them and surfaces ConcurrencyConflictError once
the retry budget is exhausted.
"""

from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base class for errors that are part of the engine's contract."""

    code = "STOREFRONT_ERROR"
    status_code = 500

    def __init__(
        self, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(StorefrontError):
    """Malformed or missing required fields, or a violated amount rule."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidOrderError(ValidationError):
    """The order request cannot be priced (empty, bad quantity, deleted
    product)."""

    code = "INVALID_ORDER"


class NotFoundError(StorefrontError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity} {entity_id} not found",
            {"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class AuthenticationError(StorefrontError):
    code = "UNAUTHENTICATED"
    status_code = 401


class UnauthorizedError(StorefrontError):
    """An authenticated user attempted an action reserved to another
    role."""

    code = "FORBIDDEN"
    status_code = 403


class InsufficientStockError(StorefrontError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested "
            f"{requested}, available {available}",
            {
                "productId": product_id,
                "requested": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidStateTransitionError(StorefrontError):
    code = "INVALID_STATE_TRANSITION"
    status_code = 409

    def __init__(
        self, entity: str, entity_id: Any, current: str, requested: str
    ) -> None:
        super().__init__(
            f"{entity} {entity_id} cannot transition from {current} to "
            f"{requested}",
            {
                "entity": entity,
                "id": entity_id,
                "current": current,
                "requested": requested,
            },
        )
        self.current = current
        self.requested = requested


class ConcurrencyConflictError(StorefrontError):
    """Contention could not be resolved within the retry budget, or an
    idempotency key was reused for a different request. Retryable by the
    caller."""

    code = "CONCURRENCY_CONFLICT"
    status_code = 409


class TransientError(Exception):
    """Internal contention signal. Safe to retry; never crosses the API."""


class LockTimeoutError(TransientError):
    pass


class StaleVersionError(TransientError):
    pass


class OutstandingBalanceError(StorefrontError):
    """Confirmation refused because money is still owed on the order."""

    code = "OUTSTANDING_BALANCE"
    status_code = 409

    def __init__(self, order_id: int, remaining: Any) -> None:
        super().__init__(
            f"Order {order_id} cannot be confirmed while {remaining} "
            "remains unpaid",
            {"orderId": order_id, "remaining": str(remaining)},
        )
        self.remaining = remaining


class IdempotencyKeyReusedError(ConcurrencyConflictError):
    """An idempotency key was presented again with a different request."""

    code = "IDEMPOTENCY_KEY_REUSED"

    def __init__(self, scope: str, key: str) -> None:
        super().__init__(
            f"Idempotency key {key!r} was already used for a different "
            f"{scope} request",
            {"scope": scope, "key": key},
        )
