"""
Memory repository implementations.

These use Python dictionaries for storage. They keep the same async
interfaces as any persistent implementation would, and back both the test
suite and the default application wiring.
"""

from .client import MemoryClientRepository
from .idempotency import MemoryIdempotencyRepository
from .order import MemoryOrderRepository
from .payment import MemoryPaymentRepository
from .product import MemoryProductRepository
from .promo import MemoryPromoCodeRepository
from .user import MemorySessionRepository, MemoryUserRepository

__all__ = [
    "MemoryClientRepository",
    "MemoryIdempotencyRepository",
    "MemoryOrderRepository",
    "MemoryPaymentRepository",
    "MemoryProductRepository",
    "MemoryPromoCodeRepository",
    "MemorySessionRepository",
    "MemoryUserRepository",
]
