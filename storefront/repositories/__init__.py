"""
Repository interfaces defined as Protocols.

Use case classes depend on these protocols, not on concrete
implementations. In-memory implementations live in
``storefront.repositories.memory``.
"""

from .base import BaseRepository
from .client import ClientRepository
from .idempotency import IdempotencyRepository
from .order import OrderRepository
from .payment import PaymentRepository
from .product import ProductRepository
from .promo import PromoCodeRepository
from .user import SessionRepository, UserRepository

__all__ = [
    "BaseRepository",
    "ClientRepository",
    "IdempotencyRepository",
    "OrderRepository",
    "PaymentRepository",
    "ProductRepository",
    "PromoCodeRepository",
    "SessionRepository",
    "UserRepository",
]
