"""
PaymentRepository protocol.
"""

from typing import List, Protocol, runtime_checkable

from storefront.domain import Payment
from storefront.repositories.base import BaseRepository


@runtime_checkable
class PaymentRepository(BaseRepository[Payment], Protocol):
    """Payment ledger storage."""

    async def list_for_order(self, order_id: int) -> List[Payment]:
        """All payments recorded against an order, by payment number."""
        ...

    async def next_payment_number(self, order_id: int) -> int:
        """Allocate the next payment number for an order.

        Returns:
            1 for the first payment of an order, then consecutive integers

        Implementation Notes:
        - A number is consumed even if the caller later fails to save the
          payment; numbers are never handed out twice for the same order
        """
        ...
