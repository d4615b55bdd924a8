"""
OrderRepository protocol.
"""

from typing import List, Optional, Protocol, runtime_checkable

from storefront.domain import Order, OrderStatus
from storefront.repositories.base import BaseRepository


@runtime_checkable
class OrderRepository(BaseRepository[Order], Protocol):
    """Order storage.

    Implementation Notes:
    - ``save`` is called only after every guard of a transition passed,
      while the caller holds the order's lock
    - Listings are ordered by order id
    """

    async def list_all(self, client_id: Optional[int] = None) -> List[Order]:
        """List orders, optionally restricted to one client."""
        ...

    async def list_by_status(
        self, status: OrderStatus, client_id: Optional[int] = None
    ) -> List[Order]:
        """List orders in ``status``, optionally restricted to one
        client."""
        ...
