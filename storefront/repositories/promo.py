"""
PromoCodeRepository protocol.

The registry is only consulted under the strict promo policy.
"""

from typing import List, Optional, Protocol, runtime_checkable

from storefront.domain import PromoCode


@runtime_checkable
class PromoCodeRepository(Protocol):
    async def get(self, code: str) -> Optional[PromoCode]:
        ...

    async def save(self, promo: PromoCode) -> None:
        ...

    async def list_all(self) -> List[PromoCode]:
        ...

    async def redeem(self, code: str, client_id: int) -> bool:
        """Record that ``client_id`` used ``code``.

        Returns:
            False if the code is unknown, inactive, or single-use and
            already redeemed by this client; True once recorded

        Implementation Notes:
        - The check and the write must not be interleaved with another
          redemption of the same code
        """
        ...

    async def release(self, code: str, client_id: int) -> None:
        """Undo a redemption. Used to compensate a failed order placement.
        Releasing a redemption that was never recorded is a no-op."""
        ...
