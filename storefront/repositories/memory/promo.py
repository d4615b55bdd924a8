"""
Memory implementation of PromoCodeRepository.
"""

import logging
from typing import Dict, List, Optional

from storefront.domain import PromoCode
from storefront.repositories.promo import PromoCodeRepository

logger = logging.getLogger(__name__)


class MemoryPromoCodeRepository(PromoCodeRepository):
    def __init__(self) -> None:
        self._codes: Dict[str, PromoCode] = {}

    async def get(self, code: str) -> Optional[PromoCode]:
        promo = self._codes.get(code)
        return promo.model_copy(deep=True) if promo else None

    async def save(self, promo: PromoCode) -> None:
        self._codes[promo.code] = promo.model_copy(deep=True)

    async def list_all(self) -> List[PromoCode]:
        return [
            self._codes[code].model_copy(deep=True)
            for code in sorted(self._codes)
        ]

    async def redeem(self, code: str, client_id: int) -> bool:
        # No await between the check and the write
        promo = self._codes.get(code)
        if promo is None or not promo.active:
            return False
        if promo.single_use and client_id in promo.redeemed_by:
            return False
        promo.redeemed_by.add(client_id)
        logger.info(
            "MemoryPromoCodeRepository: Promo code redeemed",
            extra={"promo_code": code, "client_id": client_id},
        )
        return True

    async def release(self, code: str, client_id: int) -> None:
        promo = self._codes.get(code)
        if promo is not None:
            promo.redeemed_by.discard(client_id)
