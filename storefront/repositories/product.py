"""
ProductRepository protocol.

Products are never hard-deleted: removal sets the ``deleted`` flag so that
order lines keep resolving to the product they were priced from. Every
mutation of an existing product goes through ``compare_and_set`` so that
concurrent writers are detected instead of silently overwriting each other.
"""

from typing import Dict, Iterable, List, Protocol, runtime_checkable

from storefront.domain import Product
from storefront.repositories.base import BaseRepository


@runtime_checkable
class ProductRepository(BaseRepository[Product], Protocol):
    """Catalog storage.

    ``save`` is used to insert new products. Updates to stored products,
    including stock movements, use ``compare_and_set``.
    """

    async def list_all(self, include_deleted: bool = False) -> List[Product]:
        """List products ordered by id.

        Args:
            include_deleted: Include soft-deleted products
        """
        ...

    async def get_many(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """Fetch several products at once.

        Returns:
            Mapping of product id to product. Unknown ids are absent from
            the mapping rather than raising.
        """
        ...

    async def compare_and_set(
        self, product: Product, expected_version: int
    ) -> None:
        """Replace a stored product if its version is still
        ``expected_version``.

        Args:
            product: New product state; its version must be greater than
                ``expected_version``
            expected_version: Version the caller read before changing it

        Raises:
            NotFoundError: if the product does not exist
            StaleVersionError: if another writer got there first
        """
        ...
