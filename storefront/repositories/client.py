"""
ClientRepository protocol.
"""

from typing import List, Optional, Protocol, runtime_checkable

from storefront.domain import Client
from storefront.repositories.base import BaseRepository


@runtime_checkable
class ClientRepository(BaseRepository[Client], Protocol):
    """Client storage. Email addresses are unique across clients."""

    async def get_by_email(self, email: str) -> Optional[Client]:
        """Look a client up by email, case-insensitively."""
        ...

    async def list_all(self) -> List[Client]:
        ...
