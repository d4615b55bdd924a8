"""
UserRepository and SessionRepository protocols.
"""

from typing import Optional, Protocol, runtime_checkable

from storefront.domain import Principal, User
from storefront.repositories.base import BaseRepository


@runtime_checkable
class UserRepository(BaseRepository[User], Protocol):
    async def get_by_username(self, username: str) -> Optional[User]:
        ...


@runtime_checkable
class SessionRepository(Protocol):
    """Opaque session tokens mapped to the principal that logged in."""

    async def create(self, principal: Principal) -> str:
        """Open a session and return its token."""
        ...

    async def get(self, token: str) -> Optional[Principal]:
        ...

    async def delete(self, token: str) -> None:
        """Close a session. Unknown tokens are ignored."""
        ...
