"""
Memory implementations of UserRepository and SessionRepository.
"""

import itertools
import logging
import secrets
from typing import Dict, Optional

from storefront.domain import Principal, User
from storefront.repositories.user import SessionRepository, UserRepository

from .base import MemoryRepositoryMixin

logger = logging.getLogger(__name__)


class MemoryUserRepository(UserRepository, MemoryRepositoryMixin[User]):
    def __init__(self) -> None:
        self.logger = logger
        self.entity_name = "User"
        self.storage_dict: Dict[int, User] = {}
        self.id_counter = itertools.count(1)

    async def get(self, user_id: int) -> Optional[User]:
        return self.get_entity(user_id)

    async def save(self, user: User) -> None:
        self.save_entity(user, "user_id")

    async def generate_id(self) -> int:
        return self.generate_entity_id()

    async def get_by_username(self, username: str) -> Optional[User]:
        for user in self.storage_dict.values():
            if user.username == username:
                return user.model_copy(deep=True)
        return None


class MemorySessionRepository(SessionRepository):
    def __init__(self) -> None:
        self._sessions: Dict[str, Principal] = {}

    async def create(self, principal: Principal) -> str:
        token = secrets.token_urlsafe(32)
        self._sessions[token] = principal
        return token

    async def get(self, token: str) -> Optional[Principal]:
        return self._sessions.get(token)

    async def delete(self, token: str) -> None:
        self._sessions.pop(token, None)
