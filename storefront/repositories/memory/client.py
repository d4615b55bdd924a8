"""
Memory implementation of ClientRepository.
"""

import itertools
import logging
from typing import Dict, List, Optional

from storefront.domain import Client
from storefront.repositories.client import ClientRepository

from .base import MemoryRepositoryMixin

logger = logging.getLogger(__name__)


class MemoryClientRepository(ClientRepository, MemoryRepositoryMixin[Client]):
    def __init__(self) -> None:
        self.logger = logger
        self.entity_name = "Client"
        self.storage_dict: Dict[int, Client] = {}
        self.id_counter = itertools.count(1)

    async def get(self, client_id: int) -> Optional[Client]:
        return self.get_entity(client_id)

    async def save(self, client: Client) -> None:
        self.save_entity(client, "client_id")

    async def generate_id(self) -> int:
        return self.generate_entity_id()

    async def get_by_email(self, email: str) -> Optional[Client]:
        email = email.strip().lower()
        for client in self.storage_dict.values():
            if client.email == email:
                return client.model_copy(deep=True)
        return None

    async def list_all(self) -> List[Client]:
        return self.list_entities()
