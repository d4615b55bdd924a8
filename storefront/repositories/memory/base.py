"""
Shared behaviour for the dictionary-backed repositories.
"""

import itertools
import logging
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class MemoryRepositoryMixin(Generic[T]):
    """Dictionary storage keyed by integer id.

    Classes using this mixin must set ``logger``, ``entity_name``,
    ``storage_dict`` and ``id_counter`` in their ``__init__``. Stored and
    returned entities are deep copies.
    """

    logger: logging.Logger
    entity_name: str
    storage_dict: Dict[int, T]
    id_counter: "itertools.count[int]"

    def get_entity(self, entity_id: int) -> Optional[T]:
        entity = self.storage_dict.get(entity_id)
        if entity is None:
            self.logger.debug(
                f"Memory{self.entity_name}Repository: "
                f"{self.entity_name} not found",
                extra={"entity_id": entity_id},
            )
            return None
        return entity.model_copy(deep=True)

    def save_entity(self, entity: T, id_field: str) -> None:
        entity_id = getattr(entity, id_field)
        self.storage_dict[entity_id] = entity.model_copy(deep=True)
        self.logger.debug(
            f"Memory{self.entity_name}Repository: {self.entity_name} saved",
            extra={"entity_id": entity_id},
        )

    def list_entities(self) -> List[T]:
        return [
            self.storage_dict[entity_id].model_copy(deep=True)
            for entity_id in sorted(self.storage_dict)
        ]

    def generate_entity_id(self) -> int:
        entity_id = next(self.id_counter)
        while entity_id in self.storage_dict:
            entity_id = next(self.id_counter)
        return entity_id
