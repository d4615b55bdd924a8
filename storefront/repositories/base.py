"""
Generic base repository protocol for common CRUD operations.

All repository operations follow the same principles:

- **Idempotency**: saving the same entity state twice is safe, and reads
  never change state.

- **Domain Objects**: Methods accept and return domain objects or
  primitives, never framework-specific types.

- **No shared references**: implementations hand out copies, so a caller
  mutating a returned object never changes stored state behind the
  repository's back.
"""

from typing import Optional, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

# Type variable bound to Pydantic BaseModel for domain entities
T = TypeVar("T", bound=BaseModel)


@runtime_checkable
class BaseRepository(Protocol[T]):
    """Generic base repository protocol for common CRUD operations.

    Type Parameter:
        T: The domain entity type (must extend Pydantic BaseModel)
    """

    async def get(self, entity_id: int) -> Optional[T]:
        """Retrieve an entity by ID.

        Args:
            entity_id: Unique entity identifier

        Returns:
            Entity if found, None otherwise

        Implementation Notes:
        - Must be idempotent: multiple calls return same result
        - Should handle missing entities gracefully (return None)
        """
        ...

    async def save(self, entity: T) -> None:
        """Save an entity.

        Args:
            entity: Complete entity to save

        Implementation Notes:
        - Must be idempotent: saving same entity state is safe
        - Handles both new entities and updates to existing ones
        """
        ...

    async def generate_id(self) -> int:
        """Generate a unique entity identifier.

        Returns:
            A positive integer never handed out before by this repository
        """
        ...
