"""Base repository class."""

from abc import ABC, abstractmethod
from typing import Any, Generic, List, Optional, TypeVar

from salon_booking.models.database import Database

T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """Base repository with the common read operations."""

    def __init__(self, database: Database):
        """
        Initialize repository with database connection.

        Args:
            database: Database instance
        """
        self.db = database

    @abstractmethod
    async def get_by_id(self, id: Any) -> Optional[T]:
        """
        Get entity by ID.

        Returns:
            Entity or None if not found
        """

    @abstractmethod
    async def get_all(self, limit: int = 100) -> List[T]:
        """
        Get all entities.

        Args:
            limit: Maximum number of entities to return
        """
