# services/stores/base.py

from abc import ABC, abstractmethod
from typing import Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class EntityRepository(ABC, Generic[T]):
    """
    Load/save capability for one entity type.

    The ledger only ever needs point lookups and upserts; enumeration is kept
    for reporting and tests.
    """

    @abstractmethod
    def get(self, entity_id) -> Optional[T]:
        """
        Load an entity by ID.

        Returns:
            The stored entity, or None if absent
        """
        pass

    @abstractmethod
    def upsert(self, entity: T) -> None:
        """Insert or replace the entity keyed by entity.id"""
        pass

    @abstractmethod
    def values(self) -> Iterator[T]:
        """Iterate over all stored entities"""
        pass


class EntityStore(ABC):
    """Bundle of repositories for every derived staking entity."""

    services: EntityRepository
    active_epochs: EntityRepository
    rewards_history: EntityRepository
    globals: EntityRepository
    daily_snapshots: EntityRepository
    checkpoints: EntityRepository
    reward_updates: EntityRepository
    staking_contracts: EntityRepository
