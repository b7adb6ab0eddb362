# services/stores/memory.py

import copy
from typing import Dict, Iterator, Optional

from .base import EntityRepository, EntityStore, T


class InMemoryRepository(EntityRepository[T]):
    """
    Dict-backed repository. Entities are copied on the way in and out so a
    caller mutating a loaded entity must upsert it for the change to stick,
    the same as with the SQL store.
    """

    def __init__(self):
        self._rows: Dict = {}

    def get(self, entity_id) -> Optional[T]:
        entity = self._rows.get(entity_id)
        return copy.deepcopy(entity) if entity is not None else None

    def upsert(self, entity: T) -> None:
        self._rows[entity.id] = copy.deepcopy(entity)

    def values(self) -> Iterator[T]:
        for entity in list(self._rows.values()):
            yield copy.deepcopy(entity)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, entity_id) -> bool:
        return entity_id in self._rows


class InMemoryEntityStore(EntityStore):
    def __init__(self):
        self.services = InMemoryRepository()
        self.active_epochs = InMemoryRepository()
        self.rewards_history = InMemoryRepository()
        self.globals = InMemoryRepository()
        self.daily_snapshots = InMemoryRepository()
        self.checkpoints = InMemoryRepository()
        self.reward_updates = InMemoryRepository()
        self.staking_contracts = InMemoryRepository()
