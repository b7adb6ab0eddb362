# services/stores/sql.py

from dataclasses import fields
from decimal import Decimal
from typing import Iterator, Optional, Type

from sqlalchemy import select
from sqlalchemy.orm import Session

from staking_pipeline.db.models.staking import (
    ActiveServiceEpochModel,
    CheckpointModel,
    CumulativeDailyStakingGlobalModel,
    RewardUpdateModel,
    ServiceModel,
    ServiceRewardsHistoryModel,
    StakingContractModel,
    StakingGlobalModel,
)
from ..entities import (
    ActiveServiceEpoch,
    Checkpoint,
    CumulativeDailyStakingGlobal,
    RewardUpdate,
    Service,
    ServiceRewardsHistory,
    StakingContract,
    StakingGlobal,
)
from .base import EntityRepository, EntityStore, T


def _from_db_value(value):
    # Numeric columns come back as Decimal; the ledger works in ints
    if isinstance(value, Decimal):
        return int(value)
    if isinstance(value, list):
        return [_from_db_value(item) for item in value]
    return value


class SqlRepository(EntityRepository[T]):
    """
    Maps a dataclass entity onto a SQLAlchemy model with matching column
    names. Writes go through session.merge so upsert semantics hold for both
    new and existing rows; the caller owns commit/rollback.
    """

    def __init__(self, session: Session, model_cls, entity_cls: Type[T]):
        self.session = session
        self.model_cls = model_cls
        self.entity_cls = entity_cls
        self._field_names = [f.name for f in fields(entity_cls)]
        self._has_id_column = "id" in model_cls.__table__.columns

    def get(self, entity_id) -> Optional[T]:
        row = self.session.get(self.model_cls, entity_id)
        if row is None:
            return None
        return self._to_entity(row)

    def upsert(self, entity: T) -> None:
        values = {name: getattr(entity, name) for name in self._field_names}
        if self._has_id_column and "id" not in values:
            values["id"] = entity.id
        self.session.merge(self.model_cls(**values))
        self.session.flush()

    def values(self) -> Iterator[T]:
        for row in self.session.scalars(select(self.model_cls)):
            yield self._to_entity(row)

    def _to_entity(self, row) -> T:
        kwargs = {
            name: _from_db_value(getattr(row, name)) for name in self._field_names
        }
        return self.entity_cls(**kwargs)


class SqlEntityStore(EntityStore):
    """Entity store bound to one analytics DB session."""

    def __init__(self, session: Session):
        self.session = session
        self.services = SqlRepository(session, ServiceModel, Service)
        self.active_epochs = SqlRepository(
            session, ActiveServiceEpochModel, ActiveServiceEpoch
        )
        self.rewards_history = SqlRepository(
            session, ServiceRewardsHistoryModel, ServiceRewardsHistory
        )
        self.globals = SqlRepository(session, StakingGlobalModel, StakingGlobal)
        self.daily_snapshots = SqlRepository(
            session, CumulativeDailyStakingGlobalModel, CumulativeDailyStakingGlobal
        )
        self.checkpoints = SqlRepository(session, CheckpointModel, Checkpoint)
        self.reward_updates = SqlRepository(session, RewardUpdateModel, RewardUpdate)
        self.staking_contracts = SqlRepository(
            session, StakingContractModel, StakingContract
        )
