# STAKING LEDGER TABLES
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    String,
    Index,
)
from .base import Base, TimestampMixin, TokenAmount, JSONList


class PipelineCheckpoint(Base, TimestampMixin):
    __tablename__ = "pipeline_checkpoints"

    pipeline_name = Column(String(100), primary_key=True)
    last_processed_at = Column(DateTime, nullable=False)
    last_processed_block = Column(BigInteger)
    events_processed_count = Column(Integer)
    events_failed_count = Column(Integer)
    run_duration_seconds = Column(Integer)
    run_metadata = Column(JSONList)


class ServiceModel(Base, TimestampMixin):
    __tablename__ = "staking_services"

    id = Column(BigInteger, primary_key=True)

    # First seen
    block_number = Column(BigInteger, nullable=False, default=0)
    block_timestamp = Column(BigInteger, nullable=False, default=0)

    # Stake and rewards (monotonic except current stake)
    current_olas_staked = Column(TokenAmount, nullable=False, default=0)
    olas_rewards_earned = Column(TokenAmount, nullable=False, default=0)
    olas_rewards_claimed = Column(TokenAmount, nullable=False, default=0)

    # NULL when not staked anywhere
    latest_staking_contract = Column(String(42), nullable=True)
    total_epochs_participated = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_service_latest_contract", "latest_staking_contract"),
        Index("idx_service_rewards_earned", "olas_rewards_earned"),
    )


class ActiveServiceEpochModel(Base, TimestampMixin):
    __tablename__ = "active_service_epochs"

    id = Column(String, primary_key=True)  # contract-epoch composite
    contract_address = Column(String(42), nullable=False)
    epoch = Column(BigInteger, nullable=False)
    active_service_ids = Column(JSONList, nullable=False, default=list)
    block_number = Column(BigInteger, nullable=False, default=0)
    block_timestamp = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (Index("idx_active_epoch_contract", "contract_address", "epoch"),)


class ServiceRewardsHistoryModel(Base, TimestampMixin):
    __tablename__ = "service_rewards_history"

    id = Column(String, primary_key=True)  # service-contract-epoch composite
    service_id = Column(BigInteger, nullable=False, index=True)
    contract_address = Column(String(42), nullable=False)
    epoch = Column(BigInteger, nullable=False)

    reward_amount = Column(TokenAmount, nullable=False, default=0)
    checkpoint_id = Column(String, nullable=True)
    checkpointed_at = Column(BigInteger, nullable=True)

    block_number = Column(BigInteger, nullable=False, default=0)
    block_timestamp = Column(BigInteger, nullable=False, default=0)
    transaction_hash = Column(String(66), nullable=False, default="")

    __table_args__ = (
        Index("idx_rewards_history_contract_epoch", "contract_address", "epoch"),
    )


class StakingGlobalModel(Base, TimestampMixin):
    __tablename__ = "staking_global"

    id = Column(String, primary_key=True)

    cumulative_olas_staked = Column(TokenAmount, nullable=False, default=0)
    cumulative_olas_unstaked = Column(TokenAmount, nullable=False, default=0)
    current_olas_staked = Column(TokenAmount, nullable=False, default=0)
    total_rewards = Column(TokenAmount, nullable=False, default=0)
    last_active_day_timestamp = Column(BigInteger, nullable=False, default=0)

    # Parallel arrays sorted ascending by reward
    ranked_service_ids = Column(JSONList, nullable=False, default=list)
    ranked_rewards = Column(JSONList, nullable=False, default=list)


class CumulativeDailyStakingGlobalModel(Base, TimestampMixin):
    __tablename__ = "cumulative_daily_staking_global"

    timestamp = Column(BigInteger, primary_key=True)  # UTC day boundary
    block = Column(BigInteger, nullable=False, default=0)
    total_rewards = Column(TokenAmount, nullable=False, default=0)
    num_services = Column(Integer, nullable=False, default=0)
    median_cumulative_rewards = Column(TokenAmount, nullable=False, default=0)


class CheckpointModel(Base, TimestampMixin):
    __tablename__ = "staking_checkpoints"

    id = Column(String, primary_key=True)  # tx_hash-log_index
    contract_address = Column(String(42), nullable=False)
    epoch = Column(BigInteger, nullable=False)
    available_rewards = Column(TokenAmount, nullable=False, default=0)
    service_ids = Column(JSONList, nullable=False, default=list)
    rewards = Column(JSONList, nullable=False, default=list)
    epoch_length = Column(BigInteger, nullable=False, default=0)
    block_number = Column(BigInteger, nullable=False)
    block_timestamp = Column(BigInteger, nullable=False)
    transaction_hash = Column(String(66), nullable=False)

    __table_args__ = (Index("idx_checkpoint_contract_epoch", "contract_address", "epoch"),)


class RewardUpdateModel(Base, TimestampMixin):
    __tablename__ = "reward_updates"

    id = Column(String, primary_key=True)  # tx_hash-log_index
    block_number = Column(BigInteger, nullable=False)
    block_timestamp = Column(BigInteger, nullable=False)
    transaction_hash = Column(String(66), nullable=False)
    type = Column(String(16), nullable=False)  # Claimable | Claimed
    amount = Column(TokenAmount, nullable=False, default=0)

    __table_args__ = (Index("idx_reward_update_type", "type"),)


class StakingContractModel(Base, TimestampMixin):
    __tablename__ = "staking_contracts"

    id = Column(String, primary_key=True)  # instance address
    instance = Column(String(42), nullable=False, unique=True)
    sender = Column(String(42), nullable=False)
    implementation = Column(String(42), nullable=False)

    # Configuration read from the instance at creation
    min_staking_deposit = Column(TokenAmount, nullable=False)
    num_agent_instances = Column(BigInteger, nullable=False)
    max_num_services = Column(BigInteger, nullable=False)
    rewards_per_second = Column(TokenAmount, nullable=False)
    min_staking_duration = Column(BigInteger, nullable=False)
    liveness_period = Column(BigInteger, nullable=False)
    time_for_emissions = Column(BigInteger, nullable=False)

    block_number = Column(BigInteger, nullable=False, default=0)
    block_timestamp = Column(BigInteger, nullable=False, default=0)
