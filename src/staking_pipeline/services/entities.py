# services/entities.py
"""
Derived staking entities.

Amounts are token base units held as Python ints. Addresses are lowercase
hex strings. Composite identities follow the "{a}-{b}-{c}" convention used
by the upstream subgraph so rows can be cross-checked against it.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from staking_pipeline.config import GLOBAL_ID


def active_epoch_id(contract_address: str, epoch: int) -> str:
    return f"{contract_address.lower()}-{epoch}"


def rewards_history_id(service_id: int, contract_address: str, epoch: int) -> str:
    return f"{service_id}-{contract_address.lower()}-{epoch}"


@dataclass
class Service:
    id: int
    block_number: int = 0
    block_timestamp: int = 0
    current_olas_staked: int = 0
    olas_rewards_earned: int = 0
    olas_rewards_claimed: int = 0
    latest_staking_contract: Optional[str] = None
    total_epochs_participated: int = 0


@dataclass
class ActiveServiceEpoch:
    """Services staked and eligible for checkpoint processing in one epoch."""

    contract_address: str
    epoch: int
    active_service_ids: List[int] = field(default_factory=list)
    block_number: int = 0
    block_timestamp: int = 0

    @property
    def id(self) -> str:
        return active_epoch_id(self.contract_address, self.epoch)


@dataclass
class ServiceRewardsHistory:
    service_id: int
    contract_address: str
    epoch: int
    reward_amount: int = 0
    checkpoint_id: Optional[str] = None
    checkpointed_at: Optional[int] = None
    block_number: int = 0
    block_timestamp: int = 0
    transaction_hash: str = ""

    @property
    def id(self) -> str:
        return rewards_history_id(self.service_id, self.contract_address, self.epoch)

    @property
    def is_finalized(self) -> bool:
        return self.checkpoint_id is not None


@dataclass
class StakingGlobal:
    """
    Singleton aggregate. The ranked_* lists are parallel arrays kept sorted
    ascending by reward, one entry per known service.
    """

    id: str = GLOBAL_ID
    cumulative_olas_staked: int = 0
    cumulative_olas_unstaked: int = 0
    current_olas_staked: int = 0
    total_rewards: int = 0
    last_active_day_timestamp: int = 0
    ranked_service_ids: List[int] = field(default_factory=list)
    ranked_rewards: List[int] = field(default_factory=list)


@dataclass
class CumulativeDailyStakingGlobal:
    timestamp: int
    block: int = 0
    total_rewards: int = 0
    num_services: int = 0
    median_cumulative_rewards: int = 0

    @property
    def id(self) -> int:
        return self.timestamp


@dataclass
class Checkpoint:
    id: str
    contract_address: str
    epoch: int
    available_rewards: int
    service_ids: List[int]
    rewards: List[int]
    epoch_length: int
    block_number: int
    block_timestamp: int
    transaction_hash: str


@dataclass
class RewardUpdate:
    """Append-only audit entry; type is "Claimable" or "Claimed"."""

    id: str
    block_number: int
    block_timestamp: int
    transaction_hash: str
    type: str
    amount: int


@dataclass
class StakingContract:
    id: str
    instance: str
    sender: str
    implementation: str
    min_staking_deposit: int
    num_agent_instances: int
    max_num_services: int
    rewards_per_second: int
    min_staking_duration: int
    liveness_period: int
    time_for_emissions: int
    block_number: int = 0
    block_timestamp: int = 0
