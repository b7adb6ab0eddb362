# services/events.py
"""
Typed staking events as delivered by the indexing runtime.

Each event carries an EventMeta with the emitting contract, block position and
transaction hash. Events are applied strictly in (block_number, log_index)
order.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .contract_reader import StakingParams


@dataclass(frozen=True)
class EventMeta:
    address: str
    block_number: int
    block_timestamp: int
    transaction_hash: str
    log_index: int

    @property
    def event_id(self) -> str:
        return f"{self.transaction_hash}-{self.log_index}"

    @property
    def sort_key(self) -> tuple:
        return (self.block_number, self.log_index)


@dataclass(frozen=True)
class ServiceStaked:
    meta: EventMeta
    epoch: int
    service_id: int
    owner: str = ""
    multisig: str = ""
    nonces: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class ServiceUnstaked:
    meta: EventMeta
    epoch: int
    service_id: int
    reward: int
    owner: str = ""
    multisig: str = ""
    nonces: List[int] = field(default_factory=list)
    available_rewards: int = 0


@dataclass(frozen=True)
class ServiceForceUnstaked:
    meta: EventMeta
    epoch: int
    service_id: int
    reward: int
    owner: str = ""
    multisig: str = ""
    nonces: List[int] = field(default_factory=list)
    available_rewards: int = 0


@dataclass(frozen=True)
class RewardClaimed:
    meta: EventMeta
    epoch: int
    service_id: int
    reward: int
    owner: str = ""
    multisig: str = ""
    nonces: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class ServicesEvicted:
    meta: EventMeta
    epoch: int
    service_ids: List[int]
    owners: List[str] = field(default_factory=list)
    multisigs: List[str] = field(default_factory=list)
    service_inactivity: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class CheckpointEvent:
    meta: EventMeta
    epoch: int
    service_ids: List[int]
    rewards: List[int]
    available_rewards: int = 0
    epoch_length: int = 0


@dataclass(frozen=True)
class ServiceInactivityWarning:
    meta: EventMeta
    epoch: int
    service_id: int
    service_inactivity: int = 0


@dataclass(frozen=True)
class Deposit:
    meta: EventMeta
    sender: str
    amount: int
    balance: int = 0
    available_rewards: int = 0


@dataclass(frozen=True)
class Withdraw:
    meta: EventMeta
    to: str
    amount: int


@dataclass(frozen=True)
class InstanceCreated:
    """Emitted by the staking factory when a new staking proxy is deployed."""

    meta: EventMeta
    sender: str
    instance: str
    implementation: str
    params: Optional[StakingParams] = None
