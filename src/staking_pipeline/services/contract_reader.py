# services/contract_reader.py
"""
Read-through access to staking proxy configuration.

Values are resolved from data the indexing runtime has already captured (the
staking_contracts table) rather than live RPC. Any miss surfaces as a
ContractCallError, which callers treat the same as an on-chain revert.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from .entities import StakingContract
from .errors import ContractCallError
from .stores.base import EntityRepository


@dataclass(frozen=True)
class StakingParams:
    min_staking_deposit: int
    num_agent_instances: int
    max_num_services: int = 0
    rewards_per_second: int = 0
    min_staking_duration: int = 0
    liveness_period: int = 0
    time_for_emissions: int = 0


class ContractReader(ABC):
    @abstractmethod
    def staking_params(self, contract_address: str) -> StakingParams:
        """
        Read the configuration of a staking proxy.

        Raises:
            ContractCallError: if the call reverts or the contract is unknown
        """
        pass

    def olas_for_staking(self, contract_address: str) -> int:
        """Deposit locked per staked service: one per agent instance plus the service itself."""
        params = self.staking_params(contract_address)
        return params.min_staking_deposit * (params.num_agent_instances + 1)


class StaticContractReader(ContractReader):
    """Reader over a fixed address -> params mapping."""

    def __init__(self, params: Optional[Dict[str, StakingParams]] = None):
        self._params = {
            address.lower(): value for address, value in (params or {}).items()
        }

    def register(self, contract_address: str, params: StakingParams) -> None:
        self._params[contract_address.lower()] = params

    def staking_params(self, contract_address: str) -> StakingParams:
        params = self._params.get(contract_address.lower())
        if params is None:
            raise ContractCallError(contract_address, "staking_params", "unknown contract")
        return params


class RepositoryContractReader(ContractReader):
    """Reader backed by StakingContract rows captured at instance creation."""

    def __init__(self, staking_contracts: EntityRepository):
        self.staking_contracts = staking_contracts

    def staking_params(self, contract_address: str) -> StakingParams:
        contract: Optional[StakingContract] = self.staking_contracts.get(
            contract_address.lower()
        )
        if contract is None:
            raise ContractCallError(
                contract_address, "staking_params", "no staking contract record"
            )
        return StakingParams(
            min_staking_deposit=contract.min_staking_deposit,
            num_agent_instances=contract.num_agent_instances,
            max_num_services=contract.max_num_services,
            rewards_per_second=contract.rewards_per_second,
            min_staking_duration=contract.min_staking_duration,
            liveness_period=contract.liveness_period,
            time_for_emissions=contract.time_for_emissions,
        )
