# services/service_registry.py

import logging
from typing import Optional

from .entities import Service
from .events import EventMeta
from .stores.base import EntityRepository


class ServiceRegistry:
    """
    Durable per-service record of stake, cumulative rewards and current
    staking-contract affiliation.

    Earned and claimed totals only ever grow: re-staking, eviction and
    migration between contracts never reset them.
    """

    def __init__(self, services: EntityRepository, logger: logging.Logger):
        self.services = services
        self.logger = logger

    def get(self, service_id: int) -> Optional[Service]:
        return self.services.get(service_id)

    def on_stake(
        self,
        service_id: int,
        contract_address: str,
        stake_amount: int,
        meta: EventMeta,
    ) -> Service:
        """
        Record a stake action. Creates the service on first sight.

        Args:
            service_id: Staked service
            contract_address: Staking proxy the service joined
            stake_amount: Deposit locked by the stake (0 if it could not be read)
            meta: Position of the stake event

        Returns:
            The updated service
        """
        service = self.services.get(service_id)
        if service is None:
            service = Service(
                id=service_id,
                block_number=meta.block_number,
                block_timestamp=meta.block_timestamp,
            )
            self.logger.debug(f"Registered service {service_id}")

        service.current_olas_staked += stake_amount
        service.latest_staking_contract = contract_address.lower()
        # One increment per stake action, not per elapsed epoch
        service.total_epochs_participated += 1

        self.services.upsert(service)
        return service

    def on_unstake(
        self, service_id: int, contract_address: str, reward: int, stake_amount: int = 0
    ) -> Optional[Service]:
        """
        Record an unstake (voluntary or forced).

        Claimed grows by the reward paid out; the service is detached from
        any staking contract. The released deposit is subtracted from the
        current stake, clamped at zero.

        Returns:
            The updated service, or None if the service was never registered
        """
        service = self.services.get(service_id)
        if service is None:
            self.logger.warning(
                f"Unstake from {contract_address} for unknown service {service_id}, skipping"
            )
            return None

        if (
            service.latest_staking_contract is not None
            and service.latest_staking_contract != contract_address.lower()
        ):
            self.logger.warning(
                f"Service {service_id} unstaked from {contract_address} "
                f"but is affiliated with {service.latest_staking_contract}"
            )

        service.olas_rewards_claimed += reward

        if stake_amount > service.current_olas_staked:
            self.logger.warning(
                f"Unstake of {stake_amount} exceeds tracked stake "
                f"{service.current_olas_staked} for service {service_id}, clamping to 0"
            )
            service.current_olas_staked = 0
        else:
            service.current_olas_staked -= stake_amount

        service.latest_staking_contract = None
        self.services.upsert(service)
        return service

    on_force_unstake = on_unstake

    def on_claim(self, service_id: int, reward: int) -> Optional[Service]:
        if not self._is_valid_amount(service_id, reward, "claim"):
            return None

        service = self.services.get(service_id)
        if service is None:
            self.logger.warning(f"Reward claim for unknown service {service_id}, skipping")
            return None

        service.olas_rewards_claimed += reward
        self.services.upsert(service)
        return service

    def on_checkpoint_reward(self, service_id: int, reward: int) -> Optional[Service]:
        """Add a checkpointed reward to the service's cumulative earnings."""
        if not self._is_valid_amount(service_id, reward, "checkpoint reward"):
            return None

        service = self.services.get(service_id)
        if service is None:
            self.logger.warning(
                f"Checkpoint reward of {reward} for unregistered service {service_id}, "
                f"cumulative earnings not updated"
            )
            return None

        service.olas_rewards_earned += reward
        self.services.upsert(service)
        return service

    def _is_valid_amount(self, service_id: int, amount: int, kind: str) -> bool:
        if amount < 0:
            self.logger.error(
                f"Negative {kind} amount {amount} for service {service_id}, skipping"
            )
            return False
        return True
