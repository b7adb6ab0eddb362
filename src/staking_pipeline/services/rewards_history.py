# services/rewards_history.py

import logging
from typing import Optional

from .entities import ServiceRewardsHistory, rewards_history_id
from .events import EventMeta
from .stores.base import EntityRepository


class RewardHistoryLedger:
    """
    One row per (service, contract, epoch) holding the reward checkpointed for
    that epoch. A zero amount on a finalized row means the service was active
    but did not meet its KPI.
    """

    def __init__(self, rewards_history: EntityRepository, logger: logging.Logger):
        self.rewards_history = rewards_history
        self.logger = logger

    def get(
        self, service_id: int, contract_address: str, epoch: int
    ) -> Optional[ServiceRewardsHistory]:
        return self.rewards_history.get(
            rewards_history_id(service_id, contract_address, epoch)
        )

    def get_or_create(
        self, service_id: int, contract_address: str, epoch: int, meta: EventMeta
    ) -> Optional[ServiceRewardsHistory]:
        """
        Load the row for the triple, creating it with a zero reward if absent.
        Repeated calls never reset an existing reward.

        Returns:
            The row, or None if the stored row belongs to a different owner
        """
        history = self.get(service_id, contract_address, epoch)
        if history is not None:
            if not self._owned_by(history, service_id, contract_address, epoch):
                return None
            return history

        history = ServiceRewardsHistory(
            service_id=service_id,
            contract_address=contract_address.lower(),
            epoch=epoch,
            block_number=meta.block_number,
            block_timestamp=meta.block_timestamp,
            transaction_hash=meta.transaction_hash,
        )
        self.rewards_history.upsert(history)
        return history

    def record_checkpoint(
        self,
        service_id: int,
        contract_address: str,
        epoch: int,
        amount: int,
        checkpoint_id: str,
        meta: EventMeta,
    ) -> Optional[ServiceRewardsHistory]:
        """
        Finalize the epoch's reward for a service. The amount overwrites any
        previous value; it is never added to it.

        Returns:
            The written row, or None if the write was refused
        """
        history = self.get_or_create(service_id, contract_address, epoch, meta)
        if history is None:
            return None

        if history.is_finalized and history.checkpoint_id != checkpoint_id:
            self.logger.warning(
                f"Epoch {epoch} on {contract_address} already checkpointed for "
                f"service {service_id} by {history.checkpoint_id} "
                f"(reward {history.reward_amount}); overwriting with {amount} "
                f"from {checkpoint_id}"
            )

        history.reward_amount = amount
        history.checkpoint_id = checkpoint_id
        history.checkpointed_at = meta.block_timestamp
        self.rewards_history.upsert(history)
        return history

    def _owned_by(
        self,
        history: ServiceRewardsHistory,
        service_id: int,
        contract_address: str,
        epoch: int,
    ) -> bool:
        if (
            history.service_id == service_id
            and history.contract_address == contract_address.lower()
            and history.epoch == epoch
        ):
            return True

        self.logger.error(
            f"Cross-service contamination: history row {history.id} is owned by "
            f"service {history.service_id} on {history.contract_address} epoch "
            f"{history.epoch}, expected service {service_id} on "
            f"{contract_address} epoch {epoch}; update skipped"
        )
        return False
