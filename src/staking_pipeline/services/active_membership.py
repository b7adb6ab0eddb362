# services/active_membership.py

import logging
from typing import Iterable, Optional

from .entities import ActiveServiceEpoch, active_epoch_id
from .events import EventMeta
from .stores.base import EntityRepository


class ActiveMembershipTracker:
    """
    Tracks which services are staked on a contract during an epoch.

    Each (contract, epoch) record holds a duplicate-free list of service IDs
    in insertion order. Records are never deleted; past epochs stay as an
    audit trail of who was eligible for that epoch's checkpoint.
    """

    def __init__(self, active_epochs: EntityRepository, logger: logging.Logger):
        self.active_epochs = active_epochs
        self.logger = logger

    def get(self, contract_address: str, epoch: int) -> Optional[ActiveServiceEpoch]:
        return self.active_epochs.get(active_epoch_id(contract_address, epoch))

    def members(self, contract_address: str, epoch: int) -> list:
        tracker = self.get(contract_address, epoch)
        return list(tracker.active_service_ids) if tracker is not None else []

    def add(
        self, contract_address: str, epoch: int, service_id: int, meta: EventMeta
    ) -> ActiveServiceEpoch:
        tracker = self.get(contract_address, epoch)
        if tracker is None:
            tracker = ActiveServiceEpoch(
                contract_address=contract_address.lower(),
                epoch=epoch,
                block_number=meta.block_number,
                block_timestamp=meta.block_timestamp,
            )

        if service_id not in tracker.active_service_ids:
            tracker.active_service_ids.append(service_id)

        self.active_epochs.upsert(tracker)
        return tracker

    def remove(self, contract_address: str, epoch: int, service_id: int) -> bool:
        """
        Drop a service from an epoch's membership.

        Returns:
            True if the service was a member, False if nothing changed
        """
        return self.remove_many(contract_address, epoch, [service_id]) > 0

    def remove_many(
        self, contract_address: str, epoch: int, service_ids: Iterable[int]
    ) -> int:
        tracker = self.get(contract_address, epoch)
        if tracker is None:
            return 0

        to_remove = set(service_ids)
        remaining = [sid for sid in tracker.active_service_ids if sid not in to_remove]
        removed = len(tracker.active_service_ids) - len(remaining)
        if removed == 0:
            return 0

        tracker.active_service_ids = remaining
        self.active_epochs.upsert(tracker)
        return removed

    def roll_forward(
        self,
        contract_address: str,
        epoch: int,
        meta: EventMeta,
        carried_ids: Optional[list] = None,
    ) -> ActiveServiceEpoch:
        """
        Carry an epoch's members into epoch + 1.

        Services that staked straight into the next epoch before this
        checkpoint fired are kept: the result is the union of both sets,
        existing next-epoch members first.

        Args:
            contract_address: Staking proxy
            epoch: Epoch being checkpointed
            meta: Position of the checkpoint event
            carried_ids: Members to carry; defaults to the stored members of epoch

        Returns:
            The next epoch's tracker
        """
        if carried_ids is None:
            carried_ids = self.members(contract_address, epoch)

        next_epoch = epoch + 1
        next_tracker = self.get(contract_address, next_epoch)
        if next_tracker is None:
            next_tracker = ActiveServiceEpoch(
                contract_address=contract_address.lower(), epoch=next_epoch
            )

        merged = list(next_tracker.active_service_ids)
        seen = set(merged)
        for service_id in carried_ids:
            if service_id not in seen:
                merged.append(service_id)
                seen.add(service_id)

        next_tracker.active_service_ids = merged
        next_tracker.block_number = meta.block_number
        next_tracker.block_timestamp = meta.block_timestamp
        self.active_epochs.upsert(next_tracker)

        self.logger.debug(
            f"Rolled {len(carried_ids)} services on {contract_address} "
            f"from epoch {epoch} into {next_epoch} ({len(merged)} total)"
        )
        return next_tracker
