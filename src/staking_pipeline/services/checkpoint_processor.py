# services/checkpoint_processor.py
"""
Checkpoint Processor - finalizes one epoch's rewards on one staking contract

On each checkpoint:
1. Rewarded services get their amount written to the reward history and
   added to their cumulative earnings
2. Active services that were not rewarded get an explicit zero row, unless
   they have since migrated to another staking contract
3. The epoch's membership is carried into the next epoch (union merge)
4. Global totals, the daily median snapshot and the audit log are updated
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from .active_membership import ActiveMembershipTracker
from .daily_snapshot import DailySnapshotUpdater
from .entities import RewardUpdate, StakingGlobal
from .events import CheckpointEvent
from .median import SortedRewardIndex
from .rewards_history import RewardHistoryLedger
from .service_registry import ServiceRegistry
from .stores.base import EntityRepository


@dataclass
class CheckpointResult:
    total_rewards: int = 0
    rewarded: int = 0
    zero_filled: int = 0
    skipped_migrated: int = 0
    untracked_rewarded: int = 0
    next_epoch_members: int = 0


class CheckpointProcessor:
    def __init__(
        self,
        registry: ServiceRegistry,
        membership: ActiveMembershipTracker,
        ledger: RewardHistoryLedger,
        snapshots: DailySnapshotUpdater,
        reward_updates: EntityRepository,
        logger: logging.Logger,
    ):
        self.registry = registry
        self.membership = membership
        self.ledger = ledger
        self.snapshots = snapshots
        self.reward_updates = reward_updates
        self.logger = logger

    def process(
        self, event: CheckpointEvent, checkpoint_id: str, global_state: StakingGlobal
    ) -> CheckpointResult:
        """
        Apply a checkpoint event.

        Args:
            event: Decoded checkpoint
            checkpoint_id: ID of the stored Checkpoint entity, linked from history rows
            global_state: Aggregate updated in place; the caller persists it

        Returns:
            Counts describing what the checkpoint touched
        """
        meta = event.meta
        contract = meta.address.lower()
        epoch = event.epoch
        result = CheckpointResult()

        rewarded = self._build_reward_lookup(event)

        tracker = self.membership.get(contract, epoch)
        if tracker is None:
            self.logger.warning(
                f"Checkpoint for epoch {epoch} on {contract} has no active service "
                f"tracker; applying {len(rewarded)} rewards without zero-fill"
            )
            active_ids: List[int] = []
        else:
            active_ids = list(tracker.active_service_ids)
        active_set = set(active_ids)

        index = SortedRewardIndex.from_global(global_state)

        # Rewarded services
        for service_id, amount in rewarded.items():
            if tracker is not None and service_id not in active_set:
                result.untracked_rewarded += 1
                self.logger.warning(
                    f"Service {service_id} rewarded in epoch {epoch} on {contract} "
                    f"but not in the active tracker"
                )

            history = self.ledger.record_checkpoint(
                service_id, contract, epoch, amount, checkpoint_id, meta
            )
            if history is None:
                continue

            service = self.registry.on_checkpoint_reward(service_id, amount)
            if service is not None:
                index.upsert(service.id, service.olas_rewards_earned)

            result.total_rewards += amount
            result.rewarded += 1

        # Active but not rewarded: failed KPI
        for service_id in active_ids:
            if service_id in rewarded:
                continue

            service = self.registry.get(service_id)
            if service is None:
                self.logger.warning(
                    f"Active service {service_id} on {contract} epoch {epoch} "
                    f"is not registered, skipping zero reward"
                )
                continue

            if (
                service.latest_staking_contract is not None
                and service.latest_staking_contract != contract
            ):
                # Migrated; this contract's checkpoint no longer concerns it
                result.skipped_migrated += 1
                continue

            history = self.ledger.record_checkpoint(
                service_id, contract, epoch, 0, checkpoint_id, meta
            )
            if history is not None:
                result.zero_filled += 1

        if tracker is not None:
            next_tracker = self.membership.roll_forward(
                contract, epoch, meta, carried_ids=active_ids
            )
            result.next_epoch_members = len(next_tracker.active_service_ids)

        global_state.total_rewards += result.total_rewards

        self.snapshots.upsert_daily_snapshot(
            meta.block_timestamp,
            meta.block_number,
            global_state.total_rewards,
            global_state,
        )

        self.reward_updates.upsert(
            RewardUpdate(
                id=meta.event_id,
                block_number=meta.block_number,
                block_timestamp=meta.block_timestamp,
                transaction_hash=meta.transaction_hash,
                type="Claimable",
                amount=result.total_rewards,
            )
        )

        self.logger.info(
            f"Checkpoint epoch {epoch} on {contract}: {result.rewarded} rewarded "
            f"({result.total_rewards}), {result.zero_filled} zero, "
            f"{result.skipped_migrated} migrated"
        )
        return result

    def _build_reward_lookup(self, event: CheckpointEvent) -> Dict[int, int]:
        service_ids = list(event.service_ids)
        rewards = list(event.rewards)

        if len(service_ids) != len(rewards):
            self.logger.error(
                f"Checkpoint epoch {event.epoch} on {event.meta.address} has "
                f"{len(service_ids)} service IDs but {len(rewards)} rewards; "
                f"using the first {min(len(service_ids), len(rewards))} pairs"
            )

        lookup: Dict[int, int] = {}
        for service_id, amount in zip(service_ids, rewards):
            if amount < 0:
                self.logger.error(
                    f"Negative reward {amount} for service {service_id} in "
                    f"checkpoint epoch {event.epoch}, skipping"
                )
                continue
            if service_id in lookup:
                self.logger.warning(
                    f"Service {service_id} listed twice in checkpoint epoch "
                    f"{event.epoch}, summing rewards"
                )
                lookup[service_id] += amount
            else:
                lookup[service_id] = amount
        return lookup
