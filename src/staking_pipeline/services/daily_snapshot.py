# services/daily_snapshot.py

import logging

from staking_pipeline.config import ONE_DAY
from .entities import CumulativeDailyStakingGlobal, StakingGlobal
from .median import SortedRewardIndex
from .stores.base import EntityRepository


def get_day_timestamp(timestamp: int) -> int:
    """UTC day boundary (seconds) containing the timestamp"""
    return timestamp // ONE_DAY * ONE_DAY


class DailySnapshotUpdater:
    """
    Maintains CumulativeDailyStakingGlobal rows.

    A day's row is forward-filled from the most recent active day when it is
    first created, so days without events still carry the last known service
    count and median instead of zeros.
    """

    def __init__(self, daily_snapshots: EntityRepository, logger: logging.Logger):
        self.daily_snapshots = daily_snapshots
        self.logger = logger

    def get_or_create(
        self, timestamp: int, global_state: StakingGlobal
    ) -> CumulativeDailyStakingGlobal:
        day_timestamp = get_day_timestamp(timestamp)
        snapshot = self.daily_snapshots.get(day_timestamp)
        if snapshot is not None:
            return snapshot

        snapshot = CumulativeDailyStakingGlobal(timestamp=day_timestamp)

        if global_state.last_active_day_timestamp:
            reference = self.daily_snapshots.get(global_state.last_active_day_timestamp)
            if reference is not None:
                snapshot.total_rewards = reference.total_rewards
                snapshot.num_services = reference.num_services
                snapshot.median_cumulative_rewards = reference.median_cumulative_rewards
            else:
                self.logger.warning(
                    f"Last active day {global_state.last_active_day_timestamp} has no "
                    f"snapshot, day {day_timestamp} starts without forward-fill"
                )

        return snapshot

    def upsert_daily_snapshot(
        self,
        timestamp: int,
        block_number: int,
        total_rewards: int,
        global_state: StakingGlobal,
    ) -> CumulativeDailyStakingGlobal:
        """
        Write the day's totals, service count and median of cumulative rewards.

        Args:
            timestamp: Block timestamp of the triggering event
            block_number: Block of the triggering event
            total_rewards: Global cumulative rewards after the event
            global_state: Aggregate holding the sorted reward index; its
                last_active_day_timestamp is moved to this day (caller saves it)

        Returns:
            The saved snapshot
        """
        snapshot = self.get_or_create(timestamp, global_state)

        index = SortedRewardIndex.from_global(global_state)
        snapshot.block = block_number
        snapshot.total_rewards = total_rewards
        snapshot.num_services = len(index)
        snapshot.median_cumulative_rewards = index.median()

        global_state.last_active_day_timestamp = snapshot.timestamp
        self.daily_snapshots.upsert(snapshot)
        return snapshot
