"""
Tests for staking_pipeline/services/daily_snapshot.py
"""

from unittest.mock import Mock

import pytest

from staking_pipeline.services.daily_snapshot import DailySnapshotUpdater, get_day_timestamp
from staking_pipeline.services.entities import StakingGlobal
from staking_pipeline.services.median import SortedRewardIndex
from staking_pipeline.services.stores.memory import InMemoryRepository

from conftest import DAY_0, ONE_DAY


@pytest.fixture
def updater():
    return DailySnapshotUpdater(InMemoryRepository(), Mock())


def _global_with_rewards(rewards):
    global_state = StakingGlobal()
    index = SortedRewardIndex.from_global(global_state)
    for service_id, reward in enumerate(rewards, 1):
        index.upsert(service_id, reward)
    return global_state


def test_get_day_timestamp():
    assert get_day_timestamp(DAY_0) == DAY_0
    assert get_day_timestamp(DAY_0 + ONE_DAY - 1) == DAY_0
    assert get_day_timestamp(DAY_0 + ONE_DAY) == DAY_0 + ONE_DAY


def test_upsert_writes_totals_count_and_median(updater):
    global_state = _global_with_rewards([250, 1000, 1750])

    snapshot = updater.upsert_daily_snapshot(DAY_0 + 3600, 42, 3000, global_state)

    assert snapshot.timestamp == DAY_0
    assert snapshot.block == 42
    assert snapshot.total_rewards == 3000
    assert snapshot.num_services == 3
    assert snapshot.median_cumulative_rewards == 1000
    assert global_state.last_active_day_timestamp == DAY_0
    assert updater.daily_snapshots.get(DAY_0) == snapshot


def test_same_day_updates_existing_row(updater):
    global_state = _global_with_rewards([1000])
    updater.upsert_daily_snapshot(DAY_0 + 10, 1, 1000, global_state)

    SortedRewardIndex.from_global(global_state).upsert(2, 3000)
    snapshot = updater.upsert_daily_snapshot(DAY_0 + 20, 2, 4000, global_state)

    assert snapshot.block == 2
    assert snapshot.num_services == 2
    assert snapshot.median_cumulative_rewards == 2000
    assert len(updater.daily_snapshots) == 1


def test_quiet_day_is_forward_filled(updater):
    global_state = _global_with_rewards([250, 1000, 1750])
    updater.upsert_daily_snapshot(DAY_0, 1, 3000, global_state)

    later = updater.get_or_create(DAY_0 + 5 * ONE_DAY, global_state)

    assert later.timestamp == DAY_0 + 5 * ONE_DAY
    assert later.total_rewards == 3000
    assert later.num_services == 3
    assert later.median_cumulative_rewards == 1000


def test_missing_reference_day_warns(updater):
    global_state = StakingGlobal(last_active_day_timestamp=DAY_0)

    snapshot = updater.get_or_create(DAY_0 + ONE_DAY, global_state)

    assert snapshot.num_services == 0
    updater.logger.warning.assert_called_once()


def test_first_snapshot_starts_empty(updater):
    snapshot = updater.get_or_create(DAY_0, StakingGlobal())

    assert snapshot.total_rewards == 0
    assert snapshot.num_services == 0
    updater.logger.warning.assert_not_called()
