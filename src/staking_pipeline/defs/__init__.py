from dagster import (
    ScheduleDefinition,
    define_asset_job,
    AssetSelection,
)

from .assets.extraction import new_staking_events
from .assets.ledger import staking_reward_ledger
from .assets.analytics import staking_daily_reward_summary

from .resources import DatabaseResource, ConfigResource


ledger_assets = [
    new_staking_events,
    staking_reward_ledger,
]

analytics_assets = [
    staking_daily_reward_summary,
]


ledger_update_job = define_asset_job(
    name="staking_ledger_update",
    selection=AssetSelection.assets(*ledger_assets),
    description="Extract new staking events and replay them into the reward ledger",
)

reward_summary_job = define_asset_job(
    name="staking_reward_summary",
    selection=AssetSelection.assets(*analytics_assets),
    description="Recompute daily reward trends from the cumulative snapshots",
)


ledger_update_schedule = ScheduleDefinition(
    job=ledger_update_job,
    cron_schedule="*/15 * * * *",
    description="Advance the ledger every 15 minutes",
)

reward_summary_schedule = ScheduleDefinition(
    job=reward_summary_job,
    cron_schedule="30 0 * * *",
    description="Daily reward summary after the UTC day closes",
)


resources = {
    "db": DatabaseResource(),
    "config": ConfigResource(),
}
