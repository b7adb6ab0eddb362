"""
Dagster Definitions for the staking reward ledger
"""

from dagster import Definitions

from staking_pipeline.defs import (
    ledger_assets,
    analytics_assets,
    ledger_update_job,
    reward_summary_job,
    ledger_update_schedule,
    reward_summary_schedule,
    resources,
)

defs = Definitions(
    assets=[*ledger_assets, *analytics_assets],
    jobs=[ledger_update_job, reward_summary_job],
    schedules=[ledger_update_schedule, reward_summary_schedule],
    resources=resources,
)
