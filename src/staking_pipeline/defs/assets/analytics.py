# staking_pipeline/defs/assets/analytics.py
"""
Analytics Assets - Daily reward trends over the cumulative snapshots
"""

from dagster import asset, OpExecutionContext, Output, AssetIn
import pandas as pd

from staking_pipeline.utils.calculations import (
    compute_daily_reward_summary,
    summarize_reward_trend,
)
from ..resources import DatabaseResource, ConfigResource


@asset(
    ins={"ledger": AssetIn("staking_reward_ledger")},
    description="Per-day reward deltas, service growth and rolling median from daily snapshots",
    compute_kind="python",
)
def staking_daily_reward_summary(
    context: OpExecutionContext,
    db: DatabaseResource,
    config: ConfigResource,
    ledger: int,
) -> Output[int]:
    query = """
        SELECT
            timestamp,
            block,
            total_rewards,
            num_services,
            median_cumulative_rewards
        FROM cumulative_daily_staking_global
        ORDER BY timestamp
    """
    rows = db.execute_query(query, db="analytics")

    if not rows:
        context.log.warning("No daily staking snapshots found")
        return Output(0, metadata={"skipped": True})

    df = pd.DataFrame(
        [tuple(row) for row in rows],
        columns=[
            "timestamp",
            "block",
            "total_rewards",
            "num_services",
            "median_cumulative_rewards",
        ],
    )
    summary = compute_daily_reward_summary(df, config.median_rolling_window_days)
    trend = summarize_reward_trend(summary)

    context.log.info(
        f"Daily reward summary over {trend['days']} days: "
        f"avg daily rewards {trend['avg_daily_rewards']:.0f}, "
        f"{trend['latest_num_services']} services, "
        f"rolling median {trend['latest_median_rolling_mean']:.0f}"
    )

    return Output(len(summary), metadata=trend)
