from typing import Dict

import numpy as np
import pandas as pd

from .normalizers import is_missing


def to_float_series(series: pd.Series) -> pd.Series:
    """Decimal/int token amounts to float; None/NaN stay NaN."""
    return series.map(lambda v: np.nan if is_missing(v) else float(v)).astype(float)


def compute_daily_reward_summary(df: pd.DataFrame, rolling_window: int = 7) -> pd.DataFrame:
    """
    Per-day reward analytics over cumulative daily snapshots.

    - daily_rewards: change in cumulative total_rewards (first day counts from zero)
    - service_growth: fractional change in num_services vs the previous snapshot
    - median_rolling_mean: rolling mean of the median cumulative reward
    """
    columns = [
        "timestamp",
        "date",
        "total_rewards",
        "daily_rewards",
        "num_services",
        "service_growth",
        "median_cumulative_rewards",
        "median_rolling_mean",
    ]
    if df.empty:
        return pd.DataFrame(columns=columns)

    summary = df.sort_values("timestamp").reset_index(drop=True).copy()
    summary["timestamp"] = summary["timestamp"].astype(int)
    summary["date"] = pd.to_datetime(summary["timestamp"], unit="s", utc=True).dt.date

    totals = to_float_series(summary["total_rewards"])
    summary["total_rewards"] = totals
    summary["daily_rewards"] = totals.diff().fillna(totals)

    services = to_float_series(summary["num_services"])
    previous = services.shift(1)
    summary["num_services"] = services
    summary["service_growth"] = np.where(
        previous > 0, (services - previous) / previous, np.nan
    )

    medians = to_float_series(summary["median_cumulative_rewards"])
    summary["median_cumulative_rewards"] = medians
    summary["median_rolling_mean"] = medians.rolling(rolling_window, min_periods=1).mean()

    return summary[columns]


def summarize_reward_trend(summary: pd.DataFrame) -> Dict:
    if summary.empty:
        return {}

    latest = summary.iloc[-1]
    return {
        "days": len(summary),
        "latest_total_rewards": float(latest["total_rewards"]),
        "avg_daily_rewards": float(summary["daily_rewards"].mean()),
        "latest_num_services": int(latest["num_services"]),
        "latest_median_rolling_mean": float(latest["median_rolling_mean"]),
    }
