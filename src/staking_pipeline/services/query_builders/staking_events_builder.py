# query_builders/staking_events_builder.py

from typing import Dict, List, Optional, Tuple

from .base_builder import BaseQueryBuilder

# Columns every event table carries, in fetch order
META_COLUMNS = [
    "contract_address",
    "block_number",
    "block_timestamp",
    "transaction_hash",
    "log_index",
]

# event_type -> (events DB table, event-specific columns)
STAKING_EVENT_TABLES: Dict[str, Tuple[str, List[str]]] = {
    "ServiceStaked": (
        "service_staked_events",
        ["epoch", "service_id", "owner", "multisig", "nonces"],
    ),
    "ServiceUnstaked": (
        "service_unstaked_events",
        ["epoch", "service_id", "owner", "multisig", "nonces", "reward", "available_rewards"],
    ),
    "ServiceForceUnstaked": (
        "service_force_unstaked_events",
        ["epoch", "service_id", "owner", "multisig", "nonces", "reward", "available_rewards"],
    ),
    "RewardClaimed": (
        "reward_claimed_events",
        ["epoch", "service_id", "owner", "multisig", "nonces", "reward"],
    ),
    "ServicesEvicted": (
        "services_evicted_events",
        ["epoch", "service_ids", "owners", "multisigs", "service_inactivity"],
    ),
    "Checkpoint": (
        "checkpoint_events",
        ["epoch", "available_rewards", "service_ids", "rewards", "epoch_length"],
    ),
    "ServiceInactivityWarning": (
        "service_inactivity_warning_events",
        ["epoch", "service_id", "service_inactivity"],
    ),
    "Deposit": (
        "deposit_events",
        ["sender", "amount", "balance", "available_rewards"],
    ),
    "Withdraw": (
        "withdraw_events",
        ["to_address", "amount"],
    ),
    "InstanceCreated": (
        "instance_created_events",
        [
            "sender",
            "instance",
            "implementation",
            "min_staking_deposit",
            "num_agent_instances",
            "max_num_services",
            "rewards_per_second",
            "min_staking_duration",
            "liveness_period",
            "time_for_emissions",
        ],
    ),
}


class StakingEventQueryBuilder(BaseQueryBuilder):
    """Fetches one staking event type from its events DB table, in chain order"""

    def __init__(self, event_type: str, table_name: Optional[str] = None):
        if event_type not in STAKING_EVENT_TABLES:
            raise ValueError(f"Unknown staking event type: {event_type}")
        default_table, columns = STAKING_EVENT_TABLES[event_type]
        self.event_type = event_type
        self.table_name = table_name or default_table
        self.event_columns = columns

    def build_fetch_query(
        self, from_block: int, up_to_block: Optional[int] = None
    ) -> Tuple[str, Dict]:
        block_filter, params = self.block_range_filter(from_block, up_to_block)

        query = f"""
            SELECT
                {", ".join(self.get_column_names())}
            FROM {self.table_name}
            WHERE {block_filter}
            ORDER BY block_number, log_index
        """
        return query, params

    def get_column_names(self) -> list:
        return META_COLUMNS + self.event_columns


def _block_bound_query(table_names: List[str], agg: str) -> str:
    per_table = [f"SELECT {agg}(block_number) AS bound FROM {table}" for table in table_names]
    return f"""
    SELECT {agg}(bound) AS bound_overall FROM (
        {" UNION ALL ".join(per_table)}
    ) t
    """


def build_latest_block_query(table_names: List[str]) -> str:
    """Highest block across the given event tables (NULL if all are empty)"""
    return _block_bound_query(table_names, "MAX")


def build_earliest_block_query(table_names: List[str]) -> str:
    """Lowest block across the given event tables (NULL if all are empty)"""
    return _block_bound_query(table_names, "MIN")
