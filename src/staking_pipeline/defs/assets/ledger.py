# staking_pipeline/defs/assets/ledger.py
"""
Ledger Assets - Replay staking events into the reward ledger
"""

import json
from dagster import asset, OpExecutionContext, AssetIn, Output
from datetime import datetime, timezone
from typing import Dict

from staking_pipeline.services.contract_reader import RepositoryContractReader
from staking_pipeline.services.handlers import StakingEventHandler
from staking_pipeline.services.processors.process_staking_events import (
    process_staking_events,
)
from staking_pipeline.services.stores.sql import SqlEntityStore
from ..resources import DatabaseResource, ConfigResource


def update_ledger_checkpoint(
    db: DatabaseResource,
    config: ConfigResource,
    last_processed_block: int,
    processed: int,
    failed: int,
    duration: float,
    metadata: Dict,
) -> None:
    db.execute_update(
        config.get_update_checkpoint_query(),
        {
            "pipeline_name": config.checkpoint_key,
            "last_processed_at": datetime.now(timezone.utc),
            "last_processed_block": last_processed_block,
            "events_processed_count": processed,
            "events_failed_count": failed,
            "run_duration_seconds": int(duration),
            "run_metadata": json.dumps(metadata),
        },
        db="analytics",
    )


@asset(
    ins={"new_events": AssetIn("new_staking_events")},
    description="Replays staking events into services, epoch membership, reward history and daily snapshots",
    compute_kind="python",
)
def staking_reward_ledger(
    context: OpExecutionContext,
    db: DatabaseResource,
    config: ConfigResource,
    new_events: Dict,
) -> Output[int]:
    """
    Apply the new events in chain order, then advance the pipeline checkpoint
    to the end of the scanned block window. The checkpoint moves only after
    the ledger session has committed.
    """
    up_to_block = new_events.get("up_to_block")
    if up_to_block is None:
        return Output(0, metadata={"skipped": True})

    start_time = datetime.now(timezone.utc)

    with db.get_analytics_session() as session:
        store = SqlEntityStore(session)
        handler = StakingEventHandler(
            store,
            RepositoryContractReader(store.staking_contracts),
            context.log,
            network=config.network,
        )
        result = process_staking_events(
            context, session, new_events.get("events"), handler, config
        )

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    update_ledger_checkpoint(
        db,
        config,
        up_to_block,
        result["processed"],
        result["failed"],
        duration,
        {
            "from_block": new_events.get("from_block"),
            "up_to_block": up_to_block,
            "last_event_block": result["last_block"],
        },
    )

    context.log.info(
        f"Ledger advanced to block {up_to_block}: "
        f"{result['processed']} events applied, {result['failed']} failed"
    )

    return Output(
        result["processed"],
        metadata={
            "from_block": new_events.get("from_block"),
            "up_to_block": up_to_block,
            "failed": result["failed"],
        },
    )
