# staking_pipeline/defs/assets/extraction.py
"""
Extraction Assets - Pull staking events indexed since the last ledger run
"""

from dagster import asset, OpExecutionContext
from datetime import datetime, timezone
from typing import Dict

from staking_pipeline.services.processors.process_staking_events import (
    load_staking_events,
)
from staking_pipeline.services.query_builders.staking_events_builder import (
    STAKING_EVENT_TABLES,
    build_earliest_block_query,
    build_latest_block_query,
)
from ..resources import DatabaseResource, ConfigResource


def resolve_block_range(
    last_processed_block,
    latest_block,
    safety_buffer_blocks: int,
    max_blocks_per_run: int,
    earliest_block=None,
):
    """
    Block window for this run, or None when there is nothing safe to read yet.

    Starts right after the checkpoint, or at the earliest indexed staking
    event on the first run (block 0 if unknown), and stops
    `safety_buffer_blocks` behind the latest indexed block.
    """
    if latest_block is None:
        return None

    if last_processed_block is None:
        from_block = int(earliest_block) if earliest_block is not None else 0
    else:
        from_block = int(last_processed_block) + 1
    up_to_block = int(latest_block) - safety_buffer_blocks
    if max_blocks_per_run > 0:
        up_to_block = min(up_to_block, from_block + max_blocks_per_run - 1)

    if up_to_block < from_block:
        return None
    return from_block, up_to_block


@asset(
    description="Staking events indexed since the last processed block, in chain order",
    compute_kind="sql",
)
def new_staking_events(
    context: OpExecutionContext,
    db: DatabaseResource,
    config: ConfigResource,
) -> Dict:
    start_time = datetime.now(timezone.utc)

    checkpoint_result = db.execute_query(
        config.get_checkpoint_query(),
        {"pipeline_name": config.checkpoint_key},
        db="analytics",
    )

    if checkpoint_result:
        last_processed_block = checkpoint_result[0][1]
        context.log.info(f"Last processed block: {last_processed_block}")
    else:
        last_processed_block = None
        context.log.info("First ledger run - replaying all staking events")

    table_names = [table for table, _ in STAKING_EVENT_TABLES.values()]
    latest_result = db.execute_query(build_latest_block_query(table_names), db="events")
    latest_block = latest_result[0][0] if latest_result else None

    earliest_block = None
    if last_processed_block is None:
        earliest_result = db.execute_query(
            build_earliest_block_query(table_names), db="events"
        )
        earliest_block = earliest_result[0][0] if earliest_result else None
        context.log.info(f"Earliest staking event block: {earliest_block}")

    block_range = resolve_block_range(
        last_processed_block,
        latest_block,
        config.safety_buffer_blocks,
        config.max_blocks_per_run,
        earliest_block=earliest_block,
    )
    if block_range is None:
        context.log.info(
            f"No new blocks to process (checkpoint {last_processed_block}, latest {latest_block})"
        )
        return {"from_block": None, "up_to_block": None, "events": None}

    from_block, up_to_block = block_range
    events = load_staking_events(context, db, from_block, up_to_block)

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    context.log.info(
        f"Found {len(events)} staking events in blocks {from_block}-{up_to_block}, "
        f"query duration: {duration:.2f}s"
    )

    return {"from_block": from_block, "up_to_block": up_to_block, "events": events}
