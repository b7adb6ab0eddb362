from datetime import datetime, timezone
from typing import Dict, List, Optional

import pandas as pd

from staking_pipeline.utils.normalizers import normalize_bytes_columns, parse_int
from ..handlers import StakingEventHandler
from ..query_builders.staking_events_builder import (
    STAKING_EVENT_TABLES,
    StakingEventQueryBuilder,
)
from .event_rows import row_to_event


def load_staking_events(
    context,
    db,
    from_block: int,
    up_to_block: Optional[int] = None,
    event_types: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Fetch every staking event type in [from_block, up_to_block] and merge
    them into a single frame in chain order (block_number, log_index).
    """
    frames = []
    for event_type in event_types or list(STAKING_EVENT_TABLES):
        builder = StakingEventQueryBuilder(event_type)
        query, params = builder.build_fetch_query(from_block, up_to_block)

        try:
            rows = db.execute_query(query, params, db="events")
        except Exception as exc:
            context.log.error(f"Fetch failed for {builder.table_name}: {exc}")
            raise

        if not rows:
            continue

        # object dtype keeps uint256 values exact; float coercion would not
        df = pd.DataFrame(
            [tuple(row) for row in rows],
            columns=builder.get_column_names(),
            dtype=object,
        )
        df["event_type"] = event_type
        frames.append(normalize_bytes_columns(df))
        context.log.info(f"Fetched {len(df)} {event_type} events")

    if not frames:
        return pd.DataFrame(columns=["event_type", "block_number", "log_index"])

    events = pd.concat(frames, ignore_index=True, sort=False)
    events["_block"] = events["block_number"].map(parse_int)
    events["_log"] = events["log_index"].map(parse_int)
    events = events.sort_values(["_block", "_log"], kind="mergesort")
    return events.drop(columns=["_block", "_log"]).reset_index(drop=True)


def process_staking_events(
    context,
    session,
    events: pd.DataFrame,
    handler: StakingEventHandler,
    config,
) -> Dict:
    """
    Replay ordered event rows through the handler.

    Each event runs inside its own savepoint: a failure rolls back only that
    event's writes, is logged and skipped.
    """
    if events is None or events.empty:
        context.log.info("No staking events to process")
        return {"processed": 0, "failed": 0, "last_block": None}

    start_time = datetime.now(timezone.utc)
    processed_count = 0
    failed_count = 0
    last_block = None
    total = len(events)

    for idx, row in enumerate(events.to_dict("records"), 1):
        event_type = row.get("event_type")
        if idx % config.log_batch_progress_every == 0:
            context.log.info(
                f"Staking events {idx}/{total}: {event_type} at block {row.get('block_number')}"
            )

        savepoint = session.begin_nested()
        try:
            event = row_to_event(event_type, row)
            handler.handle(event)
            savepoint.commit()
        except Exception as exc:
            savepoint.rollback()
            context.log.error(
                f"Failed to process {event_type} at block {row.get('block_number')} "
                f"(tx {row.get('transaction_hash')}, log {row.get('log_index')}): {exc}"
            )
            failed_count += 1
            continue

        processed_count += 1
        last_block = event.meta.block_number

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    context.log.info(
        f"Staking events: processed {processed_count}, "
        f"failed: {failed_count}, "
        f"last block: {last_block}, "
        f"duration: {duration:.2f}s"
    )

    return {
        "processed": processed_count,
        "failed": failed_count,
        "last_block": last_block,
    }
