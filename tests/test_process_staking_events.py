"""
Tests for staking_pipeline/services/processors/process_staking_events.py
"""

from unittest.mock import Mock

import pandas as pd
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from staking_pipeline.config import GLOBAL_ID
from staking_pipeline.db.models.base import Base
from staking_pipeline.services.contract_reader import StakingParams, StaticContractReader
from staking_pipeline.services.entities import rewards_history_id
from staking_pipeline.services.handlers import StakingEventHandler
from staking_pipeline.services.stores.sql import SqlEntityStore
from staking_pipeline.defs.assets.extraction import resolve_block_range
from staking_pipeline.services.processors.process_staking_events import (
    load_staking_events,
    process_staking_events,
)
from staking_pipeline.services.query_builders.staking_events_builder import (
    StakingEventQueryBuilder,
)

from conftest import CONTRACT_1, DAY_0


def _row(event_type, block_number, log_index, **fields):
    row = {
        "event_type": event_type,
        "contract_address": CONTRACT_1,
        "block_number": block_number,
        "block_timestamp": DAY_0 + block_number,
        "transaction_hash": f"0x{block_number:064x}",
        "log_index": log_index,
    }
    row.update(fields)
    return row


def _config(every=1):
    config = Mock()
    config.log_batch_progress_every = every
    return config


def test_replays_events_in_order(mock_context, handler, store):
    events = pd.DataFrame(
        [
            _row("ServiceStaked", 10, 0, epoch=1, service_id=1),
            _row("ServiceStaked", 10, 1, epoch=1, service_id=2),
            _row("Checkpoint", 20, 0, epoch=1, service_ids=[1, 2], rewards=[1000, 500]),
        ],
        dtype=object,
    )
    session = Mock()

    result = process_staking_events(mock_context, session, events, handler, _config())

    assert result == {"processed": 3, "failed": 0, "last_block": 20}
    assert session.begin_nested.call_count == 3
    assert store.services.get(1).olas_rewards_earned == 1000
    assert store.globals.get(GLOBAL_ID).total_rewards == 1500


def test_failed_event_is_rolled_back_and_skipped(mock_context, handler, store):
    events = pd.DataFrame(
        [
            _row("ServiceStaked", 10, 0, epoch=1, service_id=1),
            _row("ServiceStaked", 11, 0, epoch="not-a-number", service_id=2),
            _row("RewardClaimed", 12, 0, epoch=1, service_id=1, reward=50),
        ],
        dtype=object,
    )
    session = Mock()
    savepoint = session.begin_nested.return_value

    result = process_staking_events(mock_context, session, events, handler, _config(every=100))

    assert result["processed"] == 2
    assert result["failed"] == 1
    assert result["last_block"] == 12
    savepoint.rollback.assert_called_once()
    assert savepoint.commit.call_count == 2
    mock_context.log.error.assert_called_once()
    assert store.services.get(2) is None
    assert store.services.get(1).olas_rewards_claimed == 50


def test_empty_frame(mock_context, handler):
    result = process_staking_events(mock_context, Mock(), pd.DataFrame(), handler, _config())

    assert result == {"processed": 0, "failed": 0, "last_block": None}


def test_load_merges_tables_in_chain_order(mock_context):
    staked_builder = StakingEventQueryBuilder("ServiceStaked")
    checkpoint_builder = StakingEventQueryBuilder("Checkpoint")
    rows = {
        staked_builder.table_name: [
            (CONTRACT_1, 10, DAY_0, b"\x01", 3, 1, 7, None, None, None),
            (CONTRACT_1, 30, DAY_0, b"\x03", 0, 2, 8, None, None, None),
        ],
        checkpoint_builder.table_name: [
            (CONTRACT_1, 10, DAY_0, b"\x02", 1, 1, 0, "{7}", "{100}", 86400),
        ],
    }

    def execute_query(query, params, db="events"):
        for table, table_rows in rows.items():
            if f"FROM {table}" in query:
                return table_rows
        return []

    db = Mock()
    db.execute_query.side_effect = execute_query

    events = load_staking_events(
        mock_context, db, 0, 100, event_types=["ServiceStaked", "Checkpoint"]
    )

    assert list(events["event_type"]) == ["Checkpoint", "ServiceStaked", "ServiceStaked"]
    assert list(events["block_number"]) == [10, 10, 30]
    assert events.iloc[0]["transaction_hash"] == "0x02"
    # Columns of other tables are NaN, not dropped
    assert "rewards" in events.columns


class TestResolveBlockRange:
    def test_first_run_starts_at_zero(self):
        assert resolve_block_range(None, 1000, 10, 0) == (0, 990)

    def test_first_run_starts_at_earliest_event(self):
        window = resolve_block_range(None, 38_000_000, 10, 50000, earliest_block=32_000_000)

        assert window == (32_000_000, 32_049_999)

    def test_checkpoint_wins_over_earliest_event(self):
        assert resolve_block_range(40, 1000, 10, 0, earliest_block=5) == (41, 990)

    def test_continues_after_checkpoint_with_cap(self):
        assert resolve_block_range(500, 10000, 10, 100) == (501, 600)

    def test_nothing_new(self):
        assert resolve_block_range(995, 1000, 10, 0) is None
        assert resolve_block_range(None, None, 10, 0) is None


# ============================================================================
# SAVEPOINT ROLLBACK ON A REAL SESSION
# ============================================================================

@pytest.fixture
def sqlite_session():
    engine = create_engine("sqlite:///:memory:")

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    yield session
    session.close()
    engine.dispose()


def test_failed_checkpoint_writes_are_rolled_back(mock_context, sqlite_session):
    store = SqlEntityStore(sqlite_session)
    reader = StaticContractReader(
        {CONTRACT_1: StakingParams(min_staking_deposit=10, num_agent_instances=3)}
    )
    handler = StakingEventHandler(store, reader, Mock())
    # Fails after the checkpoint, history and earned writes have been flushed
    handler.snapshots.upsert_daily_snapshot = Mock(side_effect=RuntimeError("snapshot write failed"))

    events = pd.DataFrame(
        [
            _row("ServiceStaked", 10, 0, epoch=1, service_id=1),
            _row("ServiceStaked", 10, 1, epoch=1, service_id=2),
            _row("Checkpoint", 20, 0, epoch=1, service_ids=[1], rewards=[1000]),
        ],
        dtype=object,
    )

    result = process_staking_events(mock_context, sqlite_session, events, handler, _config(every=100))

    assert result["processed"] == 2
    assert result["failed"] == 1
    assert result["last_block"] == 10

    checkpoint_id = f"0x{20:064x}-0"
    assert store.checkpoints.get(checkpoint_id) is None
    assert store.services.get(1).olas_rewards_earned == 0

    history = store.rewards_history.get(rewards_history_id(1, CONTRACT_1, 1))
    assert history.reward_amount == 0
    assert history.checkpoint_id is None
    assert store.rewards_history.get(rewards_history_id(2, CONTRACT_1, 1)).checkpoint_id is None
    assert handler.membership.get(CONTRACT_1, 2) is None

    global_state = store.globals.get(GLOBAL_ID)
    assert global_state.total_rewards == 0
    assert global_state.current_olas_staked == 80

    # Writes from the events that succeeded survive
    sqlite_session.commit()
    assert store.services.get(2).current_olas_staked == 40
