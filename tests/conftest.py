import logging
from unittest.mock import Mock

import pytest

from staking_pipeline.services.contract_reader import StakingParams, StaticContractReader
from staking_pipeline.services.events import EventMeta
from staking_pipeline.services.handlers import StakingEventHandler
from staking_pipeline.services.stores.memory import InMemoryEntityStore


MIN_STAKING_DEPOSIT = 10000000000000000000
NUM_AGENT_INSTANCES = 3
STAKE_AMOUNT = MIN_STAKING_DEPOSIT * (NUM_AGENT_INSTANCES + 1)

CONTRACT_1 = "0x0000000000000000000000000000000000000001"
CONTRACT_2 = "0x0000000000000000000000000000000000000002"

# 2024-01-01T00:00:00Z
DAY_0 = 1704067200
ONE_DAY = 86400


@pytest.fixture
def logger():
    return logging.getLogger("staking_pipeline.tests")


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def contract_reader():
    params = StakingParams(
        min_staking_deposit=MIN_STAKING_DEPOSIT,
        num_agent_instances=NUM_AGENT_INSTANCES,
    )
    return StaticContractReader({CONTRACT_1: params, CONTRACT_2: params})


@pytest.fixture
def handler(store, contract_reader, logger):
    return StakingEventHandler(store, contract_reader, logger, network="gnosis")


@pytest.fixture
def make_meta():
    """
    Factory for event positions. Each call moves to the next log index so
    successive events get distinct event IDs.
    """
    counter = {"log_index": 0}

    def _make(
        address: str = CONTRACT_1,
        block_number: int = 100,
        block_timestamp: int = DAY_0,
        transaction_hash: str = None,
        log_index: int = None,
    ) -> EventMeta:
        counter["log_index"] += 1
        idx = counter["log_index"] if log_index is None else log_index
        return EventMeta(
            address=address,
            block_number=block_number,
            block_timestamp=block_timestamp,
            transaction_hash=transaction_hash or f"0x{block_number:064x}",
            log_index=idx,
        )

    return _make


@pytest.fixture
def mock_context():
    context = Mock()
    context.log = Mock()
    return context
