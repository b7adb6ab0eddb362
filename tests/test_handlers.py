"""
Tests for staking_pipeline/services/handlers.py
"""

from unittest.mock import Mock

from staking_pipeline.config import GLOBAL_ID
from staking_pipeline.services.contract_reader import (
    RepositoryContractReader,
    StakingParams,
    StaticContractReader,
)
from staking_pipeline.services.events import (
    CheckpointEvent,
    Deposit,
    InstanceCreated,
    ServicesEvicted,
    ServiceStaked,
    ServiceUnstaked,
    Withdraw,
)
from staking_pipeline.services.handlers import StakingEventHandler

from conftest import CONTRACT_1, CONTRACT_2, MIN_STAKING_DEPOSIT, STAKE_AMOUNT

GNOSIS_IMPLEMENTATION = "0xEa00be6690a871827fAfD705440D20dd75e67AB1"
FACTORY = "0x00000000000000000000000000000000000000ff"


def test_stake_updates_global_totals(handler, store, make_meta):
    handler.handle(ServiceStaked(meta=make_meta(), epoch=1, service_id=1))
    handler.handle(ServiceStaked(meta=make_meta(address=CONTRACT_2), epoch=1, service_id=2))

    global_state = store.globals.get(GLOBAL_ID)
    assert global_state.cumulative_olas_staked == 2 * STAKE_AMOUNT
    assert global_state.current_olas_staked == 2 * STAKE_AMOUNT
    assert global_state.ranked_service_ids == [1, 2]
    assert global_state.ranked_rewards == [0, 0]

    assert store.services.get(1).current_olas_staked == STAKE_AMOUNT
    assert handler.membership.members(CONTRACT_1, 1) == [1]
    assert handler.ledger.get(1, CONTRACT_1, 1).reward_amount == 0


def test_unstake_records_claim_and_releases_stake(handler, store, make_meta):
    handler.handle(ServiceStaked(meta=make_meta(), epoch=1, service_id=1))
    unstake_meta = make_meta(block_number=200)
    handler.handle(
        ServiceUnstaked(meta=unstake_meta, epoch=1, service_id=1, reward=900)
    )

    service = store.services.get(1)
    assert service.olas_rewards_claimed == 900
    assert service.current_olas_staked == 0
    assert service.latest_staking_contract is None
    assert handler.membership.members(CONTRACT_1, 1) == []

    global_state = store.globals.get(GLOBAL_ID)
    assert global_state.cumulative_olas_unstaked == STAKE_AMOUNT
    assert global_state.current_olas_staked == 0

    update = store.reward_updates.get(unstake_meta.event_id)
    assert update.type == "Claimed"
    assert update.amount == 900


def test_global_current_stake_is_clamped(handler, store, make_meta):
    # Service known, but the stake was never counted globally
    handler.registry.on_stake(1, CONTRACT_1, STAKE_AMOUNT, make_meta())

    handler.handle(ServiceUnstaked(meta=make_meta(), epoch=1, service_id=1, reward=0))

    global_state = store.globals.get(GLOBAL_ID)
    assert global_state.current_olas_staked == 0
    assert global_state.cumulative_olas_unstaked == STAKE_AMOUNT


def test_unknown_contract_leaves_stake_totals(store, make_meta):
    handler = StakingEventHandler(store, StaticContractReader(), Mock())

    handler.handle(ServiceStaked(meta=make_meta(), epoch=1, service_id=1))

    assert store.services.get(1).current_olas_staked == 0
    assert handler.membership.members(CONTRACT_1, 1) == [1]
    assert store.globals.get(GLOBAL_ID).cumulative_olas_staked == 0
    handler.logger.warning.assert_called_once()


def test_eviction_removes_members(handler, make_meta):
    for service_id in (1, 2, 3):
        handler.handle(ServiceStaked(meta=make_meta(), epoch=2, service_id=service_id))

    handler.handle(ServicesEvicted(meta=make_meta(), epoch=2, service_ids=[1, 3]))

    assert handler.membership.members(CONTRACT_1, 2) == [2]


def test_eviction_leaves_past_epochs_untouched(handler, store, make_meta):
    handler.handle(ServiceStaked(meta=make_meta(), epoch=1, service_id=1))
    handler.handle(ServiceStaked(meta=make_meta(), epoch=1, service_id=2))
    checkpoint = CheckpointEvent(
        meta=make_meta(block_number=300), epoch=1, service_ids=[2], rewards=[1000]
    )
    handler.handle(checkpoint)

    handler.handle(ServicesEvicted(meta=make_meta(block_number=400), epoch=2, service_ids=[1]))

    assert handler.membership.members(CONTRACT_1, 2) == [2]
    assert handler.membership.members(CONTRACT_1, 1) == [1, 2]

    zero_row = handler.ledger.get(1, CONTRACT_1, 1)
    assert zero_row.reward_amount == 0
    assert zero_row.checkpoint_id == checkpoint.meta.event_id
    assert handler.ledger.get(2, CONTRACT_1, 1).reward_amount == 1000
    assert store.services.get(1).latest_staking_contract == CONTRACT_1


def test_checkpoint_redelivery_is_skipped(handler, store, make_meta):
    handler.handle(ServiceStaked(meta=make_meta(), epoch=1, service_id=1))
    event = CheckpointEvent(
        meta=make_meta(block_number=300), epoch=1, service_ids=[1], rewards=[1000]
    )

    handler.handle(event)
    handler.handle(event)

    assert store.services.get(1).olas_rewards_earned == 1000
    assert store.globals.get(GLOBAL_ID).total_rewards == 1000
    stored = store.checkpoints.get(event.meta.event_id)
    assert stored.service_ids == [1]
    assert stored.rewards == [1000]


def test_passive_events_change_nothing(handler, store, make_meta):
    handler.handle(Deposit(meta=make_meta(), sender=FACTORY, amount=10))
    handler.handle(Withdraw(meta=make_meta(), to=FACTORY, amount=10))

    global_state = store.globals.get(GLOBAL_ID)
    assert global_state.total_rewards == 0
    assert len(store.services) == 0


def test_instance_created_with_event_params(handler, store, make_meta):
    instance = "0x00000000000000000000000000000000000000AA"
    params = StakingParams(min_staking_deposit=MIN_STAKING_DEPOSIT, num_agent_instances=1)

    handler.handle(
        InstanceCreated(
            meta=make_meta(address=FACTORY),
            sender=FACTORY,
            instance=instance,
            implementation=GNOSIS_IMPLEMENTATION,
            params=params,
        )
    )

    contract = store.staking_contracts.get(instance.lower())
    assert contract.implementation == GNOSIS_IMPLEMENTATION.lower()
    assert contract.min_staking_deposit == MIN_STAKING_DEPOSIT
    # New contract becomes readable for stake amounts
    reader = RepositoryContractReader(store.staking_contracts)
    assert reader.olas_for_staking(instance) == 2 * MIN_STAKING_DEPOSIT


def test_instance_created_falls_back_to_reader(handler, store, make_meta):
    result = handler.handle_instance_created(
        InstanceCreated(
            meta=make_meta(address=FACTORY),
            sender=FACTORY,
            instance=CONTRACT_2,
            implementation=GNOSIS_IMPLEMENTATION,
        ),
        handler.get_or_create_global(),
    )

    assert result.num_agent_instances == 3
    assert store.staking_contracts.get(CONTRACT_2) is not None


def test_instance_created_unreadable_is_skipped(store, make_meta):
    handler = StakingEventHandler(store, StaticContractReader(), Mock())

    handler.handle(
        InstanceCreated(
            meta=make_meta(address=FACTORY),
            sender=FACTORY,
            instance=CONTRACT_2,
            implementation=GNOSIS_IMPLEMENTATION,
        )
    )

    assert len(store.staking_contracts) == 0
    handler.logger.warning.assert_called_once()


def test_instance_created_unknown_implementation_is_ignored(handler, store, make_meta):
    handler.handle(
        InstanceCreated(
            meta=make_meta(address=FACTORY),
            sender=FACTORY,
            instance=CONTRACT_2,
            implementation="0x1234",
        )
    )

    assert len(store.staking_contracts) == 0


def test_stake_on_contract_registered_by_factory(store, make_meta):
    handler = StakingEventHandler(
        store, RepositoryContractReader(store.staking_contracts), Mock()
    )
    instance = "0x00000000000000000000000000000000000000bb"
    handler.handle(
        InstanceCreated(
            meta=make_meta(address=FACTORY),
            sender=FACTORY,
            instance=instance,
            implementation=GNOSIS_IMPLEMENTATION,
            params=StakingParams(min_staking_deposit=100, num_agent_instances=1),
        )
    )

    handler.handle(ServiceStaked(meta=make_meta(address=instance), epoch=1, service_id=1))

    assert store.services.get(1).current_olas_staked == 200
    assert store.globals.get(GLOBAL_ID).current_olas_staked == 200
