# services/handlers.py
"""
Staking event handlers.

StakingEventHandler is the single entry point the event processor feeds:
it loads the global aggregate once per event, dispatches to the handler for
the event type, and saves the aggregate afterwards. Handlers never re-load an
entity they have already mutated within the same event.
"""

import logging
from typing import Callable, Dict, Optional

from staking_pipeline.config import GLOBAL_ID, is_allowed_implementation
from .active_membership import ActiveMembershipTracker
from .checkpoint_processor import CheckpointProcessor, CheckpointResult
from .contract_reader import ContractReader
from .daily_snapshot import DailySnapshotUpdater
from .entities import Checkpoint, RewardUpdate, StakingContract, StakingGlobal
from .errors import ContractCallError
from .events import (
    CheckpointEvent,
    Deposit,
    EventMeta,
    InstanceCreated,
    RewardClaimed,
    ServiceForceUnstaked,
    ServiceInactivityWarning,
    ServicesEvicted,
    ServiceStaked,
    ServiceUnstaked,
    Withdraw,
)
from .median import SortedRewardIndex
from .rewards_history import RewardHistoryLedger
from .service_registry import ServiceRegistry
from .stores.base import EntityStore


class StakingEventHandler:
    def __init__(
        self,
        store: EntityStore,
        contract_reader: ContractReader,
        logger: logging.Logger,
        network: str = "gnosis",
    ):
        self.store = store
        self.contract_reader = contract_reader
        self.logger = logger
        self.network = network

        self.registry = ServiceRegistry(store.services, logger)
        self.membership = ActiveMembershipTracker(store.active_epochs, logger)
        self.ledger = RewardHistoryLedger(store.rewards_history, logger)
        self.snapshots = DailySnapshotUpdater(store.daily_snapshots, logger)
        self.checkpoint_processor = CheckpointProcessor(
            self.registry,
            self.membership,
            self.ledger,
            self.snapshots,
            store.reward_updates,
            logger,
        )

        self._handlers: Dict[type, Callable] = {
            ServiceStaked: self.handle_service_staked,
            ServiceUnstaked: self.handle_service_unstaked,
            ServiceForceUnstaked: self.handle_service_force_unstaked,
            RewardClaimed: self.handle_reward_claimed,
            ServicesEvicted: self.handle_services_evicted,
            CheckpointEvent: self.handle_checkpoint,
            ServiceInactivityWarning: self.handle_passive_event,
            Deposit: self.handle_passive_event,
            Withdraw: self.handle_passive_event,
            InstanceCreated: self.handle_instance_created,
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, event) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            self.logger.warning(f"No handler registered for {type(event).__name__}")
            return

        global_state = self.get_or_create_global()
        handler(event, global_state)
        self.store.globals.upsert(global_state)

    def get_or_create_global(self) -> StakingGlobal:
        global_state = self.store.globals.get(GLOBAL_ID)
        if global_state is None:
            global_state = StakingGlobal(id=GLOBAL_ID)
        return global_state

    # ------------------------------------------------------------------
    # Staking proxy events
    # ------------------------------------------------------------------

    def handle_service_staked(
        self, event: ServiceStaked, global_state: StakingGlobal
    ) -> None:
        meta = event.meta
        contract = meta.address.lower()

        stake_amount = self._olas_for_staking(contract)

        service = self.registry.on_stake(
            event.service_id, contract, stake_amount or 0, meta
        )

        index = SortedRewardIndex.from_global(global_state)
        if service.id not in index:
            index.upsert(service.id, service.olas_rewards_earned)

        self.membership.add(contract, event.epoch, event.service_id, meta)
        self.ledger.get_or_create(event.service_id, contract, event.epoch, meta)

        if stake_amount is not None:
            global_state.cumulative_olas_staked += stake_amount
            global_state.current_olas_staked += stake_amount

    def handle_service_unstaked(
        self, event: ServiceUnstaked, global_state: StakingGlobal
    ) -> None:
        self._record_reward_update(event.meta, "Claimed", event.reward)
        self._process_unstake(event.meta, event.service_id, event.epoch, event.reward, global_state)

    def handle_service_force_unstaked(
        self, event: ServiceForceUnstaked, global_state: StakingGlobal
    ) -> None:
        self._process_unstake(event.meta, event.service_id, event.epoch, event.reward, global_state)

    def handle_reward_claimed(
        self, event: RewardClaimed, global_state: StakingGlobal
    ) -> None:
        self.registry.on_claim(event.service_id, event.reward)
        self._record_reward_update(event.meta, "Claimed", event.reward)

    def handle_services_evicted(
        self, event: ServicesEvicted, global_state: StakingGlobal
    ) -> None:
        contract = event.meta.address.lower()
        removed = self.membership.remove_many(contract, event.epoch, event.service_ids)
        self.logger.info(
            f"Evicted {removed}/{len(event.service_ids)} services from {contract} "
            f"epoch {event.epoch}"
        )

    def handle_checkpoint(
        self, event: CheckpointEvent, global_state: StakingGlobal
    ) -> Optional[CheckpointResult]:
        meta = event.meta
        checkpoint_id = meta.event_id

        if self.store.checkpoints.get(checkpoint_id) is not None:
            self.logger.warning(
                f"Checkpoint {checkpoint_id} (epoch {event.epoch} on {meta.address}) "
                f"already processed, skipping redelivery"
            )
            return None

        self.store.checkpoints.upsert(
            Checkpoint(
                id=checkpoint_id,
                contract_address=meta.address.lower(),
                epoch=event.epoch,
                available_rewards=event.available_rewards,
                service_ids=list(event.service_ids),
                rewards=list(event.rewards),
                epoch_length=event.epoch_length,
                block_number=meta.block_number,
                block_timestamp=meta.block_timestamp,
                transaction_hash=meta.transaction_hash,
            )
        )
        return self.checkpoint_processor.process(event, checkpoint_id, global_state)

    def handle_passive_event(self, event, global_state: StakingGlobal) -> None:
        # No derived state; kept so the stream accounts for every event type
        self.logger.debug(
            f"{type(event).__name__} at block {event.meta.block_number} on {event.meta.address}"
        )

    # ------------------------------------------------------------------
    # Staking factory events
    # ------------------------------------------------------------------

    def handle_instance_created(
        self, event: InstanceCreated, global_state: StakingGlobal
    ) -> Optional[StakingContract]:
        if not is_allowed_implementation(self.network, event.implementation):
            self.logger.debug(
                f"Ignoring instance {event.instance} with implementation "
                f"{event.implementation} on {self.network}"
            )
            return None

        params = event.params
        if params is None:
            try:
                params = self.contract_reader.staking_params(event.instance)
            except ContractCallError as exc:
                self.logger.warning(
                    f"Could not read configuration of staking instance {event.instance}: {exc}"
                )
                return None

        staking_contract = StakingContract(
            id=event.instance.lower(),
            instance=event.instance.lower(),
            sender=event.sender.lower(),
            implementation=event.implementation.lower(),
            min_staking_deposit=params.min_staking_deposit,
            num_agent_instances=params.num_agent_instances,
            max_num_services=params.max_num_services,
            rewards_per_second=params.rewards_per_second,
            min_staking_duration=params.min_staking_duration,
            liveness_period=params.liveness_period,
            time_for_emissions=params.time_for_emissions,
            block_number=event.meta.block_number,
            block_timestamp=event.meta.block_timestamp,
        )
        self.store.staking_contracts.upsert(staking_contract)
        self.logger.info(f"Registered staking contract {staking_contract.instance}")
        return staking_contract

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _process_unstake(
        self,
        meta: EventMeta,
        service_id: int,
        epoch: int,
        reward: int,
        global_state: StakingGlobal,
    ) -> None:
        contract = meta.address.lower()
        stake_amount = self._olas_for_staking(contract)

        self.registry.on_unstake(service_id, contract, reward, stake_amount or 0)
        self.membership.remove(contract, epoch, service_id)

        if stake_amount is None:
            return

        global_state.cumulative_olas_unstaked += stake_amount
        if stake_amount > global_state.current_olas_staked:
            self.logger.warning(
                f"Unstake of {stake_amount} exceeds global current stake "
                f"{global_state.current_olas_staked}, clamping to 0"
            )
            global_state.current_olas_staked = 0
        else:
            global_state.current_olas_staked -= stake_amount

    def _olas_for_staking(self, contract_address: str) -> Optional[int]:
        try:
            return self.contract_reader.olas_for_staking(contract_address)
        except ContractCallError as exc:
            self.logger.warning(
                f"Stake amount unavailable for {contract_address}, leaving stake totals unchanged: {exc}"
            )
            return None

    def _record_reward_update(self, meta: EventMeta, update_type: str, amount: int) -> None:
        self.store.reward_updates.upsert(
            RewardUpdate(
                id=meta.event_id,
                block_number=meta.block_number,
                block_timestamp=meta.block_timestamp,
                transaction_hash=meta.transaction_hash,
                type=update_type,
                amount=amount,
            )
        )
