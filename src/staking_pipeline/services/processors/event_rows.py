# services/processors/event_rows.py
"""
Turn events DB rows into typed staking events
"""

from typing import Callable, Dict

from staking_pipeline.utils.normalizers import (
    is_missing,
    normalize_address,
    parse_int,
    parse_int_list,
    parse_str_list,
)
from ..contract_reader import StakingParams
from ..errors import EventDecodeError
from ..events import (
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


def _meta(row: Dict) -> EventMeta:
    return EventMeta(
        address=normalize_address(row["contract_address"]),
        block_number=parse_int(row["block_number"]),
        block_timestamp=parse_int(row["block_timestamp"]),
        transaction_hash=normalize_address(row["transaction_hash"]),
        log_index=parse_int(row["log_index"]),
    )


def _service_staked(row: Dict) -> ServiceStaked:
    return ServiceStaked(
        meta=_meta(row),
        epoch=parse_int(row["epoch"]),
        service_id=parse_int(row["service_id"]),
        owner=normalize_address(row.get("owner")),
        multisig=normalize_address(row.get("multisig")),
        nonces=parse_int_list(row.get("nonces")),
    )


def _service_unstaked(row: Dict) -> ServiceUnstaked:
    return ServiceUnstaked(
        meta=_meta(row),
        epoch=parse_int(row["epoch"]),
        service_id=parse_int(row["service_id"]),
        reward=parse_int(row["reward"]),
        owner=normalize_address(row.get("owner")),
        multisig=normalize_address(row.get("multisig")),
        nonces=parse_int_list(row.get("nonces")),
        available_rewards=parse_int(row.get("available_rewards")),
    )


def _service_force_unstaked(row: Dict) -> ServiceForceUnstaked:
    return ServiceForceUnstaked(
        meta=_meta(row),
        epoch=parse_int(row["epoch"]),
        service_id=parse_int(row["service_id"]),
        reward=parse_int(row["reward"]),
        owner=normalize_address(row.get("owner")),
        multisig=normalize_address(row.get("multisig")),
        nonces=parse_int_list(row.get("nonces")),
        available_rewards=parse_int(row.get("available_rewards")),
    )


def _reward_claimed(row: Dict) -> RewardClaimed:
    return RewardClaimed(
        meta=_meta(row),
        epoch=parse_int(row["epoch"]),
        service_id=parse_int(row["service_id"]),
        reward=parse_int(row["reward"]),
        owner=normalize_address(row.get("owner")),
        multisig=normalize_address(row.get("multisig")),
        nonces=parse_int_list(row.get("nonces")),
    )


def _services_evicted(row: Dict) -> ServicesEvicted:
    return ServicesEvicted(
        meta=_meta(row),
        epoch=parse_int(row["epoch"]),
        service_ids=parse_int_list(row["service_ids"]),
        owners=parse_str_list(row.get("owners")),
        multisigs=parse_str_list(row.get("multisigs")),
        service_inactivity=parse_int_list(row.get("service_inactivity")),
    )


def _checkpoint(row: Dict) -> CheckpointEvent:
    return CheckpointEvent(
        meta=_meta(row),
        epoch=parse_int(row["epoch"]),
        service_ids=parse_int_list(row["service_ids"]),
        rewards=parse_int_list(row["rewards"]),
        available_rewards=parse_int(row.get("available_rewards")),
        epoch_length=parse_int(row.get("epoch_length")),
    )


def _inactivity_warning(row: Dict) -> ServiceInactivityWarning:
    return ServiceInactivityWarning(
        meta=_meta(row),
        epoch=parse_int(row["epoch"]),
        service_id=parse_int(row["service_id"]),
        service_inactivity=parse_int(row.get("service_inactivity")),
    )


def _deposit(row: Dict) -> Deposit:
    return Deposit(
        meta=_meta(row),
        sender=normalize_address(row.get("sender")),
        amount=parse_int(row["amount"]),
        balance=parse_int(row.get("balance")),
        available_rewards=parse_int(row.get("available_rewards")),
    )


def _withdraw(row: Dict) -> Withdraw:
    return Withdraw(
        meta=_meta(row),
        to=normalize_address(row.get("to_address")),
        amount=parse_int(row["amount"]),
    )


def _instance_created(row: Dict) -> InstanceCreated:
    params = None
    # Configuration columns are NULL when the collector's eth_calls reverted
    if not is_missing(row.get("min_staking_deposit")) and not is_missing(
        row.get("num_agent_instances")
    ):
        params = StakingParams(
            min_staking_deposit=parse_int(row["min_staking_deposit"]),
            num_agent_instances=parse_int(row["num_agent_instances"]),
            max_num_services=parse_int(row.get("max_num_services")),
            rewards_per_second=parse_int(row.get("rewards_per_second")),
            min_staking_duration=parse_int(row.get("min_staking_duration")),
            liveness_period=parse_int(row.get("liveness_period")),
            time_for_emissions=parse_int(row.get("time_for_emissions")),
        )
    return InstanceCreated(
        meta=_meta(row),
        sender=normalize_address(row.get("sender")),
        instance=normalize_address(row["instance"]),
        implementation=normalize_address(row["implementation"]),
        params=params,
    )


EVENT_DECODERS: Dict[str, Callable[[Dict], object]] = {
    "ServiceStaked": _service_staked,
    "ServiceUnstaked": _service_unstaked,
    "ServiceForceUnstaked": _service_force_unstaked,
    "RewardClaimed": _reward_claimed,
    "ServicesEvicted": _services_evicted,
    "Checkpoint": _checkpoint,
    "ServiceInactivityWarning": _inactivity_warning,
    "Deposit": _deposit,
    "Withdraw": _withdraw,
    "InstanceCreated": _instance_created,
}


def row_to_event(event_type: str, row: Dict):
    """
    Decode one events DB row.

    Raises:
        EventDecodeError: unknown event type, missing column or unparsable value
    """
    decoder = EVENT_DECODERS.get(event_type)
    if decoder is None:
        raise EventDecodeError(f"Unknown staking event type: {event_type}")
    try:
        return decoder(row)
    except (KeyError, ValueError, TypeError) as exc:
        raise EventDecodeError(
            f"Could not decode {event_type} row at block {row.get('block_number')}: {exc}"
        ) from exc
