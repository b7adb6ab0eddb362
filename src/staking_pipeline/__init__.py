"""
staking_pipeline - Epoch-scoped staking reward ledger for staking-proxy events

Replays ordered staking events (stakes, unstakes, claims, evictions and
checkpoints) into derived entities:
- Service registry with cumulative earned/claimed rewards
- Active service membership per (contract, epoch)
- Per-epoch reward history, including explicit zero rewards
- Global totals and forward-filled daily median snapshots

Usage:
    from staking_pipeline.services.stores.memory import InMemoryEntityStore
    from staking_pipeline.services.handlers import StakingEventHandler

    store = InMemoryEntityStore()
    handler = StakingEventHandler(store, contract_reader, logger)
    handler.handle(event)
"""

__version__ = "0.1.0"
