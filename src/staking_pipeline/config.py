# staking_pipeline/config.py
"""
Network-level constants for the staking ledger
"""

ONE_DAY = 86400

GLOBAL_ID = ""

# Staking proxy implementations whose instances are indexed, per network
ALLOWED_IMPLEMENTATIONS = {
    "arbitrum-one": {"0x04b0007b2afb398015b76e5f22993a1fddf83644"},
    "base": {"0xeb5638eefe289691ece01943f768edbf96258a80"},
    "celo": {"0xe1e1b286ebe95b39f785d8069f2248ae9c41b7a9"},
    "gnosis": {"0xea00be6690a871827fafd705440d20dd75e67ab1"},
    "mainnet": {"0x0dc23eef3bc64cf3cbd8f9329b57ae4c4f28d5d2"},
    "matic": {
        "0x4aba1cf7a39a51d75cba789f5f21cf4882162519",
        "0x63c2c53c09de534dd3bc0b7771bf976070936bac",
    },
}


def is_allowed_implementation(network: str, implementation: str) -> bool:
    """Check whether a staking implementation is indexed on the given network."""
    allowed = ALLOWED_IMPLEMENTATIONS.get(network, set())
    return implementation.lower() in allowed
