# services/errors.py


class StakingLedgerError(Exception):
    """Base error for the staking ledger"""


class ContractCallError(StakingLedgerError):
    """A read-through contract call reverted or returned no data"""

    def __init__(self, contract_address: str, method: str, reason: str = ""):
        self.contract_address = contract_address
        self.method = method
        self.reason = reason
        message = f"{method}() failed on {contract_address}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class EventDecodeError(StakingLedgerError):
    """An event row could not be turned into a typed event"""
