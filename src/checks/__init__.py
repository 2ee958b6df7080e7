"""
Checks Module - 提案检查与检查编排
"""

from .base import AllCheckResults, CheckContext, CheckOutcome, CheckResult, ProposalCheck, to_address_link
from .decode_calldata import CheckDecodeCalldata
from .eth_balance_changes import CheckEthBalanceChanges
from .logs import CheckLogs
from .no_selfdestruct import CheckTargetsNoSelfdestruct, CheckTouchedContractsNoSelfdestruct
from .placeholder import DEFAULT_SIMULATION_ADDRESS, PlaceholderAddressPolicy
from .runner import ChainReport, ChainStatus, MultiChainReport, chain_status, run_all_chains, run_checks_for_chain
from .state_changes import CheckStateChanges
from .value_required import CheckValueRequired
from .verified import CheckTargetsVerified, CheckTouchedContractsVerified


def default_checks():
    """默认检查集合（每次调用返回新实例）"""
    return [
        CheckStateChanges(),
        CheckDecodeCalldata(),
        CheckLogs(),
        CheckTargetsVerified(),
        CheckTouchedContractsVerified(),
        CheckTargetsNoSelfdestruct(),
        CheckTouchedContractsNoSelfdestruct(),
        CheckValueRequired(),
        CheckEthBalanceChanges(),
    ]


ALL_CHECKS = {check.id: check for check in default_checks()}

__all__ = [
    "ALL_CHECKS",
    "default_checks",
    "AllCheckResults",
    "CheckContext",
    "CheckOutcome",
    "CheckResult",
    "ProposalCheck",
    "to_address_link",
    "DEFAULT_SIMULATION_ADDRESS",
    "PlaceholderAddressPolicy",
    "ChainReport",
    "ChainStatus",
    "MultiChainReport",
    "chain_status",
    "run_all_chains",
    "run_checks_for_chain",
]
