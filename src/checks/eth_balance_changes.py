#!/usr/bin/env python3
"""
ETH Balance Changes Check - 汇总提案执行过程中各地址的 ETH 余额净变化

余额变化由调用树中携带 value 的 CALL / CREATE / CREATE2 / SELFDESTRUCT 计算，
DELEGATECALL / STATICCALL 不转移 ETH。只统计 ETH，不包含 ERC20 转账。
"""

from decimal import Decimal
from typing import Dict, List, Optional

from web3 import Web3

from simulator.models import CallTrace

from .base import CheckResult, ProposalCheck
from .targets import destination_sims_for_chain

VALUE_TRANSFER_TYPES = {"CALL", "CREATE", "CREATE2", "SELFDESTRUCT"}


def eth_balance_changes(root: Optional[CallTrace]) -> Dict[str, int]:
    """
    计算调用树中每个地址的 ETH 净变化（wei）

    Args:
        root: 调用树根节点

    Returns:
        校验和地址 -> 净变化（按首次出现顺序，不含净变化为 0 的地址）
    """
    changes: Dict[str, int] = {}
    if root is None:
        return changes

    stack = [root]
    while stack:
        node = stack.pop()
        if node.value > 0 and node.type in VALUE_TRANSFER_TYPES and node.from_address and node.to:
            sender = Web3.to_checksum_address(node.from_address)
            recipient = Web3.to_checksum_address(node.to)
            changes[sender] = changes.get(sender, 0) - node.value
            changes[recipient] = changes.get(recipient, 0) + node.value
        stack.extend(reversed(node.calls))

    return {address: delta for address, delta in changes.items() if delta != 0}


def format_balance_change(wei: int) -> str:
    ether = Web3.from_wei(abs(wei), "ether")
    sign = "+" if wei > 0 else "-"
    return f"{sign}{Decimal(ether):.4f} ETH"


class CheckEthBalanceChanges(ProposalCheck):
    id = "check_eth_balance_changes"
    name = "Reports on ETH balance changes from the proposal"

    async def check(self, proposal, sim, ctx, destinations=None) -> CheckResult:
        sims = [d.sim for d in destination_sims_for_chain(ctx, destinations)] or [sim]

        totals: Dict[str, int] = {}
        for current in sims:
            for address, delta in eth_balance_changes(current.call_trace).items():
                totals[address] = totals.get(address, 0) + delta
        totals = {address: delta for address, delta in totals.items() if delta != 0}

        if not totals:
            return CheckResult(info=["No ETH transfers detected"])

        info: List[str] = ["ETH Balance Changes:"]
        for address, delta in totals.items():
            info.append(f"    {ctx.link(address)}: {format_balance_change(delta)}")
        return CheckResult(info=info)
