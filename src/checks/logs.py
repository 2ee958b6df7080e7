#!/usr/bin/env python3
"""
Logs Check - 列出提案执行过程中发出的所有事件

按发出事件的合约分组：先输出合约标题行，再输出缩进的事件行。
跳过 Governor 的 ProposalExecuted 和 Timelock 不带参数的 ExecuteTransaction。
在目标链上运行时，覆盖所有跨链模拟的事件。
"""

import json
from typing import Dict, List, Optional

from web3 import Web3

from simulator.models import Log

from .base import CheckResult, ProposalCheck


def contract_header(address: str, name: Optional[str] = None) -> str:
    if not name:
        return f"Unknown Contract at `{address}`"
    return f"{name} at `{address}`"


def format_log(log: Log) -> str:
    if log.name:
        inputs = ", ".join(f"{name}: {value}" for name, value in log.inputs)
        return f"    `{log.name}({inputs})`"
    return f"    Undecoded log: `{json.dumps(log.raw, default=str)}`"


class CheckLogs(ProposalCheck):
    id = "check_logs"
    name = "Reports all events emitted from the proposal"

    def _should_skip(self, log: Log, address: str, ctx) -> bool:
        if address == ctx.governor_address and log.name == "ProposalExecuted":
            return True
        return address == ctx.timelock_address and log.name == "ExecuteTransaction" and not log.inputs

    async def check(self, proposal, sim, ctx, destinations=None) -> CheckResult:
        simulations = [sim]
        if destinations and not ctx.is_origin_chain:
            simulations = [d.sim for d in destinations if d.sim is not None]

        events: Dict[str, List[Log]] = {}
        for current in simulations:
            for log in current.logs:
                if not log.address:
                    continue
                address = Web3.to_checksum_address(log.address)
                if self._should_skip(log, address, ctx):
                    continue
                events.setdefault(address, []).append(log)

        if not events:
            return CheckResult(info=["No events emitted"])

        info = []
        for address, logs in events.items():
            info.append(contract_header(address, sim.contract_name(address)))
            info.extend(format_log(log) for log in logs)
        return CheckResult(info=info)
