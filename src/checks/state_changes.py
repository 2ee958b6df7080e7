#!/usr/bin/env python3
"""
State Changes Check - 列出提案执行后的存储变化

按合约分组：先输出合约标题行（`<Name> at \`0xAddr\``），再输出缩进的变化行：
- 已解码的简单变量：    `name` changed from `old` to `new`
- 已解码的 mapping：    `name` key `key` changed from `old` to `new`
- 未解码的存储槽：      Slot `0xslot` changed from `"old"` to `"new"`
目标链运行时，使用该链的跨链模拟结果。
"""

from typing import Any, Dict, List, Optional

from web3 import Web3

from simulator.models import SimulationResult

from .base import CheckResult, ProposalCheck
from .logs import contract_header
from .targets import destination_sims_for_chain


def _diff_address(diff: Dict[str, Any]) -> Optional[str]:
    address = diff.get("address")
    if not address:
        raw = diff.get("raw") or []
        if raw and isinstance(raw[0], dict):
            address = raw[0].get("address")
    return Web3.to_checksum_address(address) if address else None


def _variable_name(diff: Dict[str, Any]) -> Optional[str]:
    soltype = diff.get("soltype")
    if isinstance(soltype, dict) and soltype.get("name"):
        return soltype["name"]
    return None


def format_state_diff(diff: Dict[str, Any]) -> List[str]:
    """
    把一条状态变化转换成报告行

    Args:
        diff: 模拟服务输出的 state diff（soltype / original / dirty / raw）

    Returns:
        缩进的报告行（值未变化的 mapping 项不输出）
    """
    name = _variable_name(diff)
    original = diff.get("original")
    dirty = diff.get("dirty")

    if name is None:
        return [
            f'    Slot `{slot.get("key")}` changed from `"{slot.get("original")}"` to `"{slot.get("dirty")}"`'
            for slot in diff.get("raw") or []
            if isinstance(slot, dict)
        ]

    if isinstance(original, dict) or isinstance(dirty, dict):
        original = original if isinstance(original, dict) else {}
        dirty = dirty if isinstance(dirty, dict) else {}
        lines = []
        for key in list(dict.fromkeys([*original, *dirty])):
            old, new = original.get(key), dirty.get(key)
            if old != new:
                lines.append(f"    `{name}` key `{key}` changed from `{old}` to `{new}`")
        return lines

    return [f"    `{name}` changed from `{original}` to `{dirty}`"]


def collect_state_changes(sims: List[SimulationResult]) -> Dict[str, List[str]]:
    changes: Dict[str, List[str]] = {}
    for sim in sims:
        for diff in sim.state_diffs:
            if not isinstance(diff, dict):
                continue
            address = _diff_address(diff)
            if address is None:
                continue
            lines = format_state_diff(diff)
            if lines:
                changes.setdefault(address, []).extend(lines)
    return changes


class CheckStateChanges(ProposalCheck):
    id = "check_state_changes"
    name = "Reports all state changes from the proposal"

    async def check(self, proposal, sim, ctx, destinations=None) -> CheckResult:
        sims = [d.sim for d in destination_sims_for_chain(ctx, destinations)] or [sim]
        changes = collect_state_changes(sims)
        if not changes:
            return CheckResult(info=["No state changes"])

        info = []
        for address, lines in changes.items():
            name = None
            for current in sims:
                name = current.contract_name(address) or name
            info.append(contract_header(address, name))
            info.extend(lines)
        return CheckResult(info=info)
