#!/usr/bin/env python3
"""
Targets - 地址类检查的目标地址来源

- 源链（主网）：提案的 targets（去重，校验和格式）
- 目标链且有该链的跨链模拟：从模拟调用树中提取带 calldata 的调用目标，
  再加上模拟交易本身的目标地址
"""

from typing import List, Optional, Sequence, Tuple

from web3 import Web3

from scanner.trace import extract_targets_from_calls
from simulator.models import DestinationSimulation, ProposalExecution

from .base import CheckContext

NO_DESTINATION_TARGETS = "No L2 targets found in cross-chain simulation"


def unique_checksummed(addresses: Sequence[str]) -> List[str]:
    result: List[str] = []
    for address in addresses:
        checksummed = Web3.to_checksum_address(address)
        if checksummed not in result:
            result.append(checksummed)
    return result


def destination_sims_for_chain(
    ctx: CheckContext,
    destinations: Optional[Sequence[DestinationSimulation]],
) -> List[DestinationSimulation]:
    if ctx.is_origin_chain or not destinations:
        return []
    return [d for d in destinations if d.sim is not None and d.chain_id == ctx.chain_id]


def extract_destination_targets(sims: Sequence[DestinationSimulation], max_depth: int) -> List[str]:
    """
    从目标链模拟中提取目标地址

    Args:
        sims: 目标链模拟列表
        max_depth: 调用树最大遍历深度

    Returns:
        校验和格式的地址列表（去重，保持首次出现顺序）
    """
    targets: List[str] = []
    for destination in sims:
        sim = destination.sim
        if sim is None:
            continue
        if sim.call_trace is not None:
            targets.extend(extract_targets_from_calls(sim.call_trace.calls, max_depth=max_depth))
        if sim.to:
            targets.append(sim.to)
    return unique_checksummed(targets)


def resolve_targets(
    proposal: ProposalExecution,
    ctx: CheckContext,
    destinations: Optional[Sequence[DestinationSimulation]] = None,
) -> Tuple[List[str], bool]:
    """
    确定地址类检查要分类的地址

    Args:
        proposal: 提案
        ctx: 当前链的检查上下文
        destinations: 跨链模拟（目标链运行时传入）

    Returns:
        (地址列表, 是否来自跨链模拟)
    """
    sims = destination_sims_for_chain(ctx, destinations)
    if sims:
        return extract_destination_targets(sims, ctx.max_trace_depth), True
    return unique_checksummed(proposal.targets), False
