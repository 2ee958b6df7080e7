#!/usr/bin/env python3
"""
No Selfdestruct Checks - 检查目标合约 / 触达合约是否包含可达的 SELFDESTRUCT

结果格式（每个地址一行，按输入顺序）：
- info:     EOA / Contract (looks safe) / Trusted contract (not checked)
- warnings: EOA (may have code later) / Contract (with DELEGATECALL)
- errors:   Contract (with SELFDESTRUCT) / Could not fetch on-chain data
占位地址的 empty / delegatecall 告警按 PlaceholderAddressPolicy 处理。
"""

from typing import List, Optional, Sequence

from loguru import logger

from simulator.models import DestinationSimulation, ProposalExecution, SimulationResult

from .base import CheckContext, CheckResult, ProposalCheck
from .placeholder import PlaceholderAddressPolicy
from .targets import NO_DESTINATION_TARGETS, resolve_targets, unique_checksummed


async def check_no_selfdestructs(
    addresses: List[str],
    ctx: CheckContext,
    policy: Optional[PlaceholderAddressPolicy] = None,
) -> CheckResult:
    """
    对一组地址做 selfdestruct 检查

    Args:
        addresses: 待检查地址
        ctx: 检查上下文
        policy: 占位地址策略

    Returns:
        CheckResult
    """
    policy = policy or PlaceholderAddressPolicy()
    result = CheckResult()
    placeholder_warnings: List[str] = []

    # 并发分类，按输入顺序组装结果
    reports = await ctx.classifier.classify_all(
        addresses, ctx.provider, ctx.trusted_addresses, check_verification=False
    )

    for report in reports:
        address = ctx.link(report.address)
        is_placeholder = policy.is_placeholder(report.address)
        suffix = policy.suffix(report.address)
        status = report.selfdestruct_status

        if status == "eoa":
            result.info.append(f"{address}{suffix}: EOA")
        elif status == "empty":
            message = f"{address}{suffix}: EOA (may have code later)"
            (placeholder_warnings if is_placeholder else result.warnings).append(message)
        elif status == "safe":
            result.info.append(f"{address}{suffix}: Contract (looks safe)")
        elif status == "delegatecall":
            message = f"{address}{suffix}: Contract (with DELEGATECALL)"
            (placeholder_warnings if is_placeholder else result.warnings).append(message)
        elif status == "trusted":
            result.info.append(f"{address}{suffix}: Trusted contract (not checked)")
        elif status == "unavailable":
            result.errors.append(f"{address}{suffix}: Could not fetch on-chain data")
        else:
            result.errors.append(f"{address}{suffix}: Contract (with SELFDESTRUCT)")

    result.warnings = policy.resolve(result.warnings, placeholder_warnings)

    if result.errors:
        logger.warning(f"chain {ctx.chain_id}: {len(result.errors)} 个地址包含可达的 SELFDESTRUCT")
    return result


class CheckTargetsNoSelfdestruct(ProposalCheck):
    id = "check_targets_no_selfdestruct"
    name = "Check all targets do not contain selfdestruct"

    async def check(
        self,
        proposal: ProposalExecution,
        sim: SimulationResult,
        ctx: CheckContext,
        destinations: Optional[Sequence[DestinationSimulation]] = None,
    ) -> CheckResult:
        targets, from_destinations = resolve_targets(proposal, ctx, destinations)
        if from_destinations and not targets:
            return CheckResult(info=[NO_DESTINATION_TARGETS])
        return await check_no_selfdestructs(targets, ctx)


class CheckTouchedContractsNoSelfdestruct(ProposalCheck):
    id = "check_touched_contracts_no_selfdestruct"
    name = "Check all touched contracts do not contain selfdestruct"
    touched_only = True

    async def check(self, proposal, sim, ctx, destinations=None) -> CheckResult:
        return await check_no_selfdestructs(unique_checksummed(sim.touched_contract_addresses), ctx)
