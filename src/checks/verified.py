#!/usr/bin/env python3
"""
Verification Checks - 检查目标合约 / 触达合约是否已在区块浏览器验证

每个地址一行 info：
- EOA (verification not applicable)
- Contract (verified)
- Contract (not verified)
浏览器查询失败时降级为 "not verified"，不会中断检查。
RPC 读取失败的地址输出一条 warning（Could not fetch on-chain data）。
"""

from typing import List, Optional, Sequence

from simulator.models import DestinationSimulation, ProposalExecution, SimulationResult

from .base import CheckContext, CheckResult, ProposalCheck
from .placeholder import PlaceholderAddressPolicy
from .targets import NO_DESTINATION_TARGETS, resolve_targets, unique_checksummed


async def check_verification_statuses(addresses: List[str], ctx: CheckContext) -> CheckResult:
    """
    查询一组地址的验证状态

    Args:
        addresses: 待检查地址
        ctx: 检查上下文

    Returns:
        CheckResult
    """
    policy = PlaceholderAddressPolicy()
    reports = await ctx.classifier.classify_all(addresses, ctx.provider)

    info = []
    warnings = []
    for report in reports:
        address = f"{ctx.link(report.address)}{policy.suffix(report.address)}"
        status = report.verification_status
        if status == "eoa":
            info.append(f"{address}: EOA (verification not applicable)")
        elif status == "unavailable":
            warnings.append(f"{address}: Could not fetch on-chain data")
        elif status == "verified":
            info.append(f"{address}: Contract (verified)")
        else:
            info.append(f"{address}: Contract (not verified)")
    return CheckResult(info=info, warnings=warnings)


class CheckTargetsVerified(ProposalCheck):
    id = "check_targets_verified"
    name = "Check all targets are verified on block explorer"

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
        return await check_verification_statuses(targets, ctx)


class CheckTouchedContractsVerified(ProposalCheck):
    id = "check_touched_contracts_verified"
    name = "Check all touched contracts are verified on block explorer"
    touched_only = True

    async def check(self, proposal, sim, ctx, destinations=None) -> CheckResult:
        return await check_verification_statuses(unique_checksummed(sim.touched_contract_addresses), ctx)
