#!/usr/bin/env python3
"""
Check Runner - 单链检查编排与多链结果汇总

1. 按 depends_on 构建检查依赖图（networkx），按拓扑分层执行；同一层的检查并发运行
2. 每个检查抛出的异常被捕获，转换为该检查的一条 error，不影响其它检查和其它链
3. 目标链上跳过 touched_only 的检查（只有源链的触达合约数据有意义）
4. 每条链独立计算状态：有 error -> error；否则有 warning -> warning；否则 success
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import networkx as nx
from loguru import logger

from auditor.errors import ConfigurationError
from simulator.models import DestinationSimulation, ProposalExecution, SimulationResult

from .base import AllCheckResults, CheckContext, CheckOutcome, CheckResult, ProposalCheck


class ChainStatus(Enum):
    """单条链的总体状态"""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def chain_status(results: AllCheckResults) -> ChainStatus:
    """
    计算单条链的总体状态

    Args:
        results: 该链的检查结果

    Returns:
        ChainStatus
    """
    outcomes = list(results.values())
    if any(outcome.result.errors for outcome in outcomes):
        return ChainStatus.ERROR
    if any(outcome.result.warnings for outcome in outcomes):
        return ChainStatus.WARNING
    return ChainStatus.SUCCESS


def build_check_graph(checks: Sequence[ProposalCheck]) -> nx.DiGraph:
    """
    构建检查依赖图（边：依赖 -> 依赖它的检查）

    Raises:
        ConfigurationError: 重复 ID、未知依赖或循环依赖
    """
    graph = nx.DiGraph()
    for check in checks:
        if check.id in graph:
            raise ConfigurationError(f"Duplicate check id: {check.id}")
        graph.add_node(check.id, check=check)

    for check in checks:
        for dependency in check.depends_on:
            if dependency not in graph:
                raise ConfigurationError(f"Check {check.id} depends on unknown check {dependency}")
            graph.add_edge(dependency, check.id)

    if not nx.is_directed_acyclic_graph(graph):
        cycle = nx.find_cycle(graph)
        raise ConfigurationError(f"Circular check dependency: {cycle}")

    return graph


def execution_order(checks: Sequence[ProposalCheck]) -> List[List[ProposalCheck]]:
    """按拓扑分层返回检查（每一层内保持注册顺序）"""
    graph = build_check_graph(checks)
    position = {check.id: i for i, check in enumerate(checks)}
    return [
        [graph.nodes[check_id]["check"] for check_id in sorted(generation, key=position.__getitem__)]
        for generation in nx.topological_generations(graph)
    ]


async def run_check(
    check: ProposalCheck,
    proposal: ProposalExecution,
    sim: SimulationResult,
    ctx: CheckContext,
    destinations: Optional[Sequence[DestinationSimulation]] = None,
) -> CheckOutcome:
    """运行单个检查；任何异常都转换为一条 error"""
    try:
        result = await check.check(proposal, sim, ctx, destinations)
    except Exception as e:
        logger.error(f"检查 {check.id} 在 chain {ctx.chain_id} 上失败: {type(e).__name__}: {e}")
        result = CheckResult(errors=[f"Check failed with {type(e).__name__}: {e}"])
    return CheckOutcome(name=check.name, result=result)


async def run_checks_for_chain(
    checks: Sequence[ProposalCheck],
    proposal: ProposalExecution,
    sim: SimulationResult,
    ctx: CheckContext,
    destinations: Optional[Sequence[DestinationSimulation]] = None,
) -> AllCheckResults:
    """
    在单条链上运行所有检查

    Args:
        checks: 检查列表
        proposal: 提案
        sim: 该链的模拟结果
        ctx: 该链的检查上下文
        destinations: 全部跨链模拟（目标链运行时使用）

    Returns:
        check id -> CheckOutcome
    """
    results: AllCheckResults = {}
    skipped = set()

    for generation in execution_order(checks):
        runnable = []
        for check in generation:
            if check.touched_only and not ctx.is_origin_chain:
                skipped.add(check.id)
                continue
            if any(dependency in skipped for dependency in check.depends_on):
                skipped.add(check.id)
                continue
            runnable.append(check)

        outcomes = await asyncio.gather(*[
            run_check(check, proposal, sim, ctx, destinations) for check in runnable
        ])
        for check, outcome in zip(runnable, outcomes):
            results[check.id] = outcome

    status = chain_status(results)
    logger.info(f"chain {ctx.chain_id} ({ctx.chain.name}): {len(results)} 个检查完成，状态 {status.value}")
    return results


@dataclass
class ChainReport:
    """单条链的检查结果与状态"""
    chain_id: int
    checks: AllCheckResults

    @property
    def status(self) -> ChainStatus:
        return chain_status(self.checks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "status": self.status.value,
            "checks": {check_id: outcome.to_dict() for check_id, outcome in self.checks.items()},
        }


@dataclass
class MultiChainReport:
    """源链结果 + 按链 ID 分组的目标链结果（每条链的状态独立可见）"""
    origin: ChainReport
    destinations: Dict[int, ChainReport] = field(default_factory=dict)

    @property
    def statuses(self) -> Dict[int, ChainStatus]:
        statuses = {self.origin.chain_id: self.origin.status}
        for chain_id, report in self.destinations.items():
            statuses[chain_id] = report.status
        return statuses

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin.to_dict(),
            "destinations": {str(chain_id): report.to_dict() for chain_id, report in self.destinations.items()},
        }


async def run_all_chains(
    checks: Sequence[ProposalCheck],
    proposal: ProposalExecution,
    sim: SimulationResult,
    origin_ctx: CheckContext,
    destinations: Optional[Sequence[DestinationSimulation]] = None,
    destination_contexts: Optional[Dict[int, CheckContext]] = None,
) -> MultiChainReport:
    """
    在源链和所有有模拟结果的目标链上运行检查

    Args:
        checks: 检查列表
        proposal: 提案
        sim: 源链模拟结果
        origin_ctx: 源链上下文
        destinations: 跨链模拟
        destination_contexts: 链 ID -> 目标链上下文

    Returns:
        MultiChainReport
    """
    destinations = list(destinations or [])
    destination_contexts = destination_contexts or {}

    # 依赖图在执行任何检查之前校验
    execution_order(checks)

    # 同一条链的多个跨链模拟合并为一次运行：地址类检查按链 ID 取该链全部模拟
    runnable: Dict[int, DestinationSimulation] = {}
    for destination in destinations:
        if destination.sim is None:
            logger.warning(
                f"chain {destination.chain_id} 没有模拟结果 ({destination.status}: {destination.error})，跳过检查"
            )
            continue
        if destination.chain_id not in destination_contexts:
            raise ConfigurationError(f"No check context for destination chain {destination.chain_id}")
        if destination.chain_id in runnable:
            logger.info(f"chain {destination.chain_id} 有多个跨链模拟，合并为一次检查")
            continue
        runnable[destination.chain_id] = destination

    origin_task = run_checks_for_chain(checks, proposal, sim, origin_ctx)
    destination_tasks = [
        run_checks_for_chain(
            checks, proposal, destination.sim, destination_contexts[destination.chain_id], destinations
        )
        for destination in runnable.values()
    ]
    origin_results, *destination_results = await asyncio.gather(origin_task, *destination_tasks)

    report = MultiChainReport(origin=ChainReport(origin_ctx.chain_id, origin_results))
    for destination, results in zip(runnable.values(), destination_results):
        report.destinations[destination.chain_id] = ChainReport(destination.chain_id, results)
    return report
