#!/usr/bin/env python3
"""
Proposal Audit Pipeline - 提案风险审计主流程

1. 加载并校验配置（缺少必要配置时在运行任何检查之前退出）
2. 读取提案 JSON、源链模拟结果和跨链目标链模拟结果
3. 为每条链构造检查上下文（RPC、区块浏览器、共享验证缓存）
4. 在源链和各目标链上运行检查，汇总为多链报告
5. 保存 JSON 报告
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from checks import MultiChainReport, ProposalCheck, default_checks, run_all_chains
from checks.base import CheckContext
from explorer.cache import VerificationStatusCache
from explorer.factory import BlockExplorerFactory
from simulator.chain import build_providers
from simulator.models import DestinationSimulation, ProposalExecution, SimulationResult

from .config import MAINNET_CHAIN_ID, RunConfig, get_chain_config, load_run_config
from .errors import ConfigurationError


def load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def parse_destination_arg(value: str) -> Tuple[int, str]:
    """
    解析 --destination 参数（CHAIN_ID=PATH）

    Raises:
        argparse.ArgumentTypeError: 格式错误
    """
    chain_id, sep, path = value.partition("=")
    if not sep or not chain_id.strip().isdigit() or not path:
        raise argparse.ArgumentTypeError(f"Expected CHAIN_ID=PATH, got {value!r}")
    return int(chain_id), path


def load_destination(chain_id: int, data: Dict[str, Any]) -> DestinationSimulation:
    """
    读取目标链模拟

    文件可以是完整的目标链模拟（含 sim 字段），也可以直接是模拟结果本身。
    """
    if "sim" in data or "error" in data:
        destination = DestinationSimulation.from_dict({**data, "chain_id": chain_id})
    else:
        destination = DestinationSimulation(
            chain_id=chain_id,
            bridge_type=data.get("bridge_type", "unknown"),
            status="success",
            sim=SimulationResult.from_dict(data, chain_id=chain_id),
        )
    return destination


class ProposalAuditPipeline:
    """提案风险审计流程（进程内共享一个浏览器工厂和一个验证缓存）"""

    def __init__(
        self,
        config: RunConfig,
        factory: Optional[BlockExplorerFactory] = None,
        cache: Optional[VerificationStatusCache] = None,
        providers: Optional[Dict[int, Any]] = None,
        checks: Optional[Sequence[ProposalCheck]] = None,
    ):
        """
        初始化流程

        Args:
            config: 运行配置
            factory: 区块浏览器工厂（None 则新建）
            cache: 验证缓存（None 则在 config.cache_dir 下新建）
            providers: 链 ID -> 链上数据读取器（None 则按链配置新建）
            checks: 检查列表（None 则使用默认检查集合）
        """
        self.config = config
        self.factory = factory or BlockExplorerFactory()
        self.cache = cache or VerificationStatusCache(self.factory, cache_dir=config.cache_dir)
        self.providers = dict(providers) if providers is not None else {}
        self.checks = list(checks) if checks is not None else default_checks()

        missing = {c: get_chain_config(c) for c in config.chain_ids if c not in self.providers}
        self.providers.update(build_providers(missing))

        logger.info(f"审计流程初始化完成: {config.dao_name}, chains={config.chain_ids}")

    def context_for(self, chain_id: int) -> CheckContext:
        if chain_id not in self.providers:
            raise ConfigurationError(f"No chain data provider for chain {chain_id}")
        return CheckContext(
            chain=get_chain_config(chain_id),
            provider=self.providers[chain_id],
            cache=self.cache,
            governor_address=self.config.governor_address,
            timelock_address=self.config.timelock_address,
            max_trace_depth=self.config.max_trace_depth,
        )

    async def run(
        self,
        proposal: ProposalExecution,
        sim: SimulationResult,
        destinations: Optional[List[DestinationSimulation]] = None,
    ) -> MultiChainReport:
        """
        运行所有链上的检查

        Args:
            proposal: 提案
            sim: 源链模拟结果
            destinations: 跨链目标链模拟

        Returns:
            MultiChainReport
        """
        destinations = destinations or []
        logger.info(f"开始审计提案 {proposal.id}: {proposal.title}")

        origin_ctx = self.context_for(MAINNET_CHAIN_ID)
        destination_contexts = {
            destination.chain_id: self.context_for(destination.chain_id)
            for destination in destinations
            if destination.sim is not None
        }

        report = await run_all_chains(
            self.checks, proposal, sim, origin_ctx, destinations, destination_contexts
        )

        for chain_id, status in report.statuses.items():
            logger.info(f"chain {chain_id}: {status.value}")
        logger.success(f"✓ 提案 {proposal.id} 审计完成")
        return report

    def save_report(self, report: MultiChainReport, proposal: ProposalExecution, output_path: Path) -> Path:
        """
        保存 JSON 报告

        Args:
            report: 多链报告
            proposal: 提案
            output_path: 输出路径

        Returns:
            实际写入的路径
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "dao": self.config.dao_name,
            "proposal": {
                "id": proposal.id,
                "title": proposal.title,
                "proposer": proposal.proposer,
                "targets": list(proposal.targets),
            },
            "generated_at": datetime.now().isoformat(),
            **report.to_dict(),
        }
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        logger.success(f"✓ 报告已保存: {output_path}")
        return output_path

    async def close(self) -> None:
        await self.factory.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DAO 提案风险审计工具")
    parser.add_argument(
        "--proposal",
        type=str,
        default="data/proposals/collected_proposal.json",
        help="提案 JSON 文件路径"
    )
    parser.add_argument(
        "--simulation",
        type=str,
        required=True,
        help="源链模拟结果 JSON 文件路径"
    )
    parser.add_argument(
        "--destination",
        type=parse_destination_arg,
        action="append",
        default=[],
        metavar="CHAIN_ID=PATH",
        help="目标链模拟结果（可重复）"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="输出报告路径（默认 REPORTS_OUTPUT_DIR/proposal_<id>_risk.json）"
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="运行前清空验证状态 / ABI 磁盘缓存"
    )
    return parser


async def run_pipeline(args: argparse.Namespace) -> int:
    destination_ids = [chain_id for chain_id, _ in args.destination]
    config = load_run_config([MAINNET_CHAIN_ID] + [c for c in destination_ids if c != MAINNET_CHAIN_ID])

    proposal = ProposalExecution.from_dict(load_json(args.proposal))
    sim = SimulationResult.from_dict(load_json(args.simulation), chain_id=MAINNET_CHAIN_ID)
    destinations = [load_destination(chain_id, load_json(path)) for chain_id, path in args.destination]

    pipeline = ProposalAuditPipeline(config)
    try:
        if args.clear_cache:
            pipeline.cache.clear(disk=True)

        report = await pipeline.run(proposal, sim, destinations)

        output = Path(args.output) if args.output else config.reports_dir / f"proposal_{proposal.id}_risk.json"
        pipeline.save_report(report, proposal, output)
    finally:
        await pipeline.close()

    print(f"\nAudit completed!")
    for chain_id, status in report.statuses.items():
        print(f"Chain {chain_id}: {status.value}")
    print(f"Report saved to: {output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    logger.add(
        "logs/proposal_audit_{time}.log",
        rotation="1 day",
        retention="7 days",
        level="DEBUG"
    )

    args = build_parser().parse_args(argv)

    try:
        return asyncio.run(run_pipeline(args))
    except ConfigurationError as e:
        logger.error(f"配置错误: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
