#!/usr/bin/env python3
"""
Check Base - 检查的公共数据结构

每个检查是一个有稳定 ID 的独立单元：
    check(proposal, sim, ctx, destinations) -> CheckResult

CheckResult 中的字符串是给报告消费者解析的文本格式（如 "<Contract> at `0x...`" 开启一个作用域），
修改格式需要与消费者同步。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from auditor.config import MAINNET_CHAIN_ID, ChainConfig
from explorer.cache import VerificationStatusCache
from scanner.classifier import AddressClassifier
from simulator.models import DestinationSimulation, ProposalExecution, SimulationResult


def to_address_link(address: str, base_url: str = "https://etherscan.io") -> str:
    """生成区块浏览器地址链接（markdown 格式）"""
    return f"[{address}]({base_url}/address/{address})"


@dataclass
class CheckResult:
    """单个检查的结果（检查返回后不再修改）"""
    info: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"info": list(self.info), "warnings": list(self.warnings), "errors": list(self.errors)}


@dataclass
class CheckOutcome:
    """结果表中的一项：检查名称 + 结果"""
    name: str
    result: CheckResult

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "result": self.result.to_dict()}


# check id -> CheckOutcome（每条链一份）
AllCheckResults = Dict[str, CheckOutcome]


@dataclass
class CheckContext:
    """
    单条链的检查上下文

    包含该链的配置、链上数据读取器、共享的验证缓存、治理合约地址，
    以及检查之间传递产物用的 artifacts（例如编译产物交给静态分析）。
    """
    chain: ChainConfig
    provider: Any
    cache: Optional[VerificationStatusCache]
    governor_address: str
    timelock_address: str
    max_trace_depth: int = 512
    artifacts: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.classifier = AddressClassifier(self.cache)

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id

    @property
    def is_origin_chain(self) -> bool:
        return self.chain.chain_id == MAINNET_CHAIN_ID

    @property
    def block_explorer_url(self) -> str:
        return self.chain.block_explorer.base_url

    @property
    def trusted_addresses(self) -> List[str]:
        return [self.governor_address, self.timelock_address]

    def link(self, address: str) -> str:
        return to_address_link(address, self.block_explorer_url)


class ProposalCheck:
    """
    检查基类

    子类设置 id / name，并实现 check()。
    depends_on 声明必须先完成的检查 ID；touched_only 的检查只在源链上运行。
    """

    id: str = ""
    name: str = ""
    depends_on: Tuple[str, ...] = ()
    touched_only: bool = False

    async def check(
        self,
        proposal: ProposalExecution,
        sim: SimulationResult,
        ctx: CheckContext,
        destinations: Optional[Sequence[DestinationSimulation]] = None,
    ) -> CheckResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"
