#!/usr/bin/env python3
"""
Simulation Models - 提案与模拟结果数据结构

模拟引擎本身不在本项目内；这里只定义审计引擎读取的输入：
1. ProposalExecution：提案（targets / values / signatures / calldatas / description）
2. CallTrace：callTracer 格式的调用树节点
3. SimulationResult：单条链上的模拟结果（调用树、事件日志、触达的合约、状态变化）
4. DestinationSimulation：通过跨链消息到达的目标链模拟
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger


def _to_int(raw: Any, default: int = 0) -> int:
    """将十六进制字符串 / 十进制字符串 / 数字统一转换为 int"""
    if raw is None or raw == "":
        return default
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        raw = raw.strip()
        if raw.startswith(("0x", "0X")):
            return int(raw, 16) if len(raw) > 2 else default
        return int(raw) if raw.isdigit() else default
    return int(raw)


def _to_hex(raw: Any) -> str:
    """将 bytes 或不带前缀的十六进制字符串统一为 0x 前缀的小写字符串"""
    if raw is None:
        return "0x"
    if isinstance(raw, (bytes, bytearray)):
        return "0x" + bytes(raw).hex()
    raw = str(raw)
    if not raw.startswith(("0x", "0X")):
        raw = "0x" + raw
    return raw.lower()


@dataclass(frozen=True)
class ProposalExecution:
    """提案执行参数（模拟后不可变）"""
    id: int
    proposer: str
    targets: Tuple[str, ...]
    values: Tuple[int, ...]
    signatures: Tuple[str, ...]
    calldatas: Tuple[str, ...]
    description: str = ""
    start_block: int = 0
    end_block: int = 0

    @property
    def title(self) -> str:
        """提案标题（描述的第一行）"""
        title = self.description.split("\n")[0].strip().lstrip("#").strip()
        if len(title) > 100:
            title = title[:100] + "..."
        return title

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProposalExecution":
        """
        从收集器输出的 JSON 构造提案

        兼容字段：metadata.voting_start_block / start_block / startBlock

        Args:
            data: 提案数据字典

        Returns:
            ProposalExecution
        """
        targets = list(data.get("targets") or [])
        values = [_to_int(v) for v in (data.get("values") or [])]
        calldatas = [_to_hex(c) for c in (data.get("calldatas") or [])]
        signatures = list(data.get("signatures") or [""] * len(targets))

        # 缺失的 values / calldatas 按 0 / 空数据补齐
        values += [0] * (len(targets) - len(values))
        calldatas += ["0x"] * (len(targets) - len(calldatas))
        signatures += [""] * (len(targets) - len(signatures))

        metadata = data.get("metadata") or {}
        start_block = data.get("start_block", data.get("startBlock", metadata.get("voting_start_block")))
        end_block = data.get("end_block", data.get("endBlock", metadata.get("voting_end_block")))

        return cls(
            id=_to_int(data.get("id", 0)),
            proposer=data.get("proposer", ""),
            targets=tuple(targets),
            values=tuple(values),
            signatures=tuple(signatures),
            calldatas=tuple(calldatas),
            description=data.get("description", ""),
            start_block=_to_int(start_block),
            end_block=_to_int(end_block),
        )


@dataclass
class CallTrace:
    """调用树节点"""
    to: Optional[str]
    input: str = "0x"
    calls: List["CallTrace"] = field(default_factory=list)
    from_address: Optional[str] = None
    type: str = "CALL"
    value: int = 0

    @classmethod
    def from_dict(cls, node: Optional[Dict[str, Any]]) -> Optional["CallTrace"]:
        """
        从 callTracer JSON 构造调用树

        字段缺失或为 null 时按默认值处理，不抛异常。

        Args:
            node: callTracer 节点字典

        Returns:
            CallTrace，node 为空时返回 None
        """
        if not node or not isinstance(node, dict):
            return None

        # 显式栈构建，避免深层调用树触发递归上限
        root = cls._node(node)
        stack = [(node, root)]
        while stack:
            raw, parsed = stack.pop()
            for child in raw.get("calls") or []:
                if not child or not isinstance(child, dict):
                    continue
                child_node = cls._node(child)
                parsed.calls.append(child_node)
                stack.append((child, child_node))
        return root

    @classmethod
    def _node(cls, raw: Dict[str, Any]) -> "CallTrace":
        try:
            value = _to_int(raw.get("value"))
        except ValueError:
            value = 0
        return cls(
            to=raw.get("to") or None,
            input=raw.get("input") or "0x",
            from_address=raw.get("from") or None,
            type=(raw.get("type") or "CALL").upper(),
            value=value,
        )


@dataclass
class Log:
    """模拟执行中发出的事件"""
    address: str
    name: Optional[str] = None
    inputs: List[Tuple[str, Any]] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Log":
        raw = data.get("raw") or {}
        inputs = []
        for item in data.get("inputs") or []:
            name = item.get("name") or (item.get("soltype") or {}).get("name", "")
            inputs.append((name, item.get("value")))
        return cls(
            address=data.get("address") or raw.get("address", ""),
            name=data.get("name") or None,
            inputs=inputs,
            raw=raw,
        )


@dataclass
class SimulationResult:
    """单条链上的模拟结果（审计引擎只读）"""
    chain_id: int
    status: bool
    call_trace: Optional[CallTrace]
    logs: List[Log] = field(default_factory=list)
    touched_contract_addresses: List[str] = field(default_factory=list)
    contracts: Dict[str, str] = field(default_factory=dict)
    state_diffs: List[Dict[str, Any]] = field(default_factory=list)
    value: int = 0

    @property
    def to(self) -> Optional[str]:
        """模拟交易的目标地址"""
        return self.call_trace.to if self.call_trace else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], chain_id: int = 1) -> "SimulationResult":
        """
        从模拟服务输出的 JSON 构造模拟结果

        兼容 camelCase 与 snake_case 字段名。

        Args:
            data: 模拟结果字典
            chain_id: 默认链 ID（data 中有 chain_id 时以 data 为准）

        Returns:
            SimulationResult
        """
        trace = data.get("call_trace") or data.get("callTrace")
        touched = (
            data.get("touched_contract_addresses")
            or data.get("touchedContractAddresses")
            or data.get("addresses")
            or []
        )

        contracts: Dict[str, str] = {}
        for contract in data.get("contracts") or []:
            address = (contract.get("address") or "").lower()
            if address:
                contracts[address] = contract.get("contract_name") or contract.get("name") or ""

        sim = cls(
            chain_id=_to_int(data.get("chain_id", data.get("chainId", chain_id))),
            status=bool(data.get("status", True)),
            call_trace=CallTrace.from_dict(trace),
            logs=[Log.from_dict(log) for log in data.get("logs") or []],
            touched_contract_addresses=list(touched),
            contracts=contracts,
            state_diffs=list(data.get("state_diffs") or data.get("stateDiffs") or []),
            value=_to_int(data.get("value")),
        )
        logger.debug(
            f"模拟结果已加载: chain={sim.chain_id}, logs={len(sim.logs)}, touched={len(sim.touched_contract_addresses)}"
        )
        return sim

    def contract_name(self, address: str) -> Optional[str]:
        return self.contracts.get(address.lower()) or None


@dataclass
class DestinationSimulation:
    """跨链消息在目标链上的模拟"""
    chain_id: int
    bridge_type: str
    status: str
    sim: Optional[SimulationResult] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DestinationSimulation":
        chain_id = _to_int(data.get("chain_id", data.get("chainId")))
        sim_data = data.get("sim")
        return cls(
            chain_id=chain_id,
            bridge_type=data.get("bridge_type") or data.get("bridgeType") or "unknown",
            status=data.get("status", "success" if sim_data else "failure"),
            sim=SimulationResult.from_dict(sim_data, chain_id=chain_id) if sim_data else None,
            error=data.get("error"),
        )
