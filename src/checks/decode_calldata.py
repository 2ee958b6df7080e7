#!/usr/bin/env python3
"""
Decode Calldata Check - 将提案每个 action 的 calldata 解码为可读描述

解码顺序：
1. 纯 ETH 转账（calldata 为空且 value > 0）直接格式化
2. 通过验证缓存获取目标合约 ABI，用 web3 解码
3. 内置常用函数签名表解码参数
4. 都失败时输出原始 calldata

目标链运行时，解码该链跨链模拟调用树中的有效调用（跳过系统地址）。
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from web3 import Web3

from simulator.models import CallTrace, DestinationSimulation, ProposalExecution, SimulationResult

from .base import CheckContext, CheckResult, ProposalCheck
from .targets import destination_sims_for_chain
from .value_required import format_ether


# 常用函数签名（无 ABI 时的后备解码）
COMMON_FUNCTION_SIGNATURES = [
    "transfer(address,uint256)",
    "transferFrom(address,address,uint256)",
    "approve(address,uint256)",
    "mint(address,uint256)",
    "burn(uint256)",
    "transferOwnership(address)",
    "renounceOwnership()",
    "upgradeTo(address)",
    "setPendingAdmin(address)",
    "acceptAdmin()",
    "setDelay(uint256)",
    "withdraw(uint256)",
    "pause()",
    "unpause()",
]

_w3 = Web3()


def function_selector(signature: str) -> str:
    """函数签名 -> 4 字节选择器（0x 前缀小写）"""
    signature = signature.strip()
    if signature.startswith("function "):
        signature = signature[len("function "):]
    return "0x" + bytes(Web3.keccak(text=signature)[:4]).hex()


SELECTOR_TABLE: Dict[str, str] = {function_selector(sig): sig for sig in COMMON_FUNCTION_SIGNATURES}


def _parse_types(signature: str) -> List[str]:
    inner = signature[signature.index("(") + 1:signature.rindex(")")]
    return [t.strip() for t in inner.split(",") if t.strip()]


def format_arg(arg: Any) -> str:
    if isinstance(arg, (bytes, bytearray)):
        return "0x" + bytes(arg).hex()
    if isinstance(arg, (list, tuple, dict)):
        return json.dumps(arg, default=format_arg)
    return str(arg)


def find_matching_call(root: Optional[CallTrace], from_address: str, calldata: str) -> Optional[CallTrace]:
    """先序查找 from 和 input 都匹配的第一个调用"""
    if root is None:
        return None
    stack = list(reversed(root.calls))
    while stack:
        node = stack.pop()
        if (node.from_address or "").lower() == from_address.lower() and node.input.lower() == calldata:
            return node
        stack.extend(reversed(node.calls))
    return None


def deepest_matching_subcall(calldata: str, call: CallTrace) -> CallTrace:
    """代理合约场景：第一个子调用 input 相同时，取最深的那一层"""
    while call.calls and call.calls[0].input.lower() == calldata:
        call = call.calls[0]
    return call


def meaningful_calls(root: Optional[CallTrace]) -> List[CallTrace]:
    """带 calldata 且不是系统地址的调用（先序）"""
    calls: List[CallTrace] = []
    if root is None:
        return calls
    stack = [root]
    while stack:
        node = stack.pop()
        to = (node.to or "").lower()
        if to and node.input and node.input != "0x":
            if "fffff" not in to and "00000" not in to:
                calls.append(node)
        stack.extend(reversed(node.calls))
    return calls


class CheckDecodeCalldata(ProposalCheck):
    id = "check_decode_calldata"
    name = "Decodes target calldata into a human-readable format"

    async def check(
        self,
        proposal: ProposalExecution,
        sim: SimulationResult,
        ctx: CheckContext,
        destinations: Optional[Sequence[DestinationSimulation]] = None,
    ) -> CheckResult:
        warnings: List[str] = []

        sims = destination_sims_for_chain(ctx, destinations)
        if sims:
            return await self._check_destination(sims, sim, ctx, warnings)

        info = []
        for i, target in enumerate(proposal.targets):
            signature = proposal.signatures[i]
            calldata = proposal.calldatas[i].lower()
            if signature:
                calldata = function_selector(signature) + calldata[2:]
            value = proposal.values[i]

            call = find_matching_call(sim.call_trace, ctx.timelock_address, calldata)
            if call is None:
                # ETH 转账可能不出现在调用树中
                if not (calldata == "0x" and value > 0):
                    warnings.append(f"Could not find matching call for target {target} with calldata {calldata}")
                call = CallTrace(to=target, input=calldata, from_address=ctx.timelock_address, value=value)
            else:
                call = deepest_matching_subcall(calldata, call)

            info.append(await self.describe(call, target, sim, ctx, warnings))

        return CheckResult(info=info, warnings=warnings)

    async def _check_destination(self, sims, sim, ctx, warnings) -> CheckResult:
        calls: List[CallTrace] = []
        for destination in sims:
            calls.extend(meaningful_calls(destination.sim.call_trace))

        if not calls:
            warnings.append("No meaningful L2 execution calls found in cross-chain simulation")
            return CheckResult(warnings=warnings)

        info = []
        for call in calls:
            info.append(await self.describe(call, call.to, sim, ctx, warnings))
        return CheckResult(info=info, warnings=warnings)

    async def describe(
        self,
        call: CallTrace,
        target: str,
        sim: SimulationResult,
        ctx: CheckContext,
        warnings: List[str],
    ) -> str:
        """
        生成单个调用的可读描述

        Args:
            call: 调用（来自调用树或按提案参数合成）
            target: 目标地址
            sim: 模拟结果（用于查找合约名称）
            ctx: 检查上下文
            warnings: 告警列表（解码失败时追加）

        Returns:
            描述字符串
        """
        sender = call.from_address or ctx.timelock_address

        if call.input == "0x" and call.value > 0:
            return f"`{sender}` transfers {format_ether(call.value)} ETH to `{target}` (formatted)"

        selector = call.input[:10]
        name = sim.contract_name(target)
        contract = f"{name} at `{target}`" if name else f"`{target}`"

        abi = await ctx.cache.fetch_abi(target, ctx.chain_id) if ctx.cache is not None else None
        if abi:
            try:
                func, params = _w3.eth.contract(abi=abi).decode_function_input(call.input)
                args = ", ".join(format_arg(v) for v in params.values())
                return f"`{sender}` calls `{func.fn_name}({args})` on {contract} (decoded from ABI)"
            except Exception as e:
                logger.warning(f"ABI 解码失败 {target}: {e}")
                warnings.append(
                    f"Error decoding function with selector {selector} for contract {target}: {e}"
                )
        else:
            warnings.append(
                f"Failed to decode function with selector {selector} for contract {target} using block explorer ABI"
            )

        signature = SELECTOR_TABLE.get(selector)
        if signature:
            try:
                types = _parse_types(signature)
                values = _w3.codec.decode(types, bytes.fromhex(call.input[10:]))
                values = [Web3.to_checksum_address(v) if t == "address" else v for t, v in zip(types, values)]
                args = ", ".join(f"`{format_arg(v)}`" for v in values)
                return f"On contract {contract}, call `{signature}` with arguments {args} (generic)"
            except Exception as e:
                logger.warning(f"按签名 {signature} 解码失败: {e}")

        return f"On contract {contract}, call `{call.input}` (not decoded)"
