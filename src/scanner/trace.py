#!/usr/bin/env python3
"""
Call Trace Extractor - 调用轨迹目标地址提取

遍历 callTracer 格式的调用树，收集所有"带 calldata 的调用"的目标地址：
- 节点有 to 且 input 非空（不是 "0x"）时计入
- 无论当前节点是否计入，都继续处理子调用
- 根交易的目标地址总是计入（即使 input 为空）

调用树深度来自模拟执行的 calldata（可能被攻击者影响），
因此使用显式栈遍历并设置最大深度。
"""

from typing import Iterable, List, Optional

from loguru import logger
from web3 import Web3

from simulator.models import CallTrace


DEFAULT_MAX_DEPTH = 512


def _has_calldata(node: CallTrace) -> bool:
    return bool(node.input) and node.input.lower() not in ("0x", "")


def extract_targets_from_calls(
    calls: Iterable[CallTrace],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[str]:
    """
    从子调用列表中提取唯一的目标地址（不含根节点本身）

    Args:
        calls: 子调用列表
        max_depth: 最大遍历深度，超出部分被跳过

    Returns:
        校验和格式的地址列表（去重，保持首次出现顺序）
    """
    seen = set()
    targets: List[str] = []
    truncated = False

    # 显式栈（逆序压栈，保证先序遍历顺序）
    stack = [(call, 1) for call in reversed(list(calls))]
    while stack:
        node, depth = stack.pop()
        if depth > max_depth:
            truncated = True
            continue

        if node.to and _has_calldata(node):
            address = Web3.to_checksum_address(node.to.lower())
            if address not in seen:
                seen.add(address)
                targets.append(address)

        for child in reversed(node.calls):
            stack.append((child, depth + 1))

    if truncated:
        logger.warning(f"调用轨迹深度超过 {max_depth}，更深的调用已被跳过")

    return targets


def extract(root: Optional[CallTrace], max_depth: int = DEFAULT_MAX_DEPTH) -> List[str]:
    """
    提取调用树中所有唯一目标地址（含根交易目标）

    Args:
        root: 根调用节点
        max_depth: 最大遍历深度

    Returns:
        校验和格式的地址列表（去重）
    """
    if root is None:
        return []

    targets: List[str] = []
    if root.to:
        targets.append(Web3.to_checksum_address(root.to.lower()))

    for address in extract_targets_from_calls(root.calls, max_depth=max_depth):
        if address not in targets:
            targets.append(address)

    return targets
