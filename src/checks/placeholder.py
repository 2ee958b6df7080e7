#!/usr/bin/env python3
"""
Placeholder Policy - 模拟占位地址的告警抑制

模拟时未知的 proposer / executor 用固定的占位地址代替。关于占位地址本身的告警
在常规运行中是噪音，但不能掩盖真实问题，也不能被"看起来像占位地址"的危险地址利用：
- 只有告警中嵌入的地址与占位常量的校验和格式完全相同时才可抑制
- 没有普通告警时，可抑制的告警全部丢弃
- 只要存在任何普通告警，可抑制的告警全部追加回去
"""

import re
from typing import List, Optional, Tuple

from web3 import Web3


DEFAULT_SIMULATION_ADDRESS = "0x0000000000000000000000000000000000001234"

PLACEHOLDER_SUFFIX = " (simulation placeholder)"

_LINKED_ADDRESS_RE = re.compile(r"\[0x[a-fA-F0-9]{40}\]")


class PlaceholderAddressPolicy:
    """占位地址告警策略"""

    def __init__(self, placeholder: str = DEFAULT_SIMULATION_ADDRESS):
        self.placeholder = Web3.to_checksum_address(placeholder)

    def is_placeholder(self, address: str) -> bool:
        """地址是否就是占位地址（校验和格式完全相同）"""
        try:
            return Web3.to_checksum_address(address) == self.placeholder
        except ValueError:
            return False

    def suffix(self, address: str) -> str:
        return PLACEHOLDER_SUFFIX if self.is_placeholder(address) else ""

    def embedded_address(self, warning: str) -> Optional[str]:
        """提取告警中 [0x...] 链接文本里的地址"""
        match = _LINKED_ADDRESS_RE.search(warning)
        if not match:
            return None
        return match.group(0)[1:-1]

    def is_suppressible(self, warning: str) -> bool:
        address = self.embedded_address(warning)
        return address is not None and self.is_placeholder(address)

    def resolve(self, warnings: List[str], placeholder_warnings: List[str]) -> List[str]:
        """
        合并普通告警与占位地址告警

        Args:
            warnings: 普通告警
            placeholder_warnings: 检查认为属于占位地址的告警

        Returns:
            最终告警列表
        """
        legit, suspicious = self.partition(placeholder_warnings)

        # 嵌入地址与占位常量不符的告警一律作为普通告警
        final = list(warnings) + suspicious

        if not final:
            return []
        return final + legit

    def partition(self, placeholder_warnings: List[str]) -> Tuple[List[str], List[str]]:
        legit = [w for w in placeholder_warnings if self.is_suppressible(w)]
        suspicious = [w for w in placeholder_warnings if not self.is_suppressible(w)]
        return legit, suspicious
