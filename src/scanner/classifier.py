#!/usr/bin/env python3
"""
Address Classifier - 地址分类器

判定顺序：
1. 可信地址（Governor / Timelock）-> TRUSTED_CONTRACT，不做任何查询和扫描
2. 并发读取 code 与 nonce
3. 无代码：nonce > 0 -> EOA；nonce == 0 -> EMPTY_ACCOUNT（以后可能部署代码）
4. 有代码：查询区块浏览器验证状态，并扫描字节码

RPC 读取失败（TransientNetworkError）按统一的重试原语重试；重试用尽后该地址标记为
UNAVAILABLE，不影响同一批次中其他地址的结果。

分类结果供两个独立的检查使用：
- 验证状态视图：eoa / verified / unverified / unavailable
- selfdestruct 视图：safe / eoa / empty / selfdestruct / delegatecall / trusted / unavailable
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from loguru import logger
from web3 import Web3

from explorer.cache import VerificationStatusCache
from explorer.retry import exponential_backoff, retry_with_backoff

from .bytecode import BytecodeRiskVerdict, normalize_bytecode, scan


_UNAVAILABLE = object()


class AddressClassification(Enum):
    """地址分类"""
    EOA = "eoa"
    EMPTY_ACCOUNT = "empty"
    VERIFIED_CONTRACT = "verified"
    UNVERIFIED_CONTRACT = "unverified"
    TRUSTED_CONTRACT = "trusted"
    UNAVAILABLE = "unavailable"


@dataclass
class AddressReport:
    """单个地址的分类结果（每次检查重新计算，不持久化）"""
    address: str
    classification: AddressClassification
    risk: Optional[BytecodeRiskVerdict] = None

    @property
    def has_code(self) -> bool:
        return self.classification in (
            AddressClassification.VERIFIED_CONTRACT,
            AddressClassification.UNVERIFIED_CONTRACT,
        )

    @property
    def verification_status(self) -> str:
        """验证状态视图：eoa / verified / unverified / unavailable"""
        if self.classification == AddressClassification.UNAVAILABLE:
            return "unavailable"
        if self.classification == AddressClassification.VERIFIED_CONTRACT:
            return "verified"
        if self.classification in (AddressClassification.EOA, AddressClassification.EMPTY_ACCOUNT):
            return "eoa"
        return "unverified"

    @property
    def selfdestruct_status(self) -> str:
        """selfdestruct 视图：safe / eoa / empty / selfdestruct / delegatecall / trusted / unavailable"""
        if self.classification == AddressClassification.TRUSTED_CONTRACT:
            return "trusted"
        if self.classification == AddressClassification.UNAVAILABLE:
            return "unavailable"
        if self.classification == AddressClassification.EOA:
            return "eoa"
        if self.classification == AddressClassification.EMPTY_ACCOUNT:
            return "empty"
        if self.risk is None:
            return "safe"
        return self.risk.value


class AddressClassifier:
    """地址分类器（链上数据读取器按调用传入，验证缓存在构造时注入）"""

    def __init__(
        self,
        cache: Optional[VerificationStatusCache] = None,
        max_attempts: int = 3,
        base_backoff: float = 1.0,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        """
        初始化分类器

        Args:
            cache: 验证状态缓存（None 则不查询验证状态）
            max_attempts: RPC 读取的最大尝试次数
            base_backoff: 指数退避基数（秒）
            sleep: 等待函数（None 则沿用缓存的等待函数）
        """
        self.cache = cache
        self.max_attempts = max_attempts
        self.backoff = exponential_backoff(base_backoff)
        if sleep is None:
            sleep = cache.sleep if cache is not None else asyncio.sleep
        self.sleep = sleep

    async def _read(self, operation: Callable[[], Awaitable[Any]], description: str) -> Any:
        # RPC 节点没有浏览器那样的速率限制，尝试前不额外等待
        return await retry_with_backoff(
            operation,
            description=description,
            max_attempts=self.max_attempts,
            rate_limit_delay=0.0,
            backoff=self.backoff,
            default=_UNAVAILABLE,
            sleep=self.sleep,
        )

    async def classify(
        self,
        address: str,
        provider,
        trusted_addresses: Iterable[str] = (),
        check_verification: bool = True,
    ) -> AddressReport:
        """
        对单个地址分类

        Args:
            address: 待分类地址
            provider: 链上数据读取器（get_code / get_transaction_count / chain_id）
            trusted_addresses: 可信地址列表（大小写不敏感）
            check_verification: 是否查询区块浏览器验证状态（selfdestruct 检查不需要）

        Returns:
            AddressReport
        """
        checksummed = Web3.to_checksum_address(address)

        trusted = {a.lower() for a in trusted_addresses}
        if checksummed.lower() in trusted:
            return AddressReport(checksummed, AddressClassification.TRUSTED_CONTRACT)

        code, nonce = await asyncio.gather(
            self._read(lambda: provider.get_code(checksummed), f"eth_getCode {checksummed}"),
            self._read(
                lambda: provider.get_transaction_count(checksummed),
                f"eth_getTransactionCount {checksummed}",
            ),
        )
        if code is _UNAVAILABLE or nonce is _UNAVAILABLE:
            logger.error(f"{checksummed}: 无法读取链上数据 (chain {provider.chain_id})")
            return AddressReport(checksummed, AddressClassification.UNAVAILABLE)

        bytecode = normalize_bytecode(code)

        # 无代码的地址：有过交易的是 EOA，否则是空账户。合约被 selfdestruct 后 nonce 会归零
        if not bytecode:
            if nonce > 0:
                return AddressReport(checksummed, AddressClassification.EOA)
            return AddressReport(checksummed, AddressClassification.EMPTY_ACCOUNT)

        verified = False
        if check_verification and self.cache is not None:
            verified = await self.cache.is_verified(checksummed, provider.chain_id)

        risk = scan(bytecode)
        classification = (
            AddressClassification.VERIFIED_CONTRACT if verified else AddressClassification.UNVERIFIED_CONTRACT
        )
        logger.debug(f"{checksummed}: {classification.value}, bytecode {risk.value}")
        return AddressReport(checksummed, classification, risk)

    async def classify_all(
        self,
        addresses: List[str],
        provider,
        trusted_addresses: Iterable[str] = (),
        check_verification: bool = True,
    ) -> List[AddressReport]:
        """
        并发分类多个地址，结果按输入顺序返回

        Args:
            addresses: 地址列表
            provider: 链上数据读取器
            trusted_addresses: 可信地址列表
            check_verification: 是否查询验证状态

        Returns:
            与 addresses 一一对应的 AddressReport 列表
        """
        trusted = list(trusted_addresses)
        return list(await asyncio.gather(*[
            self.classify(address, provider, trusted, check_verification)
            for address in addresses
        ]))
