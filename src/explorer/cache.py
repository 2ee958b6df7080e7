#!/usr/bin/env python3
"""
Verification Cache - 合约验证状态 / ABI 的分层缓存

查询顺序：内存 -> 磁盘 -> 区块浏览器
- 磁盘命中会同步写入内存，且不发起任何远程请求
- 远程请求统一经过 retry_with_backoff（速率限制 + 指数退避）
- 重试用尽后降级为否定结果（未验证 / 无 ABI），并像确定的否定结果一样写入缓存，
  直到手动清空缓存前不会再次请求。暂时的浏览器故障会因此变成持续的"未验证"

缓存文件：
- {cache_dir}/verification/{chainId}-{checksumAddress}.json  -> {"verified": bool, "timestamp": ms}
- {cache_dir}/abis/{chainId}-{checksumAddress}.json          -> 原始 ABI 数组；无 ABI 时为 null

并发的相同查询可能各自请求远程服务并重复写入相同的值（值按 key 幂等），不加锁。
"""

import asyncio
import json
import shutil
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from loguru import logger
from web3 import Web3

from .base import Abi
from .factory import BlockExplorerFactory
from .retry import exponential_backoff, retry_with_backoff

CacheKey = Tuple[int, str]


class VerificationStatusCache:
    """验证状态与 ABI 缓存（每个进程构造一次，注入到需要的组件中）"""

    def __init__(
        self,
        factory: BlockExplorerFactory,
        cache_dir: Path = Path("./cache"),
        max_attempts: int = 3,
        rate_limit_delay: float = 1.0,
        base_backoff: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        初始化缓存

        Args:
            factory: 区块浏览器后端工厂
            cache_dir: 磁盘缓存根目录
            max_attempts: 每次远程调用的最大尝试次数
            rate_limit_delay: 每次尝试前的固定等待（秒）
            base_backoff: 指数退避基数（秒）
            sleep: 等待函数（测试时可替换）
        """
        self.factory = factory
        self.cache_dir = Path(cache_dir)
        self.abi_dir = self.cache_dir / "abis"
        self.verification_dir = self.cache_dir / "verification"
        self.abi_dir.mkdir(parents=True, exist_ok=True)
        self.verification_dir.mkdir(parents=True, exist_ok=True)

        self.max_attempts = max_attempts
        self.rate_limit_delay = rate_limit_delay
        self.backoff = exponential_backoff(base_backoff)
        self.sleep = sleep

        self._verification: Dict[CacheKey, bool] = {}
        self._abis: Dict[CacheKey, Optional[Abi]] = {}

    # ------------------------------------------------------------------
    # key / path
    # ------------------------------------------------------------------

    @staticmethod
    def cache_key(chain_id: int, address: str) -> CacheKey:
        return int(chain_id), Web3.to_checksum_address(address)

    def verification_path(self, chain_id: int, address: str) -> Path:
        chain_id, checksummed = self.cache_key(chain_id, address)
        return self.verification_dir / f"{chain_id}-{checksummed}.json"

    def abi_path(self, chain_id: int, address: str) -> Path:
        chain_id, checksummed = self.cache_key(chain_id, address)
        return self.abi_dir / f"{chain_id}-{checksummed}.json"

    # ------------------------------------------------------------------
    # disk
    # ------------------------------------------------------------------

    @staticmethod
    def _read_json(path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"缓存文件损坏，忽略: {path} ({e})")
            return None

    @staticmethod
    def _write_json(path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    async def _read_verification_file(self, chain_id: int, address: str) -> Optional[bool]:
        cached = await asyncio.to_thread(self._read_json, self.verification_path(chain_id, address))
        if isinstance(cached, dict) and isinstance(cached.get("verified"), bool):
            return cached["verified"]
        return None

    @staticmethod
    def _read_abi_file(path: Path) -> Tuple[bool, Optional[Abi]]:
        """返回 (是否命中, ABI)；文件内容为 null 表示已缓存的否定结果"""
        if not path.exists():
            return False, None
        try:
            with open(path, "r", encoding="utf-8") as f:
                cached = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"缓存文件损坏，忽略: {path} ({e})")
            return False, None
        if cached is None or isinstance(cached, list):
            return True, cached
        logger.warning(f"ABI 缓存格式错误，忽略: {path}")
        return False, None

    async def _write_verification_file(self, chain_id: int, address: str, verified: bool) -> None:
        entry = {"verified": verified, "timestamp": int(time.time() * 1000)}
        await asyncio.to_thread(self._write_json, self.verification_path(chain_id, address), entry)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    async def is_verified(self, address: str, chain_id: int) -> bool:
        """
        查询合约是否已在区块浏览器验证

        Args:
            address: 合约地址
            chain_id: 链 ID

        Returns:
            是否已验证（远程失败时降级为 False 并缓存）
        """
        key = self.cache_key(chain_id, address)

        if key in self._verification:
            return self._verification[key]

        file_cached = await self._read_verification_file(*key)
        if file_cached is not None:
            logger.debug(f"使用磁盘缓存的验证状态: {key[1]} (chain {key[0]})")
            self._verification[key] = file_cached
            return file_cached

        explorer = self.factory.get_explorer(key[0])
        verified = await retry_with_backoff(
            lambda: explorer.is_contract_verified(key[1], key[0]),
            description=f"[{explorer.name}] fetch verification status for {key[1]} on chain {key[0]}",
            max_attempts=self.max_attempts,
            rate_limit_delay=self.rate_limit_delay,
            backoff=self.backoff,
            default=False,
            sleep=self.sleep,
        )
        verified = bool(verified)

        self._verification[key] = verified
        await self._write_verification_file(key[0], key[1], verified)
        return verified

    async def fetch_abi(self, address: str, chain_id: int) -> Optional[Abi]:
        """
        获取合约 ABI

        Args:
            address: 合约地址
            chain_id: 链 ID

        Returns:
            ABI 列表，不可用时返回 None
        """
        key = self.cache_key(chain_id, address)

        if key in self._abis:
            return self._abis[key]

        path = self.abi_path(*key)
        hit, file_cached = await asyncio.to_thread(self._read_abi_file, path)
        if hit:
            logger.debug(f"使用磁盘缓存的 ABI: {key[1]} (chain {key[0]})")
            self._abis[key] = file_cached
            return file_cached

        explorer = self.factory.get_explorer(key[0])
        abi = await retry_with_backoff(
            lambda: explorer.fetch_contract_abi(key[1], key[0]),
            description=f"[{explorer.name}] fetch ABI for {key[1]} on chain {key[0]}",
            max_attempts=self.max_attempts,
            rate_limit_delay=self.rate_limit_delay,
            backoff=self.backoff,
            default=None,
            sleep=self.sleep,
        )

        # 否定结果（包括重试用尽后的降级结果）同样写入两级缓存
        self._abis[key] = abi
        await asyncio.to_thread(self._write_json, path, abi)
        logger.debug(f"已缓存 ABI: {key[1]} (chain {key[0]}, available={abi is not None})")
        return abi

    def clear(self, disk: bool = False) -> None:
        """
        清空缓存

        Args:
            disk: 为 True 时同时删除磁盘缓存文件
        """
        self._verification.clear()
        self._abis.clear()
        if disk:
            for directory in (self.abi_dir, self.verification_dir):
                shutil.rmtree(directory, ignore_errors=True)
                directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"已清空磁盘缓存: {self.cache_dir}")
