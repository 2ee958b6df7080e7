#!/usr/bin/env python3
"""
Chain Data Provider - 链上数据读取

为地址分类提供两个只读接口：
- get_code(address) -> bytes
- get_transaction_count(address) -> int

每条链一个实例，基于 AsyncWeb3（非阻塞 I/O）。
传输层错误（连接失败、超时、节点返回错误）统一转换为 TransientNetworkError，
由调用方的重试原语处理。
"""

import asyncio
from typing import Any, Awaitable, Dict, Optional

import aiohttp
from loguru import logger
from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception

from auditor.config import ChainConfig
from auditor.errors import ConfigurationError, TransientNetworkError

RPC_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError, Web3Exception)


class ChainDataProvider:
    """单条链的链上数据读取器"""

    def __init__(self, chain: ChainConfig, rpc_url: Optional[str] = None, timeout: int = 60):
        """
        初始化读取器

        Args:
            chain: 链配置
            rpc_url: RPC URL（None 则使用链配置中的 RPC URL）
            timeout: 请求超时（秒）
        """
        self.chain = chain
        self.rpc_url = rpc_url or chain.rpc_url
        if not self.rpc_url:
            raise ConfigurationError(f"Missing RPC URL for {chain.name}")

        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
            self.rpc_url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
        ))

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id

    async def _request(self, method: str, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except RPC_ERRORS as e:
            raise TransientNetworkError(f"{method} on {self.chain.name} failed: {type(e).__name__}: {e}") from e

    async def get_code(self, address: str) -> bytes:
        """
        获取地址上的运行时字节码（无代码返回 b""）

        Raises:
            TransientNetworkError: RPC 请求失败
        """
        checksummed = Web3.to_checksum_address(address)
        code = await self._request("eth_getCode", self.w3.eth.get_code(checksummed))
        return bytes(code or b"")

    async def get_transaction_count(self, address: str) -> int:
        """获取地址的 nonce"""
        checksummed = Web3.to_checksum_address(address)
        return int(await self._request("eth_getTransactionCount", self.w3.eth.get_transaction_count(checksummed)))


def build_providers(chains: Dict[int, ChainConfig]) -> Dict[int, ChainDataProvider]:
    """
    为每条链构造读取器

    Args:
        chains: 链 ID -> 链配置

    Returns:
        链 ID -> ChainDataProvider
    """
    providers = {}
    for chain_id, chain in chains.items():
        providers[chain_id] = ChainDataProvider(chain)
        logger.info(f"已配置 {chain.name} (chain {chain_id}) 的 RPC")
    return providers
