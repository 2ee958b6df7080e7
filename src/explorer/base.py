#!/usr/bin/env python3
"""
Block Explorer - 区块浏览器后端的公共部分

每个后端只需要实现两个能力：
- fetch_contract_abi(address, chain_id) -> ABI 列表或 None
- is_contract_verified(address, chain_id) -> bool

后端只负责"一次"远程请求；缓存与重试由 VerificationStatusCache 统一处理。
请求失败时抛出 TransientNetworkError，由重试原语处理。
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from auditor.errors import TransientNetworkError

Abi = List[Dict[str, Any]]


class BlockExplorer:
    """区块浏览器后端基类"""

    name = "BlockExplorer"

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def fetch_contract_abi(self, address: str, chain_id: int) -> Optional[Abi]:
        raise NotImplementedError

    async def is_contract_verified(self, address: str, chain_id: int) -> bool:
        raise NotImplementedError

    def log(self, message: str) -> None:
        logger.info(f"[{self.name}] {message}")

    def warn(self, message: str) -> None:
        logger.warning(f"[{self.name}] {message}")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        not_found_ok: bool = False,
    ) -> Optional[Any]:
        """
        发送 GET 请求并解析 JSON

        Args:
            url: 请求地址
            params: 查询参数
            not_found_ok: 为 True 时 404 返回 None（视为确定的否定结果）

        Returns:
            解析后的 JSON

        Raises:
            TransientNetworkError: 网络错误、超时、非 200 状态或响应不是 JSON
        """
        session = await self._get_session()
        try:
            async with session.get(url, params=params) as resp:
                if resp.status == 404 and not_found_ok:
                    return None
                if resp.status != 200:
                    raise TransientNetworkError(f"HTTP {resp.status} from {url}")
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientNetworkError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise TransientNetworkError(f"Invalid JSON from {url}: {e}") from e

    async def close(self) -> None:
        """关闭 HTTP 会话"""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
