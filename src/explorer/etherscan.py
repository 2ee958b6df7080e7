#!/usr/bin/env python3
"""
Etherscan - Etherscan V2 统一多链 API 后端

单个 API Key，链 ID 作为 chainid 查询参数传入。
"已验证" 指 getsourcecode 返回非空的 SourceCode。
"""

import json
from typing import Any, Dict, Optional

from web3 import Web3

from auditor.errors import DataIntegrityError, TransientNetworkError

from .base import Abi, BlockExplorer

ETHERSCAN_V2_API_URL = "https://api.etherscan.io/v2/api"


def parse_abi(result: Any) -> Abi:
    """
    解析 getabi 返回的 ABI 字符串

    Args:
        result: API 返回的 result 字段

    Returns:
        ABI 列表

    Raises:
        DataIntegrityError: 无法解析或解析结果不是数组
    """
    if not isinstance(result, str):
        raise DataIntegrityError(f"ABI result is not a string: {type(result).__name__}")

    try:
        abi = json.loads(result)
    except json.JSONDecodeError:
        # 有时 ABI 会被多包一层引号
        try:
            abi = json.loads(result.strip('"'))
        except json.JSONDecodeError as e:
            raise DataIntegrityError(f"ABI is not valid JSON: {e}") from e

    if not isinstance(abi, list):
        raise DataIntegrityError("ABI is not an array")
    return abi


def parse_source_code(result: Any) -> str:
    """
    取出 getsourcecode 返回的 SourceCode

    Args:
        result: API 返回的 result 字段（应为对象数组）

    Returns:
        SourceCode 字符串（空数组视为没有源码）

    Raises:
        DataIntegrityError: result 结构不符合预期
    """
    if not isinstance(result, list):
        raise DataIntegrityError(f"getsourcecode result is not an array: {type(result).__name__}")
    if not result:
        return ""
    entry = result[0]
    if not isinstance(entry, dict):
        raise DataIntegrityError(f"getsourcecode entry is not an object: {type(entry).__name__}")
    source_code = entry.get("SourceCode") or ""
    if not isinstance(source_code, str):
        raise DataIntegrityError(f"SourceCode is not a string: {type(source_code).__name__}")
    return source_code


class EtherscanExplorer(BlockExplorer):
    """Etherscan V2 API"""

    name = "Etherscan"

    def __init__(self, api_key: str, api_url: str = ETHERSCAN_V2_API_URL, timeout: float = 30.0):
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.api_url = api_url

    def _params(self, action: str, address: str, chain_id: int) -> Dict[str, Any]:
        return {
            "chainid": chain_id,
            "module": "contract",
            "action": action,
            "address": Web3.to_checksum_address(address),
            "apikey": self.api_key,
        }

    async def _call(self, action: str, address: str, chain_id: int) -> Dict[str, Any]:
        data = await self._get_json(self.api_url, params=self._params(action, address, chain_id))
        if not isinstance(data, dict):
            raise TransientNetworkError(f"Unexpected response for {action}")
        return data

    async def fetch_contract_abi(self, address: str, chain_id: int) -> Optional[Abi]:
        """
        获取合约 ABI

        未验证的合约返回 None；ABI 格式错误记录日志后返回 None。

        Raises:
            TransientNetworkError: 请求失败或被限流
        """
        normalized = Web3.to_checksum_address(address)
        self.log(f"Fetching ABI for {normalized} (Chain {chain_id})")
        data = await self._call("getabi", normalized, chain_id)

        result = data.get("result")
        if data.get("status") != "1":
            if isinstance(result, str) and "not verified" in result.lower():
                self.log(f"No verified ABI for {normalized} on chain {chain_id}")
                return None
            raise TransientNetworkError(f"{data.get('message', 'Unknown error')}: {result}")

        try:
            return parse_abi(result)
        except DataIntegrityError as e:
            self.warn(f"Invalid ABI format for {normalized}: {e}")
            return None

    async def is_contract_verified(self, address: str, chain_id: int) -> bool:
        """
        查询合约是否已在 Etherscan 验证

        响应结构异常时记录日志并视为未验证。

        Raises:
            TransientNetworkError: 请求失败或被限流
        """
        normalized = Web3.to_checksum_address(address)
        self.log(f"Fetching verification status for {normalized} (Chain {chain_id})")
        data = await self._call("getsourcecode", normalized, chain_id)

        result = data.get("result")
        if data.get("status") != "1":
            raise TransientNetworkError(f"{data.get('message', 'Unknown error')}: {result}")

        try:
            source_code = parse_source_code(result)
        except DataIntegrityError as e:
            self.warn(f"Invalid verification response for {normalized}: {e}")
            return False
        verified = bool(source_code.strip())
        self.log(f"Verification result for {normalized}: {verified}")
        return verified
