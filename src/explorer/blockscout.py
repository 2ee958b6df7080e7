#!/usr/bin/env python3
"""
Blockscout - 按链部署的 Blockscout REST API 后端

每条链有独立的 base URL / API URL。
完全验证和部分验证（is_partially_verified）都视为已验证。
"""

from typing import Any, Dict, Optional

from web3 import Web3

from .base import Abi, BlockExplorer


class BlockscoutExplorer(BlockExplorer):
    """Blockscout API v2"""

    name = "Blockscout"

    def __init__(self, base_url: str, api_url: str, timeout: float = 30.0):
        super().__init__(timeout=timeout)
        self.base_url = base_url.rstrip("/")
        self.api_url = api_url.rstrip("/")

    async def _smart_contract(self, address: str) -> Optional[Dict[str, Any]]:
        # 404 表示浏览器没有该合约的源码记录（确定的否定结果，不重试）
        data = await self._get_json(f"{self.api_url}/smart-contracts/{address}", not_found_ok=True)
        return data if isinstance(data, dict) else None

    async def fetch_contract_abi(self, address: str, chain_id: int) -> Optional[Abi]:
        normalized = Web3.to_checksum_address(address)
        self.log(f"Fetching ABI for {normalized} from {self.base_url} (Chain {chain_id})")

        data = await self._smart_contract(normalized)
        abi = (data or {}).get("abi")
        if not abi:
            self.warn(f"No ABI found for {normalized} on chain {chain_id}")
            return None
        if not isinstance(abi, list):
            self.warn(f"Invalid ABI format for {normalized}: not an array")
            return None
        return abi

    async def is_contract_verified(self, address: str, chain_id: int) -> bool:
        normalized = Web3.to_checksum_address(address)
        self.log(f"Fetching verification status for {normalized} from chain {chain_id}")

        data = await self._smart_contract(normalized)
        if data is None:
            return False

        verified = bool(data.get("is_verified")) or data.get("is_partially_verified") is True
        self.log(
            f"Verification result for {normalized}: {verified} "
            f"(fully: {data.get('is_verified')}, partially: {data.get('is_partially_verified')})"
        )
        return verified
