#!/usr/bin/env python3
"""
Block Explorer Factory - 按链选择区块浏览器后端

每条链的后端由链配置决定（Etherscan V2 或 Blockscout），
同一进程内每条链只构造一次，通过依赖注入传给缓存层。
"""

import os
from typing import Dict, Optional

from auditor.config import CHAIN_CONFIGS, BlockExplorerSource, ChainConfig, get_chain_config

from .base import BlockExplorer
from .blockscout import BlockscoutExplorer
from .etherscan import ETHERSCAN_V2_API_URL, EtherscanExplorer


class BlockExplorerFactory:
    """区块浏览器后端工厂"""

    def __init__(self, chains: Optional[Dict[int, ChainConfig]] = None, api_key: Optional[str] = None):
        """
        初始化工厂

        Args:
            chains: 链配置表（None 则使用内置 CHAIN_CONFIGS）
            api_key: Etherscan API Key（None 则使用链配置或环境变量 ETHERSCAN_API_KEY）
        """
        self.chains = chains if chains is not None else CHAIN_CONFIGS
        self.api_key = api_key
        self._explorers: Dict[int, BlockExplorer] = {}

    def _chain(self, chain_id: int) -> ChainConfig:
        if chain_id in self.chains:
            return self.chains[chain_id]
        return get_chain_config(chain_id)

    def get_explorer(self, chain_id: int) -> BlockExplorer:
        """
        获取链对应的后端（首次调用时构造）

        Raises:
            ConfigurationError: 不支持的链
        """
        if chain_id not in self._explorers:
            explorer_config = self._chain(chain_id).block_explorer
            if explorer_config.source == BlockExplorerSource.BLOCKSCOUT:
                explorer: BlockExplorer = BlockscoutExplorer(explorer_config.base_url, explorer_config.api_url)
            else:
                api_key = self.api_key or explorer_config.api_key or os.getenv("ETHERSCAN_API_KEY", "")
                explorer = EtherscanExplorer(api_key, api_url=explorer_config.api_url or ETHERSCAN_V2_API_URL)
            self._explorers[chain_id] = explorer
        return self._explorers[chain_id]

    async def close(self) -> None:
        """关闭所有后端的 HTTP 会话"""
        for explorer in self._explorers.values():
            await explorer.close()

    def clear(self) -> None:
        """清空已构造的后端（测试隔离用）"""
        self._explorers = {}
