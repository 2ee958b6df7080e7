#!/usr/bin/env python3
"""
Config - 链配置与运行配置

从 .env / 环境变量读取配置：
1. 每条链的区块浏览器类型（Etherscan V2 统一 API 或 Blockscout REST API）
2. 每条链的 RPC URL
3. 治理合约地址（Governor / Timelock）与 DAO 名称

缺少必要配置时抛出 ConfigurationError，整个运行在执行任何检查之前中止。
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from web3 import Web3

from .errors import ConfigurationError

# 加载环境变量
load_dotenv()


MAINNET_CHAIN_ID = 1


class BlockExplorerSource(Enum):
    """区块浏览器后端类型"""
    ETHERSCAN = "etherscan"
    BLOCKSCOUT = "blockscout"


@dataclass(frozen=True)
class BlockExplorerConfig:
    """单条链的区块浏览器配置"""
    source: BlockExplorerSource
    base_url: str
    api_url: str = ""
    api_key: str = ""


@dataclass(frozen=True)
class ChainConfig:
    """单条链的配置"""
    chain_id: int
    name: str
    block_explorer: BlockExplorerConfig
    rpc_env: str = ""

    @property
    def rpc_url(self) -> Optional[str]:
        """链的 RPC URL（主网优先读取 MAINNET_RPC_URL）"""
        url = os.getenv(f"RPC_URL_{self.chain_id}")
        if not url and self.rpc_env:
            url = os.getenv(self.rpc_env)
        if not url or "YOUR_API_KEY" in url:
            return None
        return url


def _etherscan(base_url: str) -> BlockExplorerConfig:
    return BlockExplorerConfig(
        source=BlockExplorerSource.ETHERSCAN,
        base_url=base_url,
        api_url="https://api.etherscan.io/v2/api",
        api_key=os.getenv("ETHERSCAN_API_KEY", ""),
    )


def _blockscout(base_url: str) -> BlockExplorerConfig:
    return BlockExplorerConfig(
        source=BlockExplorerSource.BLOCKSCOUT,
        base_url=base_url,
        api_url=f"{base_url}/api/v2",
    )


# 已支持的链（Etherscan V2 通过 chainid 参数统一多链，其余链使用 Blockscout）
CHAIN_CONFIGS: Dict[int, ChainConfig] = {
    1: ChainConfig(1, "Ethereum", _etherscan("https://etherscan.io"), "MAINNET_RPC_URL"),
    10: ChainConfig(10, "OP Mainnet", _etherscan("https://optimistic.etherscan.io"), "OPTIMISM_RPC_URL"),
    130: ChainConfig(130, "Unichain", _etherscan("https://uniscan.xyz"), "UNICHAIN_RPC_URL"),
    8453: ChainConfig(8453, "Base", _etherscan("https://basescan.org"), "BASE_RPC_URL"),
    42161: ChainConfig(42161, "Arbitrum One", _etherscan("https://arbiscan.io"), "ARBITRUM_RPC_URL"),
    1868: ChainConfig(1868, "Soneium", _blockscout("https://soneium.blockscout.com"), "SONEIUM_RPC_URL"),
    57073: ChainConfig(57073, "Ink", _blockscout("https://explorer.inkonchain.com"), "INK_RPC_URL"),
    60808: ChainConfig(60808, "BOB", _blockscout("https://explorer.gobob.xyz"), "BOB_RPC_URL"),
}


def get_chain_config(chain_id: int) -> ChainConfig:
    """
    获取链配置

    Args:
        chain_id: 链 ID

    Returns:
        ChainConfig

    Raises:
        ConfigurationError: 不支持的链
    """
    config = CHAIN_CONFIGS.get(int(chain_id))
    if config is None:
        raise ConfigurationError(f"Unsupported chain id: {chain_id}")
    return config


@dataclass
class RunConfig:
    """一次审计运行的配置"""
    dao_name: str
    governor_address: str
    timelock_address: str
    chain_ids: List[int] = field(default_factory=lambda: [MAINNET_CHAIN_ID])
    cache_dir: Path = Path("./cache")
    reports_dir: Path = Path("./outputs/reports")
    max_trace_depth: int = 512

    @property
    def trusted_addresses(self) -> List[str]:
        return [self.governor_address, self.timelock_address]


def load_run_config(chain_ids: Optional[List[int]] = None) -> RunConfig:
    """
    从环境变量加载运行配置，并校验每条需要的链都有配置和 RPC URL

    Args:
        chain_ids: 本次运行涉及的链（None 则只有主网）

    Returns:
        RunConfig

    Raises:
        ConfigurationError: 缺少 GOVERNOR_ADDRESS / TIMELOCK_ADDRESS / DAO_NAME，
            或者某条链缺少配置或 RPC URL
    """
    chain_ids = chain_ids or [MAINNET_CHAIN_ID]

    dao_name = os.getenv("DAO_NAME")
    governor = os.getenv("GOVERNOR_ADDRESS")
    timelock = os.getenv("TIMELOCK_ADDRESS")
    if not dao_name:
        raise ConfigurationError("Must provide a DAO_NAME")
    if not governor:
        raise ConfigurationError("Must provide a GOVERNOR_ADDRESS")
    if not timelock:
        raise ConfigurationError("Must provide a TIMELOCK_ADDRESS")

    for address in (governor, timelock):
        if not Web3.is_address(address):
            raise ConfigurationError(f"Invalid governance address: {address}")

    for chain_id in chain_ids:
        chain = get_chain_config(chain_id)
        if chain.rpc_url is None:
            raise ConfigurationError(
                f"Missing RPC URL for {chain.name} (set RPC_URL_{chain.chain_id} or {chain.rpc_env})"
            )

    return RunConfig(
        dao_name=dao_name,
        governor_address=Web3.to_checksum_address(governor),
        timelock_address=Web3.to_checksum_address(timelock),
        chain_ids=list(chain_ids),
        cache_dir=Path(os.getenv("CACHE_DIR", "./cache")),
        reports_dir=Path(os.getenv("REPORTS_OUTPUT_DIR", "./outputs/reports")),
        max_trace_depth=int(os.getenv("MAX_TRACE_DEPTH", "512")),
    )
