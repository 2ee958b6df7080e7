"""
Auditor Module - 审计配置、异常与命令行入口
"""

from .config import CHAIN_CONFIGS, BlockExplorerSource, ChainConfig, RunConfig, get_chain_config, load_run_config
from .errors import AuditError, ConfigurationError, DataIntegrityError, TransientNetworkError

__all__ = [
    "CHAIN_CONFIGS",
    "BlockExplorerSource",
    "ChainConfig",
    "RunConfig",
    "get_chain_config",
    "load_run_config",
    "AuditError",
    "ConfigurationError",
    "DataIntegrityError",
    "TransientNetworkError",
]
