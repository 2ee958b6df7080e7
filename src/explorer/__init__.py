"""
Explorer Module - 区块浏览器后端、重试与验证状态缓存
"""

from .base import Abi, BlockExplorer
from .etherscan import EtherscanExplorer
from .blockscout import BlockscoutExplorer
from .factory import BlockExplorerFactory
from .retry import exponential_backoff, retry_with_backoff
from .cache import VerificationStatusCache

__all__ = [
    "Abi",
    "BlockExplorer",
    "EtherscanExplorer",
    "BlockscoutExplorer",
    "BlockExplorerFactory",
    "exponential_backoff",
    "retry_with_backoff",
    "VerificationStatusCache",
]
