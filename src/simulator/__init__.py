"""
Simulator Module - 模拟结果数据结构与链上数据读取
"""

from .models import CallTrace, DestinationSimulation, Log, ProposalExecution, SimulationResult
from .chain import ChainDataProvider, build_providers

__all__ = [
    "CallTrace",
    "DestinationSimulation",
    "Log",
    "ProposalExecution",
    "SimulationResult",
    "ChainDataProvider",
    "build_providers",
]
