"""
Scanner Module - 字节码扫描、调用轨迹提取与地址分类
"""

from .bytecode import BytecodeRiskVerdict, scan
from .trace import extract, extract_targets_from_calls
from .classifier import AddressClassification, AddressClassifier, AddressReport

__all__ = [
    "BytecodeRiskVerdict",
    "scan",
    "extract",
    "extract_targets_from_calls",
    "AddressClassification",
    "AddressClassifier",
    "AddressReport",
]
