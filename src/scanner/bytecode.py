#!/usr/bin/env python3
"""
Bytecode Scanner - 合约字节码风险扫描器

对合约运行时字节码做一次线性扫描，检测：
1. 可被正常控制流执行到的 SELFDESTRUCT（致命，立即返回）
2. 任意可达的 DELEGATECALL（非致命，记录后继续扫描）

检测逻辑与 selfdestruct-detect 社区工具一致（https://github.com/MrLuit/selfdestruct-detect）：
遇到终止指令后直到下一个 JUMPDEST 之间的字节视为不可达（死代码 / 数据区）。
这是一个静态近似，不是完整的控制流分析；跳转表、混淆分发等非常规控制流
可能导致误报或漏报。为保持与既有报告一致，不要"改进"这个模型。
"""

from enum import Enum
from typing import Union

from loguru import logger

from auditor.errors import DataIntegrityError


STOP = 0x00
JUMPDEST = 0x5B
PUSH1 = 0x60
PUSH32 = 0x7F
RETURN = 0xF3
DELEGATECALL = 0xF4
REVERT = 0xFD
INVALID = 0xFE
SELFDESTRUCT = 0xFF

HALTING_OPCODES = frozenset({STOP, RETURN, REVERT, INVALID, SELFDESTRUCT})


class BytecodeRiskVerdict(Enum):
    """字节码风险结论"""
    SAFE = "safe"
    DELEGATECALL_PRESENT = "delegatecall"
    SELFDESTRUCT_REACHABLE = "selfdestruct"


def normalize_bytecode(code: Union[bytes, bytearray, str, None]) -> bytes:
    """
    将 RPC 返回的代码统一转换为 bytes

    Args:
        code: HexBytes / bytes / "0x..." 十六进制字符串 / None

    Returns:
        原始字节（空代码返回 b""）。奇数长度的十六进制字符串按截断处理，丢弃末尾不完整的半字节

    Raises:
        DataIntegrityError: 字符串中含有非十六进制字符
    """
    if code is None:
        return b""
    if isinstance(code, str):
        hex_str = code.strip()
        hex_str = hex_str[2:] if hex_str.startswith(("0x", "0X")) else hex_str
        if len(hex_str) % 2:
            logger.warning(f"字节码长度为奇数，丢弃末尾半字节: ...{hex_str[-8:]}")
            hex_str = hex_str[:-1]
        try:
            return bytes.fromhex(hex_str)
        except ValueError as e:
            raise DataIntegrityError(f"Bytecode is not valid hex: {e}") from e
    return bytes(code)


def scan(bytecode: Union[bytes, bytearray, str]) -> BytecodeRiskVerdict:
    """
    扫描字节码，返回风险结论

    Args:
        bytecode: 合约运行时字节码

    Returns:
        BytecodeRiskVerdict
    """
    code = normalize_bytecode(bytecode)

    halted = False
    delegatecall_seen = False
    index = 0
    length = len(code)

    while index < length:
        opcode = code[index]

        if opcode == SELFDESTRUCT and not halted:
            return BytecodeRiskVerdict.SELFDESTRUCT_REACHABLE
        if opcode == DELEGATECALL and not halted:
            delegatecall_seen = True
        if opcode == JUMPDEST:
            halted = False
        if opcode in HALTING_OPCODES:
            halted = True
        if PUSH1 <= opcode <= PUSH32:
            # 跳过 PUSH 的立即数（数据，不是指令）；末尾截断的 PUSH 直接结束循环
            index += opcode - PUSH1 + 1

        index += 1

    if delegatecall_seen:
        return BytecodeRiskVerdict.DELEGATECALL_PRESENT
    return BytecodeRiskVerdict.SAFE
