#!/usr/bin/env python3
"""
Errors - 审计流程中的异常类型

- ConfigurationError: 配置缺失，整个运行在任何检查之前中止
- TransientNetworkError: 区块浏览器 / RPC 暂时失败，可重试
- DataIntegrityError: 浏览器返回的数据格式不正确（如 ABI 不是数组）
"""


class AuditError(Exception):
    """审计异常基类"""


class ConfigurationError(AuditError):
    """缺少必要的链配置或治理合约地址"""


class TransientNetworkError(AuditError):
    """远程调用失败或超时（重试后仍失败则降级为否定结果）"""


class DataIntegrityError(AuditError):
    """远程服务返回了无法解析的数据"""
