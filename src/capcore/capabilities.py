# -*- coding: utf-8 -*-
"""
能力与错误类型定义
"""

from enum import Enum
from typing import Union


class Capability(str, Enum):
    """能力枚举（与供应商无关）"""
    AUTH = "auth"                       # 认证
    PAYMENTS = "payments"               # 支付
    NOTIFICATIONS = "notifications"     # 通知
    STORAGE = "storage"                 # 存储
    SEARCH = "search"                   # 搜索

    def __str__(self):
        return self.value


class ErrorKind(str, Enum):
    """契约声明的错误类型"""
    INVALID_INPUT = "invalid_input"     # 调用方输入无效
    UNAUTHORIZED = "unauthorized"       # 凭证无效
    NOT_FOUND = "not_found"             # 资源不存在
    CONFLICT = "conflict"               # 资源冲突
    DECLINED = "declined"               # 永久拒绝（如银行卡被拒）
    RATE_LIMITED = "rate_limited"       # 限流
    TIMEOUT = "timeout"                 # 超时
    UNAVAILABLE = "unavailable"         # 供应商临时不可用

    @property
    def recoverable(self) -> bool:
        """换一个供应商是否有可能成功"""
        return self in (ErrorKind.RATE_LIMITED, ErrorKind.TIMEOUT, ErrorKind.UNAVAILABLE)

    def __str__(self):
        return self.value


CapabilityLike = Union[Capability, str]


def as_capability(value: CapabilityLike) -> Capability:
    """
    将字符串转换为能力枚举

    Raises:
        ValueError: 未知能力
    """
    if isinstance(value, Capability):
        return value
    return Capability(str(value).lower())
