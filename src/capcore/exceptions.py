# -*- coding: utf-8 -*-
"""
自定义异常类
区分配置期错误（部署错误，必须快速失败）与调用期结果（由调用器处理）
"""

from typing import Optional, Dict, Any, List

from capcore.capabilities import ErrorKind


class CapcoreException(Exception):
    """capcore 基础异常类"""

    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "内部错误",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（用于诊断输出）"""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


# ==================== 配置相关异常 ====================

class ConfigurationError(CapcoreException):
    """配置错误基类（不重试、不吞掉）"""
    error_code = "CONFIGURATION_ERROR"


class UnknownCapabilityError(ConfigurationError):
    """能力未定义"""
    error_code = "UNKNOWN_CAPABILITY"

    def __init__(self, capability: str):
        super().__init__(
            f"能力 '{capability}' 未定义",
            {"capability": capability}
        )


class UnknownOperationError(ConfigurationError):
    """能力契约中不存在该操作"""
    error_code = "UNKNOWN_OPERATION"

    def __init__(self, capability: str, operation: str):
        super().__init__(
            f"能力 '{capability}' 不支持操作 '{operation}'",
            {"capability": capability, "operation": operation}
        )


class UnknownProviderError(ConfigurationError):
    """提供方未注册"""
    error_code = "UNKNOWN_PROVIDER"

    def __init__(self, capability: str, provider: str):
        super().__init__(
            f"提供方 '{provider}' 未注册到能力 '{capability}'",
            {"capability": capability, "provider": provider}
        )


class DuplicateProviderError(ConfigurationError):
    """提供方重复注册"""
    error_code = "DUPLICATE_PROVIDER"

    def __init__(self, capability: str, provider: str):
        super().__init__(
            f"提供方 '{provider}' 已注册到能力 '{capability}'",
            {"capability": capability, "provider": provider}
        )


class ProviderInitError(ConfigurationError):
    """适配器构造失败（不缓存，下次 get 会重新构造）"""
    error_code = "PROVIDER_INIT_ERROR"

    def __init__(self, capability: str, provider: str, message: str = "适配器构造失败"):
        super().__init__(
            message,
            {"capability": capability, "provider": provider}
        )
        self.capability = capability
        self.provider = provider


class NoProviderConfiguredError(ConfigurationError):
    """没有默认提供方且没有规则命中"""
    error_code = "NO_PROVIDER_CONFIGURED"

    def __init__(self, capability: str, tenant_id: Optional[str] = None):
        super().__init__(
            f"能力 '{capability}' 没有可用的提供方配置",
            {"capability": capability, "tenant_id": tenant_id}
        )


class InvalidPolicyError(ConfigurationError):
    """解析策略无效"""
    error_code = "INVALID_POLICY"


# ==================== 调用相关异常 ====================

class InvocationError(CapcoreException):
    """调用错误基类"""
    error_code = "INVOCATION_ERROR"


class ProviderFailure(InvocationError):
    """
    适配器报告的失败

    适配器应抛出 RecoverableFailure 或 FatalFailure，
    kind 必须是契约中为该操作声明的错误类型
    """
    error_code = "PROVIDER_FAILURE"
    recoverable: bool = False

    def __init__(
        self,
        reason: str,
        kind: ErrorKind = ErrorKind.UNAVAILABLE,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        merged = {"kind": kind.value, "provider": provider}
        merged.update(details or {})
        super().__init__(reason, merged)
        self.reason = reason
        self.kind = kind
        self.provider = provider


class RecoverableFailure(ProviderFailure):
    """可恢复失败（超时、临时错误、限流），调用器会切换到下一个提供方"""
    error_code = "RECOVERABLE_FAILURE"
    recoverable = True


class FatalFailure(ProviderFailure):
    """致命失败（无效输入、永久拒绝），立即返回给调用方"""
    error_code = "FATAL_FAILURE"
    recoverable = False

    def __init__(
        self,
        reason: str,
        kind: ErrorKind = ErrorKind.INVALID_INPUT,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(reason, kind, provider, details)


class AllProvidersExhaustedError(InvocationError):
    """所有提供方均以可恢复失败结束"""
    error_code = "ALL_PROVIDERS_EXHAUSTED"

    def __init__(self, capability: str, operation: str, attempts: List[Any]):
        super().__init__(
            f"能力 '{capability}.{operation}' 的所有提供方均失败",
            {
                "capability": capability,
                "operation": operation,
                "attempts": [a.to_dict() for a in attempts],
            }
        )
        self.capability = capability
        self.operation = operation
        self.attempts = list(attempts)


class InvocationCancelledError(InvocationError):
    """调用在尝试之间被取消"""
    error_code = "INVOCATION_CANCELLED"

    def __init__(self, capability: str, operation: str, attempts: List[Any]):
        super().__init__(
            f"调用已取消: {capability}.{operation}",
            {"capability": capability, "operation": operation}
        )
        self.attempts = list(attempts)
