# -*- coding: utf-8 -*-
"""
调用结果定义与失败分类

每次适配器调用产生一个 InvocationOutcome：SUCCESS / RECOVERABLE / FATAL。
结果只在调用期间存在，不会被保存。
"""

from __future__ import annotations

from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from capcore.capabilities import ErrorKind
from capcore.exceptions import (
    FatalFailure,
    ProviderFailure,
    ProviderInitError,
    RecoverableFailure,
)


class OutcomeKind(str, Enum):
    """结果类型"""
    SUCCESS = "success"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass(frozen=True)
class InvocationOutcome:
    """单次适配器调用的结果（带标签）"""
    kind: OutcomeKind
    value: Any = None
    reason: str = ""
    error_kind: Optional[ErrorKind] = None
    error: Optional[BaseException] = None
    provider: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> InvocationOutcome:
        return cls(OutcomeKind.SUCCESS, value=value)

    @classmethod
    def recoverable(cls, reason: str, kind: ErrorKind = ErrorKind.UNAVAILABLE,
                    error: Optional[BaseException] = None) -> InvocationOutcome:
        return cls(OutcomeKind.RECOVERABLE, reason=reason, error_kind=kind, error=error)

    @classmethod
    def fatal(cls, reason: str, kind: ErrorKind = ErrorKind.INVALID_INPUT,
              error: Optional[BaseException] = None) -> InvocationOutcome:
        return cls(OutcomeKind.FATAL, reason=reason, error_kind=kind, error=error)

    @property
    def is_success(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS

    @property
    def is_recoverable(self) -> bool:
        return self.kind == OutcomeKind.RECOVERABLE

    @property
    def is_fatal(self) -> bool:
        return self.kind == OutcomeKind.FATAL

    def with_provider(self, provider: str) -> InvocationOutcome:
        return replace(self, provider=provider)

    def to_failure(self) -> ProviderFailure:
        """
        转换为失败异常

        适配器自己抛出的 ProviderFailure 原样返回（补上提供方名称），
        其他情况构造新的失败对象，并把原始异常作为 __cause__
        """
        if self.is_success:
            raise ValueError("成功结果不能转换为失败")

        if isinstance(self.error, ProviderFailure):
            if self.error.provider is None and self.provider is not None:
                self.error.provider = self.provider
                self.error.details["provider"] = self.provider
            return self.error

        kind = self.error_kind or (ErrorKind.UNAVAILABLE if self.is_recoverable else ErrorKind.INVALID_INPUT)
        cls = RecoverableFailure if self.is_recoverable else FatalFailure
        failure = cls(self.reason, kind, self.provider)
        if self.error is not None:
            failure.__cause__ = self.error
        return failure


@dataclass(frozen=True)
class AttemptRecord:
    """一次失败尝试的记录（用于诊断）"""
    provider: str
    reason: str
    error_kind: Optional[ErrorKind] = None
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "reason": self.reason,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "elapsed_seconds": round(self.elapsed_seconds, 4),
        }


# 失败分类器：把适配器抛出的异常映射为结果
FailureClassifier = Callable[[Exception], InvocationOutcome]

# 调用方输入错误，换供应商也无法修复
_FATAL_EXCEPTIONS = (ValueError, TypeError, KeyError, LookupError)


def classify_exception(exc: Exception) -> InvocationOutcome:
    """
    默认失败分类

    - ProviderFailure: 按其自身的可恢复性与错误类型
    - 适配器构造失败: 可恢复（下一个提供方可能可用）
    - 超时: 可恢复 TIMEOUT
    - 连接/IO 错误: 可恢复 UNAVAILABLE
    - ValueError / TypeError / KeyError: 致命 INVALID_INPUT
    - 其他: 可恢复 UNAVAILABLE
    """
    if isinstance(exc, ProviderFailure):
        if exc.recoverable:
            return InvocationOutcome.recoverable(exc.reason, exc.kind, exc)
        return InvocationOutcome.fatal(exc.reason, exc.kind, exc)

    reason = f"{type(exc).__name__}: {exc}"
    if isinstance(exc, ProviderInitError):
        return InvocationOutcome.recoverable(exc.message, ErrorKind.UNAVAILABLE, exc)
    if isinstance(exc, (TimeoutError, FuturesTimeout)):
        return InvocationOutcome.recoverable(reason, ErrorKind.TIMEOUT, exc)
    if isinstance(exc, (ConnectionError, OSError)):
        return InvocationOutcome.recoverable(reason, ErrorKind.UNAVAILABLE, exc)
    if isinstance(exc, _FATAL_EXCEPTIONS):
        return InvocationOutcome.fatal(reason, ErrorKind.INVALID_INPUT, exc)
    return InvocationOutcome.recoverable(reason, ErrorKind.UNAVAILABLE, exc)


def run_operation(adapter: Any, operation: str, args: Mapping[str, Any],
                  classifier: FailureClassifier = classify_exception) -> InvocationOutcome:
    """
    调用适配器上的一个操作并分类结果

    参数原样传给适配器；适配器可以直接返回 InvocationOutcome，
    也可以返回值或抛出 ProviderFailure
    """
    method = getattr(adapter, operation, None)
    if not callable(method):
        return InvocationOutcome.recoverable(f"适配器未实现操作 '{operation}'", ErrorKind.UNAVAILABLE)

    try:
        result = method(args)
    except Exception as e:
        return classifier(e)

    if isinstance(result, InvocationOutcome):
        return result
    return InvocationOutcome.success(result)
