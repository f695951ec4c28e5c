"""
调用层
执行首选提供方、分类失败、按回退链切换
"""

from .outcome import (
    OutcomeKind,
    InvocationOutcome,
    AttemptRecord,
    FailureClassifier,
    classify_exception,
    run_operation,
)
from .invoker import ResilientInvoker, InvocationResult, USE_DEFAULT_TIMEOUT

__all__ = [
    "OutcomeKind",
    "InvocationOutcome",
    "AttemptRecord",
    "FailureClassifier",
    "classify_exception",
    "run_operation",
    "ResilientInvoker",
    "InvocationResult",
    "USE_DEFAULT_TIMEOUT",
]
