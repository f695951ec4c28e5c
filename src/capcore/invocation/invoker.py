# -*- coding: utf-8 -*-
"""
容错调用器

按解析得到的提供方序列依次尝试：
成功立即返回；可恢复失败记录后切换到下一个提供方；致命失败立即返回给调用方。
同一次调用内的尝试严格串行，避免对有副作用的操作（如扣款）重复执行。
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from loguru import logger

from capcore.adapters.registry import AdapterRegistry
from capcore.capabilities import Capability, CapabilityLike, ErrorKind, as_capability
from capcore.contracts.catalog import ContractCatalog
from capcore.events import EventBus, EventType
from capcore.exceptions import (
    AllProvidersExhaustedError,
    InvocationCancelledError,
    ProviderInitError,
    UnknownCapabilityError,
    UnknownOperationError,
)
from capcore.resolution.policy import ResolutionContext
from capcore.resolution.resolver import Resolver
from capcore.utils.concurrency import CancelToken, call_with_timeout
from .outcome import (
    AttemptRecord,
    FailureClassifier,
    InvocationOutcome,
    classify_exception,
    run_operation,
)


# 未显式传入 timeout 时使用调用器的默认超时
USE_DEFAULT_TIMEOUT = object()


@dataclass
class InvocationResult:
    """一次 invoke 的完整结果"""
    capability: Capability
    operation: str
    outcome: InvocationOutcome
    sequence: Tuple[str, ...] = ()
    attempts: List[AttemptRecord] = field(default_factory=list)

    @property
    def provider(self) -> Optional[str]:
        """最终给出结果的提供方"""
        return self.outcome.provider

    @property
    def exhausted(self) -> bool:
        return self.outcome.is_recoverable

    def unwrap(self) -> Any:
        """
        取出成功值

        Raises:
            FatalFailure: 致命失败（原样）
            AllProvidersExhaustedError: 所有提供方都可恢复失败
        """
        if self.outcome.is_success:
            return self.outcome.value
        if self.outcome.is_fatal:
            raise self.outcome.to_failure()
        raise AllProvidersExhaustedError(self.capability.value, self.operation, self.attempts)


class ResilientInvoker:
    """容错调用器

    不在调用之间保存提供方健康状态，每次 invoke 相互独立。
    """

    def __init__(
        self,
        resolver: Resolver,
        registry: AdapterRegistry,
        catalog: Optional[ContractCatalog] = None,
        default_timeout: Optional[float] = None,
        classifier: FailureClassifier = classify_exception,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Args:
            resolver: 解析器
            registry: 适配器注册表
            catalog: 契约目录（用于拒绝契约外的操作）
            default_timeout: 每次尝试的默认超时（秒），None 表示不限时
            classifier: 失败分类器
            event_bus: 诊断事件总线
        """
        self._resolver = resolver
        self._registry = registry
        self._catalog = catalog or ContractCatalog()
        self._default_timeout = default_timeout
        self._classifier = classifier
        self._events = event_bus

    def invoke(
        self,
        capability: CapabilityLike,
        operation: str,
        args: Mapping[str, Any],
        context: Optional[ResolutionContext] = None,
        timeout: Any = USE_DEFAULT_TIMEOUT,
        cancel_token: Optional[CancelToken] = None,
    ) -> Any:
        """
        调用能力操作

        Returns:
            第一个成功提供方的返回值

        Raises:
            FatalFailure: 致命失败，携带原始适配器的错误信息
            AllProvidersExhaustedError: 序列耗尽，附带按顺序的失败历史
            NoProviderConfiguredError / UnknownProviderError / UnknownOperationError: 配置错误
        """
        return self.invoke_outcome(capability, operation, args, context, timeout, cancel_token).unwrap()

    def invoke_outcome(
        self,
        capability: CapabilityLike,
        operation: str,
        args: Mapping[str, Any],
        context: Optional[ResolutionContext] = None,
        timeout: Any = USE_DEFAULT_TIMEOUT,
        cancel_token: Optional[CancelToken] = None,
    ) -> InvocationResult:
        """
        调用能力操作，返回结果对象而不是抛出调用期失败

        配置错误仍然直接抛出
        """
        cap = self._check_operation(capability, operation)
        context = (context or ResolutionContext()).for_capability(cap)
        per_attempt = self._default_timeout if timeout is USE_DEFAULT_TIMEOUT else timeout

        sequence = self._resolver.resolve(cap, context)
        tag = f"[{cap.value}.{operation}]"
        attempts: List[AttemptRecord] = []
        last: Optional[InvocationOutcome] = None

        for index, provider in enumerate(sequence):
            if cancel_token is not None and cancel_token.cancelled():
                logger.warning(f"{tag} 调用已取消，已尝试 {len(attempts)} 个提供方")
                raise InvocationCancelledError(cap.value, operation, attempts)

            started = time.monotonic()
            outcome = self._attempt(cap, provider, operation, args, per_attempt).with_provider(provider)
            elapsed = time.monotonic() - started

            if outcome.is_success:
                if attempts:
                    logger.info(f"{tag} 回退成功: {provider}（此前失败 {len(attempts)} 次）")
                else:
                    logger.debug(f"{tag} 调用成功: {provider} ({elapsed:.3f}s)")
                self._emit(EventType.INVOCATION_SUCCEEDED, capability=cap.value, operation=operation,
                           provider=provider, tenant_id=context.tenant_id, fallback_depth=index,
                           elapsed_seconds=elapsed)
                return InvocationResult(cap, operation, outcome, sequence, attempts)

            if outcome.is_fatal:
                logger.warning(f"{tag} 提供方 {provider} 致命失败: {outcome.reason}，不再尝试其他提供方")
                self._emit(EventType.INVOCATION_FATAL, capability=cap.value, operation=operation,
                           provider=provider, tenant_id=context.tenant_id, reason=outcome.reason,
                           error_kind=outcome.error_kind.value if outcome.error_kind else None)
                return InvocationResult(cap, operation, outcome, sequence, attempts)

            record = AttemptRecord(provider, outcome.reason, outcome.error_kind, elapsed)
            attempts.append(record)
            remaining = len(sequence) - index - 1
            logger.warning(f"{tag} 提供方 {provider} 可恢复失败: {outcome.reason}，剩余 {remaining} 个提供方")
            self._emit(EventType.ATTEMPT_FAILED, capability=cap.value, operation=operation,
                       tenant_id=context.tenant_id, **record.to_dict())
            last = outcome

        logger.error(f"{tag} 所有提供方均失败: {[a.provider for a in attempts]}")
        self._emit(EventType.INVOCATION_EXHAUSTED, capability=cap.value, operation=operation,
                   tenant_id=context.tenant_id, attempts=[a.to_dict() for a in attempts])
        return InvocationResult(cap, operation, last, sequence, attempts)

    # === 内部方法 ===

    def _check_operation(self, capability: CapabilityLike, operation: str) -> Capability:
        try:
            cap = as_capability(capability)
        except ValueError:
            raise UnknownCapabilityError(str(capability))
        contract = self._catalog.get(cap)
        if not contract.has_operation(operation):
            raise UnknownOperationError(cap.value, operation)
        return cap

    def _attempt(self, cap: Capability, provider: str, operation: str,
                 args: Mapping[str, Any], timeout: Optional[float]) -> InvocationOutcome:
        """单次尝试：取适配器、限时调用、分类结果"""
        try:
            adapter = self._registry.get(cap, provider)
        except ProviderInitError as e:
            return InvocationOutcome.recoverable(e.message, ErrorKind.UNAVAILABLE, e)

        finished, outcome = call_with_timeout(
            run_operation, adapter, operation, args, self._classifier,
            timeout=timeout, name=f"capcore_attempt_{provider}"
        )
        if not finished:
            return InvocationOutcome.recoverable(f"尝试超时（{timeout}s）", ErrorKind.TIMEOUT)
        return outcome

    def _emit(self, event_type: EventType, **data) -> None:
        if self._events is not None:
            self._events.emit(event_type, source="invoker", **data)
