"""
适配器注册表
以 (能力, 提供方名称) 为键管理适配器工厂与实例，支持并发安全的延迟构造
"""

import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from capcore.capabilities import Capability, CapabilityLike, as_capability
from capcore.events import EventBus, EventType
from capcore.exceptions import (
    ConfigurationError,
    DuplicateProviderError,
    ProviderInitError,
    UnknownCapabilityError,
    UnknownProviderError,
)
from .lifecycle import LifecycleState, release_adapter


# 适配器工厂：无参可调用对象，凭证等提供方配置在构造时注入
AdapterFactory = Callable[[], Any]


@dataclass
class _Entry:
    """注册表条目"""
    capability: Capability
    provider: str
    factory: AdapterFactory
    instance: Any = None
    state: LifecycleState = LifecycleState.UNINITIALIZED
    pending: Optional[Future] = None
    constructions: int = 0
    last_error: str = ""
    verification: Any = None
    registered_at: datetime = field(default_factory=datetime.now)


class AdapterRegistry:
    """
    适配器注册表

    - 每个 (能力, 提供方) 同一时刻只有一个适配器实例
    - 首次 get 时延迟构造；并发的首次 get 只会触发一次构造，
      其余调用方等待同一个进行中的构造结果
    - 构造失败不会被缓存，下一次 get 会重新构造
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        self._entries: Dict[Tuple[Capability, str], _Entry] = {}
        self._lock = threading.Lock()
        self._events = event_bus

    # === 注册 ===

    def register(self, capability: CapabilityLike, provider: str, factory: AdapterFactory) -> None:
        """
        注册适配器工厂

        Args:
            capability: 能力
            provider: 提供方名称（在能力内唯一）
            factory: 适配器工厂

        Raises:
            DuplicateProviderError: (能力, 提供方) 已注册
        """
        key = self._key(capability, provider)
        if not callable(factory):
            raise ConfigurationError(f"适配器工厂不可调用: {provider}", {"provider": provider})

        with self._lock:
            if key in self._entries:
                raise DuplicateProviderError(key[0].value, provider)
            self._entries[key] = _Entry(capability=key[0], provider=provider, factory=factory)

        logger.info(f"注册适配器: {key[0].value}/{provider}")
        self._emit(EventType.ADAPTER_REGISTERED, capability=key[0].value, provider=provider)

    def replace(self, capability: CapabilityLike, provider: str, factory: AdapterFactory) -> None:
        """
        热替换适配器（管理操作，不在请求路径上）
        旧实例会被关闭，新实例在下次 get 时构造

        Raises:
            UnknownProviderError: 未注册
        """
        key = self._key(capability, provider)
        with self._lock:
            old = self._entries.get(key)
            if old is None:
                raise UnknownProviderError(key[0].value, provider)
            old.state = LifecycleState.SHUTDOWN
            instance, old.instance = old.instance, None
            self._entries[key] = _Entry(capability=key[0], provider=provider, factory=factory)

        logger.info(f"替换适配器: {key[0].value}/{provider}")
        self._release(key, instance)

    def unregister(self, capability: CapabilityLike, provider: str) -> None:
        """移除适配器并关闭实例"""
        key = self._key(capability, provider)
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                raise UnknownProviderError(key[0].value, provider)
            entry.state = LifecycleState.SHUTDOWN
            instance, entry.instance = entry.instance, None

        logger.info(f"移除适配器: {key[0].value}/{provider}")
        self._release(key, instance)

    # === 获取 ===

    def get(self, capability: CapabilityLike, provider: str) -> Any:
        """
        获取适配器实例（首次使用时构造）

        Raises:
            UnknownProviderError: 未注册
            ProviderInitError: 构造失败
        """
        key = self._key(capability, provider)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                raise UnknownProviderError(key[0].value, provider)
            if entry.state == LifecycleState.READY:
                return entry.instance

            if entry.pending is not None:
                future = entry.pending
                owner = False
            else:
                future = Future()
                entry.pending = future
                entry.state = LifecycleState.INITIALIZING
                owner = True

        if owner:
            self._construct(entry, future)
        else:
            logger.debug(f"等待进行中的构造: {key[0].value}/{provider}")

        return future.result()

    def _construct(self, entry: _Entry, future: Future) -> None:
        """执行一次构造，并把结果交给所有等待者"""
        name = f"{entry.capability.value}/{entry.provider}"
        logger.info(f"构造适配器: {name}")

        try:
            instance = entry.factory()
            if instance is None:
                raise ValueError("工厂返回了 None")
        except Exception as e:
            error = ProviderInitError(
                entry.capability.value, entry.provider, f"适配器构造失败: {name}, 错误: {e}"
            )
            error.__cause__ = e
            with self._lock:
                entry.pending = None
                if entry.state != LifecycleState.SHUTDOWN:
                    entry.state = LifecycleState.UNHEALTHY
                entry.last_error = str(e)
            logger.error(f"适配器构造失败: {name}, 错误: {e}")
            self._emit(EventType.ADAPTER_INIT_FAILED, capability=entry.capability.value,
                       provider=entry.provider, error=str(e))
            future.set_exception(error)
            return

        with self._lock:
            entry.pending = None
            entry.constructions += 1
            discarded = entry.state == LifecycleState.SHUTDOWN
            if not discarded:
                entry.instance = instance
                entry.state = LifecycleState.READY
                entry.last_error = ""

        if discarded:
            # 构造期间条目已被替换或移除
            logger.warning(f"适配器在构造期间被移除，丢弃实例: {name}")
            self._release((entry.capability, entry.provider), instance)
            future.set_exception(ProviderInitError(
                entry.capability.value, entry.provider, f"适配器在构造期间被移除: {name}"
            ))
            return

        logger.info(f"适配器就绪: {name}")
        self._emit(EventType.ADAPTER_CONSTRUCTED, capability=entry.capability.value, provider=entry.provider)
        future.set_result(instance)

    # === 查询 ===

    def list_providers(self, capability: CapabilityLike) -> List[str]:
        """列出能力已注册的提供方名称（按注册顺序）"""
        cap = self._capability(capability)
        with self._lock:
            return [provider for (c, provider) in self._entries if c == cap]

    def contains(self, capability: CapabilityLike, provider: str) -> bool:
        try:
            key = self._key(capability, provider)
        except UnknownCapabilityError:
            return False
        with self._lock:
            return key in self._entries

    def capabilities(self) -> List[Capability]:
        """有已注册提供方的能力"""
        with self._lock:
            seen = []
            for cap, _ in self._entries:
                if cap not in seen:
                    seen.append(cap)
            return seen

    def get_state(self, capability: CapabilityLike, provider: str) -> LifecycleState:
        return self._entry(capability, provider).state

    def construction_count(self, capability: CapabilityLike, provider: str) -> int:
        return self._entry(capability, provider).constructions

    def describe(self) -> List[Dict[str, Any]]:
        """
        列出所有条目（用于诊断）

        Returns:
            条目信息列表
        """
        with self._lock:
            entries = list(self._entries.values())

        result = []
        for entry in entries:
            report = entry.verification
            result.append({
                "capability": entry.capability.value,
                "provider": entry.provider,
                "state": entry.state.value,
                "constructions": entry.constructions,
                "last_error": entry.last_error,
                "verified": None if report is None else bool(report.passed),
                "registered_at": entry.registered_at.isoformat(),
            })
        return result

    # === 契约校验记录 ===

    def record_verification(self, capability: CapabilityLike, provider: str, report: Any) -> None:
        """记录最近一次契约校验报告（管理操作）"""
        entry = self._entry(capability, provider)
        with self._lock:
            entry.verification = report
        if not report.passed:
            logger.warning(f"适配器未通过契约校验: {entry.capability.value}/{provider}")

    def verification(self, capability: CapabilityLike, provider: str) -> Any:
        return self._entry(capability, provider).verification

    def is_verified(self, capability: CapabilityLike, provider: str) -> bool:
        report = self.verification(capability, provider)
        return report is not None and report.passed

    # === 关闭 ===

    def shutdown_all(self) -> None:
        """关闭所有已构造的适配器"""
        logger.info("关闭所有适配器...")
        with self._lock:
            to_release = []
            for key, entry in self._entries.items():
                if entry.instance is not None:
                    to_release.append((key, entry.instance))
                entry.instance = None
                entry.state = LifecycleState.SHUTDOWN

        for key, instance in to_release:
            self._release(key, instance)

    # === 内部方法 ===

    def _release(self, key: Tuple[Capability, str], instance: Any) -> None:
        if instance is None:
            return
        name = f"{key[0].value}/{key[1]}"
        try:
            release_adapter(instance)
            logger.info(f"适配器已关闭: {name}")
        except Exception as e:
            logger.error(f"适配器关闭失败: {name}, 错误: {e}")
        self._emit(EventType.ADAPTER_SHUTDOWN, capability=key[0].value, provider=key[1])

    def _entry(self, capability: CapabilityLike, provider: str) -> _Entry:
        key = self._key(capability, provider)
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            raise UnknownProviderError(key[0].value, provider)
        return entry

    @staticmethod
    def _capability(capability: CapabilityLike) -> Capability:
        try:
            return as_capability(capability)
        except ValueError:
            raise UnknownCapabilityError(str(capability))

    def _key(self, capability: CapabilityLike, provider: str) -> Tuple[Capability, str]:
        if not isinstance(provider, str) or not provider:
            raise ConfigurationError(f"提供方名称无效: {provider!r}", {"provider": provider})
        return self._capability(capability), provider

    def _emit(self, event_type: EventType, **data) -> None:
        if self._events is not None:
            self._events.emit(event_type, source="registry", **data)
