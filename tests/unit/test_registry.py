# -*- coding: utf-8 -*-
"""
适配器注册表单元测试
"""

import sys
import threading
from pathlib import Path

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import pytest

from capcore.adapters import AdapterRegistry, LifecycleState, release_adapter
from capcore.capabilities import Capability
from capcore.events import EventBus, EventType
from capcore.exceptions import (
    ConfigurationError,
    DuplicateProviderError,
    ProviderInitError,
    UnknownCapabilityError,
    UnknownProviderError,
)

from fakes import CountingFactory, InMemoryPayments, ScriptedAdapter


class TestRegistration:
    """注册测试"""

    def test_register_and_list(self):
        registry = AdapterRegistry()
        registry.register("payments", "stripe", InMemoryPayments)
        registry.register("payments", "adyen", InMemoryPayments)

        assert registry.list_providers("payments") == ["stripe", "adyen"]
        assert registry.list_providers("auth") == []
        assert registry.contains("payments", "stripe")
        assert not registry.contains("payments", "paypal")

    def test_duplicate_registration(self):
        """同一 (能力, 提供方) 不能重复注册"""
        registry = AdapterRegistry()
        registry.register("payments", "stripe", InMemoryPayments)

        with pytest.raises(DuplicateProviderError):
            registry.register("payments", "stripe", InMemoryPayments)

    def test_same_name_different_capability(self):
        """提供方名称只需在能力内唯一"""
        registry = AdapterRegistry()
        registry.register("auth", "acme", ScriptedAdapter)
        registry.register("storage", "acme", ScriptedAdapter)
        assert registry.capabilities() == [Capability.AUTH, Capability.STORAGE]

    def test_invalid_registration(self):
        registry = AdapterRegistry()
        with pytest.raises(UnknownCapabilityError):
            registry.register("video", "vimeo", ScriptedAdapter)
        with pytest.raises(ConfigurationError):
            registry.register("payments", "", ScriptedAdapter)
        with pytest.raises(ConfigurationError):
            registry.register("payments", "stripe", "not-callable")

    def test_register_emits_event(self):
        bus = EventBus()
        seen = []
        bus.subscribe(EventType.ADAPTER_REGISTERED, seen.append)

        registry = AdapterRegistry(event_bus=bus)
        registry.register("payments", "stripe", InMemoryPayments)

        assert len(seen) == 1
        assert seen[0].data == {"capability": "payments", "provider": "stripe"}


class TestGet:
    """获取与延迟构造测试"""

    def test_get_returns_same_instance(self):
        """两次 get 返回同一实例"""
        factory = CountingFactory()
        registry = AdapterRegistry()
        registry.register("payments", "stripe", factory)

        first = registry.get("payments", "stripe")
        second = registry.get("payments", "stripe")

        assert first is second
        assert factory.calls == 1
        assert registry.get_state("payments", "stripe") == LifecycleState.READY

    def test_lazy_construction(self):
        """注册时不构造"""
        factory = CountingFactory()
        registry = AdapterRegistry()
        registry.register("payments", "stripe", factory)

        assert factory.calls == 0
        assert registry.get_state("payments", "stripe") == LifecycleState.UNINITIALIZED

    def test_unknown_provider(self):
        registry = AdapterRegistry()
        with pytest.raises(UnknownProviderError):
            registry.get("payments", "stripe")

    def test_init_failure_not_cached(self):
        """构造失败抛出 ProviderInitError，下一次 get 重新构造"""
        factory = CountingFactory(fail_times=1)
        registry = AdapterRegistry()
        registry.register("payments", "stripe", factory)

        with pytest.raises(ProviderInitError) as exc_info:
            registry.get("payments", "stripe")
        assert exc_info.value.provider == "stripe"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert registry.get_state("payments", "stripe") == LifecycleState.UNHEALTHY

        adapter = registry.get("payments", "stripe")
        assert adapter is not None
        assert factory.calls == 2
        assert registry.construction_count("payments", "stripe") == 1

    def test_factory_returning_none(self):
        registry = AdapterRegistry()
        registry.register("payments", "stripe", lambda: None)
        with pytest.raises(ProviderInitError):
            registry.get("payments", "stripe")

    def test_concurrent_first_use_constructs_once(self):
        """N 个并发首次使用只触发一次构造"""
        factory = CountingFactory(delay=0.05)
        registry = AdapterRegistry()
        registry.register("payments", "stripe", factory)

        workers = 16
        barrier = threading.Barrier(workers)
        results = []
        errors = []

        def use():
            barrier.wait()
            try:
                results.append(registry.get("payments", "stripe"))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=use) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert factory.calls == 1
        assert len(results) == workers
        assert all(r is results[0] for r in results)

    def test_concurrent_waiters_share_init_failure(self):
        """并发等待者都收到同一次构造失败"""
        factory = CountingFactory(delay=0.05, fail_times=100)
        registry = AdapterRegistry()
        registry.register("payments", "stripe", factory)

        workers = 8
        barrier = threading.Barrier(workers)
        errors = []

        def use():
            barrier.wait()
            try:
                registry.get("payments", "stripe")
            except ProviderInitError as e:
                errors.append(e)

        threads = [threading.Thread(target=use) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == workers
        # 少数线程可能在第一次失败后才进入 get，从而触发新的构造
        assert factory.calls < workers


class TestLifecycle:
    """替换、移除与关闭测试"""

    def test_replace_releases_old_instance(self):
        registry = AdapterRegistry()
        registry.register("payments", "stripe", ScriptedAdapter)
        old = registry.get("payments", "stripe")

        registry.replace("payments", "stripe", InMemoryPayments)
        new = registry.get("payments", "stripe")

        assert old.closed
        assert isinstance(new, InMemoryPayments)

    def test_replace_unknown(self):
        registry = AdapterRegistry()
        with pytest.raises(UnknownProviderError):
            registry.replace("payments", "stripe", InMemoryPayments)

    def test_unregister(self):
        registry = AdapterRegistry()
        registry.register("payments", "stripe", InMemoryPayments)
        adapter = registry.get("payments", "stripe")

        registry.unregister("payments", "stripe")

        assert adapter.closed
        assert not registry.contains("payments", "stripe")
        with pytest.raises(UnknownProviderError):
            registry.get("payments", "stripe")

    def test_shutdown_all(self):
        registry = AdapterRegistry()
        registry.register("payments", "stripe", InMemoryPayments)
        registry.register("payments", "adyen", InMemoryPayments)
        stripe = registry.get("payments", "stripe")

        registry.shutdown_all()

        assert stripe.closed
        assert registry.get_state("payments", "stripe") == LifecycleState.SHUTDOWN
        assert registry.get_state("payments", "adyen") == LifecycleState.SHUTDOWN

    def test_release_adapter_prefers_shutdown(self):
        adapter = ScriptedAdapter()
        assert release_adapter(adapter) is True
        assert adapter.closed
        assert release_adapter(object()) is False

    def test_describe(self):
        registry = AdapterRegistry()
        registry.register("payments", "stripe", InMemoryPayments)
        registry.get("payments", "stripe")

        rows = registry.describe()
        assert len(rows) == 1
        assert rows[0]["capability"] == "payments"
        assert rows[0]["state"] == "ready"
        assert rows[0]["constructions"] == 1
        assert rows[0]["verified"] is None
