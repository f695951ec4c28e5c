# -*- coding: utf-8 -*-
"""
能力运行时

把注册表、策略存储、解析器、调用器、校验器组装在一起，作为调用方的唯一入口。
调用方只按能力和操作调用，从不指定供应商：

    runtime = CapabilityRuntime(registry, snapshot)
    payments = runtime.client("payments")
    charge = payments.create_charge({"amount": 1000, "currency": "usd", "source": token},
                                    context=ResolutionContext(tenant_id="tenant-br"))
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger

from capcore.adapters.registry import AdapterRegistry
from capcore.capabilities import CapabilityLike
from capcore.config.loader import load_policy_file
from capcore.config.settings import CapcoreSettings, get_settings
from capcore.config.validation import ConfigValidator, validate_on_startup
from capcore.contracts.catalog import ContractCatalog
from capcore.events import EventBus
from capcore.invocation.invoker import InvocationResult, ResilientInvoker, USE_DEFAULT_TIMEOUT
from capcore.invocation.outcome import FailureClassifier, classify_exception
from capcore.resolution.policy import PolicySnapshot, ResolutionContext
from capcore.resolution.resolver import Resolver
from capcore.resolution.store import PolicyStore
from capcore.utils.concurrency import CancelToken
from capcore.verification.verifier import ContractVerifier, VerificationMatrix


class CapabilityClient:
    """
    单个能力的调用入口

    操作集合就是契约的操作集合，契约外的名称访问时抛出 AttributeError
    """

    def __init__(self, runtime: CapabilityRuntime, capability: CapabilityLike):
        self._runtime = runtime
        self._contract = runtime.catalog.get(capability)

    @property
    def capability(self):
        return self._contract.capability

    @property
    def operations(self) -> List[str]:
        return self._contract.operation_names

    def __getattr__(self, name: str):
        # 私有属性不走代理，避免在初始化前递归
        if name.startswith("_"):
            raise AttributeError(name)
        if not self._contract.has_operation(name):
            raise AttributeError(f"能力 '{self._contract.capability.value}' 没有操作 '{name}'")

        def operation(payload: Mapping[str, Any], context: Optional[ResolutionContext] = None,
                      timeout: Any = USE_DEFAULT_TIMEOUT, cancel_token: Optional[CancelToken] = None) -> Any:
            return self._runtime.invoke(self._contract.capability, name, payload, context, timeout, cancel_token)

        operation.__name__ = name
        operation.__doc__ = self._contract.operation(name).description
        return operation

    def __dir__(self):
        return list(super().__dir__()) + self.operations

    def __repr__(self):
        return f"CapabilityClient({self._contract.capability.value})"


class CapabilityRuntime:
    """能力运行时（通过注入传给调用方，不是全局单例）"""

    def __init__(
        self,
        registry: AdapterRegistry,
        policy: Union[PolicySnapshot, PolicyStore, None] = None,
        settings: Optional[CapcoreSettings] = None,
        catalog: Optional[ContractCatalog] = None,
        event_bus: Optional[EventBus] = None,
        classifier: FailureClassifier = classify_exception,
    ):
        """
        Args:
            registry: 适配器注册表
            policy: 策略快照或策略存储
            settings: 运行时配置（默认读取环境变量）
            catalog: 契约目录
            event_bus: 诊断事件总线
            classifier: 失败分类器
        """
        self.settings = settings or get_settings()
        self.catalog = catalog or ContractCatalog()
        self.events = event_bus or EventBus()
        self.registry = registry

        if isinstance(policy, PolicyStore):
            self.policy_store = policy
        else:
            self.policy_store = PolicyStore(policy, event_bus=self.events)

        self.resolver = Resolver(self.policy_store)
        self.invoker = ResilientInvoker(
            self.resolver,
            self.registry,
            catalog=self.catalog,
            default_timeout=self.settings.attempt_timeout,
            classifier=classifier,
            event_bus=self.events,
        )
        self.verifier = ContractVerifier(self.catalog, event_bus=self.events)
        self._clients: Dict[str, CapabilityClient] = {}

    @classmethod
    def from_settings(cls, registry: AdapterRegistry, settings: Optional[CapcoreSettings] = None,
                      **kwargs) -> CapabilityRuntime:
        """
        按配置创建运行时：加载策略文件并执行启动校验

        Raises:
            InvalidPolicyError: 策略文件无效
            ConfigurationError: 启动校验失败
        """
        settings = settings or get_settings()
        snapshot = load_policy_file(settings.policy_path) if settings.policy_path else PolicySnapshot()
        runtime = cls(registry, snapshot, settings=settings, **kwargs)
        if settings.require_verified:
            runtime.verify_all()
        runtime.validate(raise_on_error=True)
        return runtime

    # === 调用 ===

    def client(self, capability: CapabilityLike) -> CapabilityClient:
        key = str(capability)
        client = self._clients.get(key)
        if client is None:
            client = CapabilityClient(self, capability)
            self._clients[key] = client
        return client

    def invoke(self, capability: CapabilityLike, operation: str, args: Mapping[str, Any],
               context: Optional[ResolutionContext] = None, timeout: Any = USE_DEFAULT_TIMEOUT,
               cancel_token: Optional[CancelToken] = None) -> Any:
        return self.invoker.invoke(capability, operation, args, context, timeout, cancel_token)

    def invoke_outcome(self, capability: CapabilityLike, operation: str, args: Mapping[str, Any],
                       context: Optional[ResolutionContext] = None, timeout: Any = USE_DEFAULT_TIMEOUT,
                       cancel_token: Optional[CancelToken] = None) -> InvocationResult:
        return self.invoker.invoke_outcome(capability, operation, args, context, timeout, cancel_token)

    # === 管理操作 ===

    @property
    def policy(self) -> PolicySnapshot:
        return self.policy_store.current()

    def reload_policy(self, snapshot: PolicySnapshot, validate: bool = True) -> PolicySnapshot:
        """
        替换策略快照（进行中的调用继续使用旧快照）

        Args:
            snapshot: 新快照
            validate: 替换前是否校验提供方引用

        Returns:
            被替换的旧快照

        Raises:
            ConfigurationError: 新快照校验失败（此时不会替换）
        """
        if validate:
            validate_on_startup(snapshot, self.registry, self.catalog, self.settings.require_verified)
        return self.policy_store.swap(snapshot)

    def load_policy_file(self, path: Union[str, Path], validate: bool = True) -> PolicySnapshot:
        """从文件加载策略并替换"""
        snapshot = load_policy_file(path)
        self.reload_policy(snapshot, validate=validate)
        return self.policy

    def verify_all(self, record: bool = True) -> VerificationMatrix:
        """对注册表中所有适配器运行契约校验"""
        return self.verifier.verify_registry(self.registry, record=record)

    def validate(self, raise_on_error: bool = False):
        """
        校验当前策略与注册表的一致性

        Returns:
            raise_on_error 为 False 时返回 (是否通过, 错误列表, 警告列表)，否则返回警告列表
        """
        if raise_on_error:
            return validate_on_startup(self.policy, self.registry, self.catalog, self.settings.require_verified)
        validator = ConfigValidator(self.policy, self.registry, self.catalog, self.settings.require_verified)
        return validator.validate_all()

    def shutdown(self) -> None:
        """关闭所有适配器"""
        logger.info("关闭能力运行时...")
        self.registry.shutdown_all()
