# -*- coding: utf-8 -*-
"""
配置验证模块
启动时验证策略与注册表、契约的一致性，未知提供方在这里被发现而不是在请求路径上
"""

from typing import List, Optional, Tuple

from loguru import logger

from capcore.adapters.registry import AdapterRegistry
from capcore.contracts.catalog import ContractCatalog
from capcore.exceptions import (
    ConfigurationError,
    NoProviderConfiguredError,
    UnknownCapabilityError,
    UnknownProviderError,
)
from capcore.resolution.policy import PolicySnapshot


class ConfigValidator:
    """配置验证器"""

    def __init__(self, snapshot: PolicySnapshot, registry: AdapterRegistry,
                 catalog: Optional[ContractCatalog] = None, require_verified: bool = False):
        self.snapshot = snapshot
        self.registry = registry
        self.catalog = catalog or ContractCatalog()
        self.require_verified = require_verified
        self.errors: List[ConfigurationError] = []
        self.warnings: List[str] = []

    def validate_all(self) -> Tuple[bool, List[ConfigurationError], List[str]]:
        """
        验证所有配置

        Returns:
            (是否通过, 错误列表, 警告列表)
        """
        self.errors = []
        self.warnings = []

        self._validate_contracts()
        self._validate_references()
        self._validate_defaults()
        self._validate_verification()
        self._validate_unused()

        is_valid = len(self.errors) == 0
        return is_valid, self.errors, self.warnings

    def _validate_contracts(self) -> None:
        """策略中的能力必须有契约"""
        for cap in self.snapshot.capabilities():
            if cap not in self.catalog:
                self.errors.append(UnknownCapabilityError(cap.value))

    def _validate_references(self) -> None:
        """策略引用的提供方必须已注册"""
        for cap in self.snapshot.capabilities():
            for name in self.snapshot.get(cap).provider_names():
                if not self.registry.contains(cap, name):
                    self.errors.append(UnknownProviderError(cap.value, name))

    def _validate_defaults(self) -> None:
        """没有默认提供方的能力只能依赖规则，未命中时会在调用时报错"""
        for cap in self.snapshot.capabilities():
            policy = self.snapshot.get(cap)
            if policy.default is None:
                if not policy.rules:
                    self.errors.append(NoProviderConfiguredError(cap.value))
                else:
                    self.warnings.append(f"能力 '{cap.value}' 没有默认提供方，规则未命中的调用会失败")

    def _validate_verification(self) -> None:
        """被策略引用的适配器应已通过契约校验"""
        for cap in self.snapshot.capabilities():
            for name in self.snapshot.get(cap).provider_names():
                if not self.registry.contains(cap, name) or self.registry.is_verified(cap, name):
                    continue
                report = self.registry.verification(cap, name)
                message = f"适配器 '{cap.value}/{name}' " + ("未通过契约校验" if report else "尚未进行契约校验")
                if self.require_verified:
                    self.errors.append(ConfigurationError(message, {"capability": cap.value, "provider": name}))
                else:
                    self.warnings.append(message)

    def _validate_unused(self) -> None:
        """已注册但没有被任何策略引用的提供方"""
        for cap in self.registry.capabilities():
            policy = self.snapshot.get(cap)
            referenced = set(policy.provider_names()) if policy else set()
            for name in self.registry.list_providers(cap):
                if name not in referenced:
                    self.warnings.append(f"提供方 '{cap.value}/{name}' 已注册但未被策略引用")


def validate_on_startup(snapshot: PolicySnapshot, registry: AdapterRegistry,
                        catalog: Optional[ContractCatalog] = None,
                        require_verified: bool = False) -> List[str]:
    """
    启动时验证配置

    Returns:
        警告列表

    Raises:
        ConfigurationError: 第一个配置错误（其余错误已记录日志）
    """
    validator = ConfigValidator(snapshot, registry, catalog, require_verified)
    is_valid, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"[配置警告] {warning}")

    for error in errors:
        logger.error(f"[配置错误] {error.message}")

    if not is_valid:
        raise errors[0]

    logger.info(f"[配置] 验证通过（{len(snapshot.capabilities())} 个能力，{len(warnings)} 条警告）")
    return warnings
