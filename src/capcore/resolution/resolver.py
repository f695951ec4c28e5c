# -*- coding: utf-8 -*-
"""解析器：根据租户与实验标记决定首选提供方与回退链"""

from typing import Optional, Tuple

from loguru import logger

from capcore.capabilities import CapabilityLike, as_capability
from capcore.exceptions import NoProviderConfiguredError, UnknownCapabilityError
from .policy import PolicySnapshot, ResolutionContext
from .store import PolicyStore


class Resolver:
    """解析器

    不持有可变状态，不需要加锁；同一上下文与同一快照的解析结果是确定的。
    """

    def __init__(self, store: PolicyStore):
        self._store = store

    @property
    def store(self) -> PolicyStore:
        return self._store

    def resolve(self, capability: CapabilityLike,
                context: Optional[ResolutionContext] = None) -> Tuple[str, ...]:
        """解析提供方序列

        1. 按配置顺序评估选择谓词，第一个命中的规则决定首选；都不命中则用默认提供方
        2. 追加回退链，去掉与首选重复的名称，保持链的顺序

        Args:
            capability: 能力
            context: 解析上下文

        Returns:
            非空的提供方名称序列：首选 + 回退链

        Raises:
            NoProviderConfiguredError: 没有默认提供方且没有规则命中
        """
        try:
            cap = as_capability(capability)
        except ValueError:
            raise UnknownCapabilityError(str(capability))

        context = context or ResolutionContext()
        snapshot: PolicySnapshot = self._store.current()
        policy = snapshot.get(cap)
        if policy is None:
            raise NoProviderConfiguredError(cap.value, context.tenant_id)

        primary = None
        for rule in policy.rules:
            if rule.matches(context):
                primary = rule.provider
                logger.debug(f"[{cap.value}] 规则命中: {rule.describe()} -> {primary}")
                break

        if primary is None:
            primary = policy.default
        if primary is None:
            raise NoProviderConfiguredError(cap.value, context.tenant_id)

        sequence = (primary,) + tuple(name for name in policy.fallback if name != primary)
        logger.debug(f"[{cap.value}] 租户 {context.tenant_id} 解析结果: {list(sequence)} (策略 v{snapshot.version})")
        return sequence
