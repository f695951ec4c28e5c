# -*- coding: utf-8 -*-
"""
解析策略定义

每个能力一份策略：有序的 (提供方, 选择谓词) 规则、默认提供方、有序的回退链。
策略快照加载后只读，重新加载通过整体替换快照完成。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from capcore.capabilities import Capability, CapabilityLike, as_capability
from capcore.exceptions import InvalidPolicyError


@dataclass(frozen=True)
class ResolutionContext:
    """解析上下文（每次调用创建，不持久化）"""
    tenant_id: Optional[str] = None
    flags: Mapping[str, Any] = field(default_factory=dict)
    capability: Optional[Capability] = None

    def __post_init__(self):
        object.__setattr__(self, "flags", MappingProxyType(dict(self.flags)))
        if self.capability is not None:
            object.__setattr__(self, "capability", as_capability(self.capability))

    def flag(self, name: str, default: Any = None) -> Any:
        return self.flags.get(name, default)

    def for_capability(self, capability: CapabilityLike) -> ResolutionContext:
        """返回指定了能力的上下文副本"""
        return replace(self, capability=as_capability(capability))


# 选择谓词：上下文的纯函数
Predicate = Callable[[ResolutionContext], bool]


def tenant_in(*tenant_ids: str) -> Predicate:
    """租户属于给定集合"""
    allowed = frozenset(tenant_ids)

    def predicate(context: ResolutionContext) -> bool:
        return context.tenant_id in allowed

    predicate.__name__ = f"tenant_in{sorted(allowed)}"
    return predicate


def flag_equals(name: str, value: Any) -> Predicate:
    """实验标记等于给定值"""
    def predicate(context: ResolutionContext) -> bool:
        return name in context.flags and context.flags[name] == value

    predicate.__name__ = f"flag_equals[{name}={value!r}]"
    return predicate


def all_of(*predicates: Predicate) -> Predicate:
    """所有谓词都命中（空集合视为命中）"""
    def predicate(context: ResolutionContext) -> bool:
        return all(p(context) for p in predicates)

    predicate.__name__ = "all_of[" + ", ".join(getattr(p, "__name__", "?") for p in predicates) + "]"
    return predicate


def any_of(*predicates: Predicate) -> Predicate:
    """任一谓词命中"""
    def predicate(context: ResolutionContext) -> bool:
        return any(p(context) for p in predicates)

    predicate.__name__ = "any_of[" + ", ".join(getattr(p, "__name__", "?") for p in predicates) + "]"
    return predicate


@dataclass(frozen=True)
class SelectionRule:
    """选择规则：谓词命中时使用 provider 作为首选"""
    provider: str
    predicate: Predicate
    description: str = ""

    def matches(self, context: ResolutionContext) -> bool:
        return bool(self.predicate(context))

    def describe(self) -> str:
        return self.description or getattr(self.predicate, "__name__", "predicate")


@dataclass(frozen=True)
class CapabilityPolicy:
    """
    单个能力的解析策略

    Raises:
        InvalidPolicyError: 回退链重复、提供方名称为空
    """
    capability: Capability
    default: Optional[str] = None
    rules: Tuple[SelectionRule, ...] = ()
    fallback: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "capability", as_capability(self.capability))
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "fallback", tuple(self.fallback))

        cap = self.capability.value
        if self.default is not None and (not isinstance(self.default, str) or not self.default):
            raise InvalidPolicyError(f"能力 '{cap}' 的默认提供方无效", {"capability": cap})
        for rule in self.rules:
            if not isinstance(rule.provider, str) or not rule.provider:
                raise InvalidPolicyError(f"能力 '{cap}' 存在无效的规则提供方", {"capability": cap})
            if not callable(rule.predicate):
                raise InvalidPolicyError(f"能力 '{cap}' 的规则谓词不可调用", {"capability": cap})

        seen = set()
        for name in self.fallback:
            if not isinstance(name, str) or not name:
                raise InvalidPolicyError(f"能力 '{cap}' 的回退链包含无效名称", {"capability": cap})
            if name in seen:
                raise InvalidPolicyError(
                    f"能力 '{cap}' 的回退链重复包含 '{name}'",
                    {"capability": cap, "provider": name}
                )
            seen.add(name)

    def provider_names(self) -> List[str]:
        """策略引用的所有提供方名称（去重，保持出现顺序）"""
        names = []
        candidates = [r.provider for r in self.rules] + list(self.fallback)
        if self.default:
            candidates.insert(0, self.default)
        for name in candidates:
            if name not in names:
                names.append(name)
        return names

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capability": self.capability.value,
            "default": self.default,
            "rules": [{"provider": r.provider, "when": r.describe()} for r in self.rules],
            "fallback": list(self.fallback),
        }


@dataclass(frozen=True)
class PolicySnapshot:
    """策略快照（不可变）"""
    policies: Mapping[Capability, CapabilityPolicy] = field(default_factory=dict)
    version: int = 0
    source: str = ""

    def __post_init__(self):
        normalized = {}
        for key, policy in dict(self.policies).items():
            cap = as_capability(key)
            if policy.capability != cap:
                raise InvalidPolicyError(
                    f"策略键 '{cap.value}' 与策略能力 '{policy.capability.value}' 不一致",
                    {"capability": cap.value}
                )
            normalized[cap] = policy
        object.__setattr__(self, "policies", MappingProxyType(normalized))

    @classmethod
    def of(cls, *policies: CapabilityPolicy, source: str = "") -> PolicySnapshot:
        return cls({p.capability: p for p in policies}, source=source)

    def get(self, capability: CapabilityLike) -> Optional[CapabilityPolicy]:
        try:
            return self.policies.get(as_capability(capability))
        except ValueError:
            return None

    def capabilities(self) -> List[Capability]:
        return list(self.policies.keys())

    def with_version(self, version: int) -> PolicySnapshot:
        return replace(self, version=version)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "source": self.source,
            "policies": [p.to_dict() for p in self.policies.values()],
        }
