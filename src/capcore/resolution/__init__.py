"""
解析层
根据租户配置与实验分组决定每次调用使用哪个提供方
"""

from .policy import (
    ResolutionContext,
    Predicate,
    SelectionRule,
    CapabilityPolicy,
    PolicySnapshot,
    tenant_in,
    flag_equals,
    all_of,
    any_of,
)
from .store import PolicyStore
from .resolver import Resolver

__all__ = [
    "ResolutionContext",
    "Predicate",
    "SelectionRule",
    "CapabilityPolicy",
    "PolicySnapshot",
    "tenant_in",
    "flag_equals",
    "all_of",
    "any_of",
    "PolicyStore",
    "Resolver",
]
