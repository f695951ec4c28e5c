# -*- coding: utf-8 -*-
"""
策略文件加载

支持 JSON 与 YAML，结构用 Pydantic 模型校验：

    policies:
      payments:
        default: stripe
        rules:
          - provider: pagseguro
            tenants: [tenant-br]
          - provider: adyen
            flags: {payments_vendor: adyen}
        fallback: [stripe, adyen]
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from capcore.capabilities import as_capability
from capcore.exceptions import InvalidPolicyError
from capcore.resolution.policy import (
    CapabilityPolicy,
    PolicySnapshot,
    SelectionRule,
    all_of,
    flag_equals,
    tenant_in,
)


class RuleModel(BaseModel):
    """选择规则"""
    provider: str = Field(..., min_length=1, description="命中时使用的提供方")
    tenants: List[str] = Field(default_factory=list, description="租户 ID 列表（任一命中）")
    flags: Dict[str, Any] = Field(default_factory=dict, description="实验标记（全部命中）")
    description: str = Field("", description="规则说明")


class CapabilityPolicyModel(BaseModel):
    """单个能力的策略"""
    default: Optional[str] = Field(None, description="默认提供方")
    rules: List[RuleModel] = Field(default_factory=list, description="有序选择规则")
    fallback: List[str] = Field(default_factory=list, description="有序回退链")


class PolicyFileModel(BaseModel):
    """策略文件"""
    policies: Dict[str, CapabilityPolicyModel] = Field(..., description="能力 -> 策略")


def _build_rule(capability: str, index: int, model: RuleModel) -> SelectionRule:
    predicates = []
    if model.tenants:
        predicates.append(tenant_in(*model.tenants))
    for name, value in model.flags.items():
        predicates.append(flag_equals(name, value))

    if not predicates:
        raise InvalidPolicyError(
            f"能力 '{capability}' 的第 {index + 1} 条规则没有任何条件",
            {"capability": capability, "rule": index}
        )

    predicate = predicates[0] if len(predicates) == 1 else all_of(*predicates)
    return SelectionRule(model.provider, predicate, model.description)


def parse_policy(data: Dict[str, Any], source: str = "") -> PolicySnapshot:
    """
    从字典构造策略快照

    Raises:
        InvalidPolicyError: 结构无效、能力未知、回退链重复
    """
    try:
        parsed = PolicyFileModel.model_validate(data)
    except ValidationError as e:
        raise InvalidPolicyError(f"策略结构无效: {source or 'inline'}", {"errors": e.errors()})

    policies = []
    for cap_name, model in parsed.policies.items():
        try:
            cap = as_capability(cap_name)
        except ValueError:
            raise InvalidPolicyError(f"策略引用了未知能力 '{cap_name}'", {"capability": cap_name})

        rules = tuple(_build_rule(cap.value, i, r) for i, r in enumerate(model.rules))
        policies.append(CapabilityPolicy(cap, model.default, rules, tuple(model.fallback)))

    return PolicySnapshot.of(*policies, source=source)


def load_policy_file(path: Union[str, Path]) -> PolicySnapshot:
    """
    从文件加载策略快照

    Args:
        path: .json / .yaml / .yml 文件

    Raises:
        InvalidPolicyError: 文件不存在、格式不支持或内容无效
    """
    config_file = Path(path)
    if not config_file.exists():
        raise InvalidPolicyError(f"策略文件不存在: {config_file}", {"path": str(config_file)})

    suffix = config_file.suffix.lower()
    text = config_file.read_text(encoding="utf-8")
    try:
        if suffix == ".json":
            data = json.loads(text)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            raise InvalidPolicyError(f"不支持的策略文件格式: {suffix}", {"path": str(config_file)})
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InvalidPolicyError(f"策略文件解析失败: {config_file}: {e}", {"path": str(config_file)})

    if not isinstance(data, dict):
        raise InvalidPolicyError(f"策略文件顶层必须是对象: {config_file}", {"path": str(config_file)})

    snapshot = parse_policy(data, source=str(config_file))
    logger.info(f"策略加载成功: {config_file}（{len(snapshot.capabilities())} 个能力）")
    return snapshot
