# -*- coding: utf-8 -*-
"""
能力契约类型定义

契约只做描述：每个操作的输入结构、输出结构与声明的错误类型。
载荷本身对核心来说是不透明的，这里只描述契约校验所需的结构。
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from capcore.capabilities import Capability, ErrorKind


@dataclass(frozen=True)
class FieldSpec:
    """字段定义"""
    types: Tuple[type, ...]
    required: bool = True
    description: str = ""

    def type_names(self) -> List[str]:
        return [t.__name__ for t in self.types]


def required(*types: type, description: str = "") -> FieldSpec:
    """必填字段"""
    return FieldSpec(types=tuple(types), required=True, description=description)


def optional(*types: type, description: str = "") -> FieldSpec:
    """可选字段"""
    return FieldSpec(types=tuple(types), required=False, description=description)


@dataclass(frozen=True)
class Shape:
    """
    载荷结构

    载荷必须是 Mapping；只检查声明的字段，多余字段允许存在
    """
    fields: Mapping[str, FieldSpec] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def validate(self, value: Any) -> List[str]:
        """
        校验载荷

        Returns:
            问题列表，空列表表示匹配
        """
        if not isinstance(value, Mapping):
            return [f"期望 mapping，实际为 {type(value).__name__}"]

        problems = []
        for name, spec in self.fields.items():
            if name not in value:
                if spec.required:
                    problems.append(f"缺少必填字段 '{name}'")
                continue
            item = value[name]
            if item is None and not spec.required:
                continue
            # bool 是 int 的子类，声明 int 时不接受 bool
            if isinstance(item, bool) and bool not in spec.types:
                problems.append(f"字段 '{name}' 类型错误: 期望 {spec.type_names()}，实际为 bool")
                continue
            if not isinstance(item, spec.types):
                problems.append(
                    f"字段 '{name}' 类型错误: 期望 {spec.type_names()}，实际为 {type(item).__name__}"
                )
        return problems

    def matches(self, value: Any) -> bool:
        return not self.validate(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: {"types": spec.type_names(), "required": spec.required}
            for name, spec in self.fields.items()
        }


@dataclass(frozen=True)
class OperationSpec:
    """操作定义：(输入结构, 输出结构, 声明的错误类型)"""
    name: str
    input: Shape
    output: Shape
    errors: FrozenSet[ErrorKind] = frozenset()
    description: str = ""

    def declares(self, kind: ErrorKind) -> bool:
        return kind in self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input": self.input.to_dict(),
            "output": self.output.to_dict(),
            "errors": sorted(k.value for k in self.errors),
        }


@dataclass(frozen=True)
class CapabilityContract:
    """
    能力契约（带版本）

    同一能力的所有提供方都必须满足同一份契约，
    这样解析器才能把它们视为可互换的
    """
    capability: Capability
    version: str
    operations: Mapping[str, OperationSpec]

    def __post_init__(self):
        object.__setattr__(self, "operations", MappingProxyType(dict(self.operations)))

    @classmethod
    def build(cls, capability: Capability, version: str, *operations: OperationSpec) -> "CapabilityContract":
        return cls(capability, version, {op.name: op for op in operations})

    @property
    def operation_names(self) -> List[str]:
        return list(self.operations.keys())

    def operation(self, name: str) -> Optional[OperationSpec]:
        return self.operations.get(name)

    def has_operation(self, name: str) -> bool:
        return name in self.operations

    @property
    def major_version(self) -> int:
        return int(self.version.split(".")[0])

    def breaking_changes(self, newer: "CapabilityContract") -> List[str]:
        """
        检测从当前版本到 newer 的破坏性变更

        破坏性变更包括：
        - 删除操作
        - 删除或改变类型的输出字段（调用方依赖输出）
        - 新增必填输入字段，或把可选输入字段改为必填
        - 删除已声明的错误类型（调用方可能在处理它）
        """
        changes = []
        for name, old_op in self.operations.items():
            new_op = newer.operation(name)
            if new_op is None:
                changes.append(f"删除操作 '{name}'")
                continue

            for field_name, old_field in old_op.output.fields.items():
                new_field = new_op.output.fields.get(field_name)
                if new_field is None:
                    changes.append(f"{name}: 删除输出字段 '{field_name}'")
                elif not set(new_field.types) <= set(old_field.types):
                    changes.append(f"{name}: 输出字段 '{field_name}' 类型变更")
                elif old_field.required and not new_field.required:
                    changes.append(f"{name}: 输出字段 '{field_name}' 变为可选")

            for field_name, new_field in new_op.input.fields.items():
                old_field = old_op.input.fields.get(field_name)
                if new_field.required and (old_field is None or not old_field.required):
                    changes.append(f"{name}: 输入字段 '{field_name}' 变为必填")

            for kind in sorted(old_op.errors - new_op.errors, key=lambda k: k.value):
                changes.append(f"{name}: 删除错误类型 '{kind.value}'")
        return changes

    def is_compatible_with(self, newer: "CapabilityContract") -> bool:
        return self.capability == newer.capability and not self.breaking_changes(newer)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capability": self.capability.value,
            "version": self.version,
            "operations": [op.to_dict() for op in self.operations.values()],
        }
