# -*- coding: utf-8 -*-
"""
诊断 API 数据模型

使用 Field 提供字段描述，增强 API 文档。
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OperationInfo(BaseModel):
    """契约操作"""
    name: str = Field(..., description="操作名称")
    description: str = Field("", description="操作说明")
    input: Dict[str, Any] = Field(default_factory=dict, description="输入结构")
    output: Dict[str, Any] = Field(default_factory=dict, description="输出结构")
    errors: List[str] = Field(default_factory=list, description="声明的错误类型")


class ContractInfo(BaseModel):
    """能力契约"""
    capability: str = Field(..., description="能力")
    version: str = Field(..., description="契约版本")
    operations: List[OperationInfo] = Field(default_factory=list, description="操作列表")


class ContractsResponse(BaseModel):
    """契约列表响应"""
    contracts: List[ContractInfo]


class ProviderInfo(BaseModel):
    """注册表条目"""
    capability: str = Field(..., description="能力")
    provider: str = Field(..., description="提供方名称")
    state: str = Field(..., description="生命周期状态")
    constructions: int = Field(0, description="构造次数")
    last_error: str = Field("", description="最近一次构造错误")
    verified: Optional[bool] = Field(None, description="契约校验结果（None 表示未校验）")
    registered_at: Optional[str] = Field(None, description="注册时间")


class ProvidersResponse(BaseModel):
    """提供方列表响应"""
    providers: List[ProviderInfo]


class RuleInfo(BaseModel):
    provider: str
    when: str


class PolicyInfo(BaseModel):
    """单个能力的策略"""
    capability: str
    default: Optional[str] = None
    rules: List[RuleInfo] = Field(default_factory=list)
    fallback: List[str] = Field(default_factory=list)


class PolicyResponse(BaseModel):
    """当前策略快照"""
    version: int = Field(..., description="快照版本")
    source: str = Field("", description="来源文件")
    policies: List[PolicyInfo] = Field(default_factory=list)


class ResolveRequest(BaseModel):
    """解析请求（只解析，不调用适配器）"""
    capability: str = Field(..., description="能力")
    tenant_id: Optional[str] = Field(None, description="租户 ID")
    flags: Dict[str, Any] = Field(default_factory=dict, description="实验标记")


class ResolveResponse(BaseModel):
    capability: str
    sequence: List[str] = Field(..., description="首选 + 回退链")


class VerificationRow(BaseModel):
    """校验矩阵的一行"""
    capability: str
    provider: str
    contract_version: str
    passed: bool
    checks: int
    failures: int
    failed_operations: List[str] = Field(default_factory=list)


class VerifyResponse(BaseModel):
    """校验矩阵响应"""
    passed: bool = Field(..., description="是否全部通过")
    rows: List[VerificationRow] = Field(default_factory=list)
