# -*- coding: utf-8 -*-
"""
内置能力契约

五个能力的契约都在此处定义。
新增能力只需在 CONTRACTS 中添加契约即可。
"""

from typing import Dict, List, Optional

from capcore.capabilities import Capability, CapabilityLike, ErrorKind
from capcore.exceptions import UnknownCapabilityError
from .types import CapabilityContract, OperationSpec, Shape, required, optional


E = ErrorKind


# ==================== 认证 ====================

AUTH_CONTRACT = CapabilityContract.build(
    Capability.AUTH, "1.0.0",
    OperationSpec(
        name="sign_up",
        description="创建用户",
        input=Shape({"email": required(str), "password": required(str), "metadata": optional(dict)}),
        output=Shape({"user_id": required(str), "email": required(str)}),
        errors=frozenset({E.INVALID_INPUT, E.CONFLICT, E.RATE_LIMITED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="sign_in",
        description="登录并签发会话",
        input=Shape({"email": required(str), "password": required(str)}),
        output=Shape({"user_id": required(str), "access_token": required(str), "expires_in": required(int)}),
        errors=frozenset({E.INVALID_INPUT, E.UNAUTHORIZED, E.RATE_LIMITED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="sign_out",
        description="注销会话",
        input=Shape({"access_token": required(str)}),
        output=Shape({"revoked": required(bool)}),
        errors=frozenset({E.INVALID_INPUT, E.UNAUTHORIZED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="get_user",
        description="查询用户",
        input=Shape({"user_id": required(str)}),
        output=Shape({"user_id": required(str), "email": required(str), "metadata": optional(dict)}),
        errors=frozenset({E.INVALID_INPUT, E.NOT_FOUND, E.UNAVAILABLE, E.TIMEOUT}),
    ),
)


# ==================== 支付 ====================

PAYMENTS_CONTRACT = CapabilityContract.build(
    Capability.PAYMENTS, "1.0.0",
    OperationSpec(
        name="create_charge",
        description="扣款",
        input=Shape({
            "amount": required(int, description="最小货币单位"),
            "currency": required(str),
            "source": required(str),
            "idempotency_key": optional(str),
            "metadata": optional(dict),
        }),
        output=Shape({"charge_id": required(str), "status": required(str), "amount": required(int)}),
        errors=frozenset({E.INVALID_INPUT, E.DECLINED, E.RATE_LIMITED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="refund",
        description="退款",
        input=Shape({"charge_id": required(str), "amount": optional(int)}),
        output=Shape({"refund_id": required(str), "status": required(str)}),
        errors=frozenset({E.INVALID_INPUT, E.NOT_FOUND, E.CONFLICT, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="get_charge",
        description="查询扣款",
        input=Shape({"charge_id": required(str)}),
        output=Shape({"charge_id": required(str), "status": required(str), "amount": required(int)}),
        errors=frozenset({E.INVALID_INPUT, E.NOT_FOUND, E.UNAVAILABLE, E.TIMEOUT}),
    ),
)


# ==================== 通知 ====================

NOTIFICATIONS_CONTRACT = CapabilityContract.build(
    Capability.NOTIFICATIONS, "1.0.0",
    OperationSpec(
        name="send_email",
        description="发送邮件",
        input=Shape({"to": required(str), "subject": required(str), "body": required(str)}),
        output=Shape({"message_id": required(str), "accepted": required(bool)}),
        errors=frozenset({E.INVALID_INPUT, E.RATE_LIMITED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="send_sms",
        description="发送短信",
        input=Shape({"to": required(str), "body": required(str)}),
        output=Shape({"message_id": required(str), "accepted": required(bool)}),
        errors=frozenset({E.INVALID_INPUT, E.RATE_LIMITED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="send_push",
        description="发送推送",
        input=Shape({"device_token": required(str), "title": required(str), "body": required(str),
                     "data": optional(dict)}),
        output=Shape({"message_id": required(str), "accepted": required(bool)}),
        errors=frozenset({E.INVALID_INPUT, E.NOT_FOUND, E.RATE_LIMITED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
)


# ==================== 存储 ====================

STORAGE_CONTRACT = CapabilityContract.build(
    Capability.STORAGE, "1.0.0",
    OperationSpec(
        name="put_object",
        description="写入对象",
        input=Shape({"bucket": required(str), "key": required(str), "content": required(bytes),
                     "content_type": optional(str)}),
        output=Shape({"key": required(str), "size": required(int), "etag": optional(str)}),
        errors=frozenset({E.INVALID_INPUT, E.UNAUTHORIZED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="get_object",
        description="读取对象",
        input=Shape({"bucket": required(str), "key": required(str)}),
        output=Shape({"key": required(str), "content": required(bytes), "content_type": optional(str)}),
        errors=frozenset({E.INVALID_INPUT, E.NOT_FOUND, E.UNAUTHORIZED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="delete_object",
        description="删除对象",
        input=Shape({"bucket": required(str), "key": required(str)}),
        output=Shape({"deleted": required(bool)}),
        errors=frozenset({E.INVALID_INPUT, E.NOT_FOUND, E.UNAUTHORIZED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="signed_url",
        description="生成带签名的临时访问地址",
        input=Shape({"bucket": required(str), "key": required(str), "expires_in": required(int)}),
        output=Shape({"url": required(str), "expires_in": required(int)}),
        errors=frozenset({E.INVALID_INPUT, E.NOT_FOUND, E.UNAVAILABLE, E.TIMEOUT}),
    ),
)


# ==================== 搜索 ====================

SEARCH_CONTRACT = CapabilityContract.build(
    Capability.SEARCH, "1.0.0",
    OperationSpec(
        name="index_document",
        description="写入或更新文档",
        input=Shape({"index": required(str), "document_id": required(str), "document": required(dict)}),
        output=Shape({"document_id": required(str), "indexed": required(bool)}),
        errors=frozenset({E.INVALID_INPUT, E.RATE_LIMITED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="query",
        description="全文检索",
        input=Shape({"index": required(str), "text": required(str), "limit": optional(int),
                     "filters": optional(dict)}),
        output=Shape({"hits": required(list), "total": required(int)}),
        errors=frozenset({E.INVALID_INPUT, E.NOT_FOUND, E.RATE_LIMITED, E.UNAVAILABLE, E.TIMEOUT}),
    ),
    OperationSpec(
        name="delete_document",
        description="删除文档",
        input=Shape({"index": required(str), "document_id": required(str)}),
        output=Shape({"deleted": required(bool)}),
        errors=frozenset({E.INVALID_INPUT, E.NOT_FOUND, E.UNAVAILABLE, E.TIMEOUT}),
    ),
)


# ==================== Catalog API ====================

CONTRACTS: Dict[Capability, CapabilityContract] = {
    Capability.AUTH: AUTH_CONTRACT,
    Capability.PAYMENTS: PAYMENTS_CONTRACT,
    Capability.NOTIFICATIONS: NOTIFICATIONS_CONTRACT,
    Capability.STORAGE: STORAGE_CONTRACT,
    Capability.SEARCH: SEARCH_CONTRACT,
}


class ContractCatalog:
    """
    契约目录

    默认包含内置的五个契约；测试或扩展时可以传入自定义契约
    """

    def __init__(self, contracts: Optional[Dict[Capability, CapabilityContract]] = None):
        self._contracts: Dict[Capability, CapabilityContract] = dict(
            CONTRACTS if contracts is None else contracts
        )

    def get(self, capability: CapabilityLike) -> CapabilityContract:
        """
        获取能力契约

        Raises:
            UnknownCapabilityError: 能力未定义
        """
        try:
            key = Capability(str(capability))
        except ValueError:
            raise UnknownCapabilityError(str(capability))
        contract = self._contracts.get(key)
        if contract is None:
            raise UnknownCapabilityError(key.value)
        return contract

    def __contains__(self, capability) -> bool:
        try:
            return Capability(str(capability)) in self._contracts
        except ValueError:
            return False

    def capabilities(self) -> List[Capability]:
        return list(self._contracts.keys())

    def all(self) -> List[CapabilityContract]:
        return list(self._contracts.values())


def get_contract(capability: CapabilityLike) -> CapabilityContract:
    """获取内置契约"""
    return ContractCatalog().get(capability)
