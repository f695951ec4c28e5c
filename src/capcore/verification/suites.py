# -*- coding: utf-8 -*-
"""
契约一致性用例

每个能力一套用例，同一能力的所有提供方复用。
用例按声明顺序执行，后面的用例可以引用前面成功用例的输出（例如先注册再查询）。

约定的测试夹具（适配器在沙箱模式下需要识别）：
- MISSING_ID: 不存在的资源 ID，查询类操作应返回 NOT_FOUND
- DECLINED_SOURCE: 必定被拒的支付来源，扣款应返回 DECLINED
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from capcore.capabilities import Capability, CapabilityLike, ErrorKind, as_capability


MISSING_ID = "capcore-conformance-missing"
DECLINED_SOURCE = "tok_capcore_declined"
VALID_SOURCE = "tok_capcore_visa"

PayloadBuilder = Callable[[Dict[str, Any]], Mapping[str, Any]]


@dataclass(frozen=True)
class ConformanceCase:
    """单条用例

    Attributes:
        name: 用例名称（套件内唯一，后续用例通过它引用输出）
        operation: 操作名称
        payload: 载荷，或根据已成功用例输出构造载荷的函数
        expect: None 表示期望成功；否则期望的错误类型
    """
    name: str
    operation: str
    payload: Union[Mapping[str, Any], PayloadBuilder]
    expect: Optional[ErrorKind] = None
    description: str = ""

    def build_payload(self, results: Dict[str, Any]) -> Mapping[str, Any]:
        if callable(self.payload):
            return self.payload(results)
        return self.payload

    @property
    def expects_success(self) -> bool:
        return self.expect is None


@dataclass(frozen=True)
class ConformanceSuite:
    """某个能力的用例集合"""
    capability: Capability
    cases: List[ConformanceCase] = field(default_factory=list)

    def covered_operations(self) -> List[str]:
        names = []
        for case in self.cases:
            if case.operation not in names:
                names.append(case.operation)
        return names


def _ok(name: str, operation: str, payload, description: str = "") -> ConformanceCase:
    return ConformanceCase(name, operation, payload, None, description)


def _err(name: str, operation: str, payload, kind: ErrorKind, description: str = "") -> ConformanceCase:
    return ConformanceCase(name, operation, payload, kind, description)


E = ErrorKind


AUTH_SUITE = ConformanceSuite(Capability.AUTH, [
    _ok("sign_up", "sign_up", {"email": "conformance@example.com", "password": "s3cret-Passw0rd"}),
    _err("sign_up_invalid", "sign_up", {"email": "", "password": ""}, E.INVALID_INPUT, "空邮箱与密码"),
    _ok("sign_in", "sign_in", {"email": "conformance@example.com", "password": "s3cret-Passw0rd"}),
    _err("sign_in_wrong_password", "sign_in", {"email": "conformance@example.com", "password": "wrong"},
         E.UNAUTHORIZED),
    _ok("get_user", "get_user", lambda r: {"user_id": r["sign_up"]["user_id"]}),
    _err("get_user_missing", "get_user", {"user_id": MISSING_ID}, E.NOT_FOUND),
    _ok("sign_out", "sign_out", lambda r: {"access_token": r["sign_in"]["access_token"]}),
    _err("sign_out_invalid", "sign_out", {}, E.INVALID_INPUT, "缺少 access_token"),
])


PAYMENTS_SUITE = ConformanceSuite(Capability.PAYMENTS, [
    _ok("create_charge", "create_charge", {"amount": 1000, "currency": "usd", "source": VALID_SOURCE}),
    _err("create_charge_invalid", "create_charge", {"amount": -1, "currency": "usd", "source": VALID_SOURCE},
         E.INVALID_INPUT, "负金额"),
    _err("create_charge_declined", "create_charge", {"amount": 1000, "currency": "usd", "source": DECLINED_SOURCE},
         E.DECLINED),
    _ok("get_charge", "get_charge", lambda r: {"charge_id": r["create_charge"]["charge_id"]}),
    _err("get_charge_missing", "get_charge", {"charge_id": MISSING_ID}, E.NOT_FOUND),
    _ok("refund", "refund", lambda r: {"charge_id": r["create_charge"]["charge_id"]}),
    _err("refund_missing", "refund", {"charge_id": MISSING_ID}, E.NOT_FOUND),
])


NOTIFICATIONS_SUITE = ConformanceSuite(Capability.NOTIFICATIONS, [
    _ok("send_email", "send_email", {"to": "conformance@example.com", "subject": "hello", "body": "hi"}),
    _err("send_email_invalid", "send_email", {"to": "", "subject": "hello", "body": "hi"}, E.INVALID_INPUT),
    _ok("send_sms", "send_sms", {"to": "+15005550006", "body": "hi"}),
    _err("send_sms_invalid", "send_sms", {"body": "hi"}, E.INVALID_INPUT, "缺少收件人"),
    _ok("send_push", "send_push", {"device_token": "conformance-device", "title": "hello", "body": "hi"}),
    _err("send_push_missing_device", "send_push", {"device_token": MISSING_ID, "title": "hello", "body": "hi"},
         E.NOT_FOUND),
])


STORAGE_SUITE = ConformanceSuite(Capability.STORAGE, [
    _ok("put_object", "put_object", {"bucket": "conformance", "key": "hello.txt", "content": b"hello",
                                     "content_type": "text/plain"}),
    _err("put_object_invalid", "put_object", {"bucket": "", "key": "", "content": b""}, E.INVALID_INPUT),
    _ok("get_object", "get_object", {"bucket": "conformance", "key": "hello.txt"}),
    _err("get_object_missing", "get_object", {"bucket": "conformance", "key": MISSING_ID}, E.NOT_FOUND),
    _ok("signed_url", "signed_url", {"bucket": "conformance", "key": "hello.txt", "expires_in": 60}),
    _ok("delete_object", "delete_object", {"bucket": "conformance", "key": "hello.txt"}),
    _err("delete_object_missing", "delete_object", {"bucket": "conformance", "key": MISSING_ID}, E.NOT_FOUND),
])


SEARCH_SUITE = ConformanceSuite(Capability.SEARCH, [
    _ok("index_document", "index_document", {"index": "conformance", "document_id": "doc-1",
                                             "document": {"title": "hello world"}}),
    _err("index_document_invalid", "index_document", {"index": "conformance", "document_id": "",
                                                      "document": {}}, E.INVALID_INPUT),
    _ok("query", "query", {"index": "conformance", "text": "hello", "limit": 10}),
    _err("query_missing_index", "query", {"index": MISSING_ID, "text": "hello"}, E.NOT_FOUND),
    _ok("delete_document", "delete_document", {"index": "conformance", "document_id": "doc-1"}),
    _err("delete_document_missing", "delete_document", {"index": "conformance", "document_id": MISSING_ID},
         E.NOT_FOUND),
])


DEFAULT_SUITES: Dict[Capability, ConformanceSuite] = {
    Capability.AUTH: AUTH_SUITE,
    Capability.PAYMENTS: PAYMENTS_SUITE,
    Capability.NOTIFICATIONS: NOTIFICATIONS_SUITE,
    Capability.STORAGE: STORAGE_SUITE,
    Capability.SEARCH: SEARCH_SUITE,
}


def get_suite(capability: CapabilityLike) -> ConformanceSuite:
    """获取内置用例集（未定义的能力返回空套件）"""
    cap = as_capability(capability)
    return DEFAULT_SUITES.get(cap, ConformanceSuite(cap))
