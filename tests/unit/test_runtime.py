# -*- coding: utf-8 -*-
"""
能力运行时与调用入口测试
"""

import sys
from pathlib import Path

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import pytest

from capcore import CapabilityRuntime, __version__
from capcore.adapters import AdapterRegistry
from capcore.capabilities import ErrorKind
from capcore.config import CapcoreSettings, parse_policy
from capcore.exceptions import FatalFailure, UnknownProviderError
from capcore.resolution import ResolutionContext

from fakes import CONFORMING_ADAPTERS, InMemoryPayments, recoverable


POLICY = {
    "policies": {
        "payments": {
            "default": "stripe",
            "rules": [{"provider": "pagseguro", "tenants": ["tenant-br"]}],
            "fallback": ["stripe", "adyen"],
        },
        "storage": {"default": "s3"},
    }
}


def _settings(**overrides):
    return CapcoreSettings(default_timeout_seconds=0, **overrides)


@pytest.fixture
def runtime():
    registry = AdapterRegistry()
    registry.register("payments", "stripe", InMemoryPayments)
    registry.register("payments", "pagseguro", InMemoryPayments)
    registry.register("payments", "adyen", InMemoryPayments)
    registry.register("storage", "s3", CONFORMING_ADAPTERS["storage"])
    rt = CapabilityRuntime(registry, parse_policy(POLICY), settings=_settings())
    yield rt
    rt.shutdown()


class TestCapabilityClient:
    """调用入口测试"""

    def test_version(self):
        assert __version__

    def test_operations_restricted_to_contract(self, runtime):
        payments = runtime.client("payments")

        assert payments.operations == ["create_charge", "refund", "get_charge"]
        with pytest.raises(AttributeError):
            payments.send_email

    def test_client_is_cached(self, runtime):
        assert runtime.client("payments") is runtime.client("payments")

    def test_invoke_through_client(self, runtime):
        payments = runtime.client("payments")

        charge = payments.create_charge({"amount": 500, "currency": "brl", "source": "tok_visa"},
                                        context=ResolutionContext(tenant_id="tenant-br"))
        pagseguro = runtime.registry.get("payments", "pagseguro")

        assert charge["charge_id"] in pagseguro.charges
        assert runtime.registry.get_state("payments", "stripe").value == "uninitialized"

    def test_fatal_failure_surfaces(self, runtime):
        with pytest.raises(FatalFailure) as exc_info:
            runtime.client("payments").create_charge({"amount": -5, "currency": "usd", "source": "tok_visa"})
        assert exc_info.value.kind == ErrorKind.INVALID_INPUT

    def test_storage_round_trip(self, runtime):
        storage = runtime.client("storage")
        storage.put_object({"bucket": "b", "key": "k", "content": b"data"})
        assert storage.get_object({"bucket": "b", "key": "k"})["content"] == b"data"

    def test_invoke_outcome(self, runtime):
        runtime.registry.replace("payments", "stripe", recoverable)
        result = runtime.invoke_outcome("payments", "create_charge",
                                        {"amount": 100, "currency": "usd", "source": "tok_visa"})
        assert result.provider == "adyen"
        assert [a.provider for a in result.attempts] == ["stripe"]


class TestRuntimeAdministration:
    """管理操作测试"""

    def test_reload_policy(self, runtime):
        previous = runtime.reload_policy(parse_policy({"policies": {"payments": {"default": "adyen"}}}),
                                         validate=False)

        assert previous.get("storage") is not None
        assert runtime.resolver.resolve("payments") == ("adyen",)
        assert runtime.policy.version == previous.version + 1

    def test_reload_rejects_unknown_provider(self, runtime):
        """校验失败时保持原策略"""
        before = runtime.policy
        with pytest.raises(UnknownProviderError):
            runtime.reload_policy(parse_policy({"policies": {"payments": {"default": "paypal"}}}))
        assert runtime.policy is before

    def test_load_policy_file(self, runtime, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("policies:\n  payments:\n    default: adyen\n", encoding="utf-8")

        snapshot = runtime.load_policy_file(path)

        assert snapshot.source == str(path)
        assert runtime.resolver.resolve("payments") == ("adyen",)

    def test_verify_all(self, runtime):
        matrix = runtime.verify_all()
        assert matrix.passed
        assert len(matrix.all_reports()) == 4
        ok, errors, warnings = runtime.validate()
        assert ok and errors == [] and warnings == []

    def test_shutdown_releases_adapters(self, runtime):
        stripe = runtime.registry.get("payments", "stripe")
        runtime.shutdown()
        assert stripe.closed

    def test_from_settings(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("policies:\n  payments:\n    default: stripe\n", encoding="utf-8")
        registry = AdapterRegistry()
        registry.register("payments", "stripe", InMemoryPayments)

        rt = CapabilityRuntime.from_settings(registry, _settings(policy_path=str(path), require_verified=True))

        assert registry.is_verified("payments", "stripe")
        assert rt.client("payments").get_charge
        rt.shutdown()

    def test_from_settings_rejects_unknown_provider(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text('{"policies": {"payments": {"default": "paypal"}}}', encoding="utf-8")

        with pytest.raises(UnknownProviderError):
            CapabilityRuntime.from_settings(AdapterRegistry(), _settings(policy_path=str(path)))
