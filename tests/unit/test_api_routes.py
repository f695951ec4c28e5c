# -*- coding: utf-8 -*-
"""
诊断API路由单元测试
"""

import sys
from pathlib import Path

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from capcore.adapters import AdapterRegistry
from capcore.api import create_app
from capcore.config import CapcoreSettings, parse_policy
from capcore.runtime import CapabilityRuntime

from fakes import CountingFactory, InMemoryPayments


@pytest.fixture
def client():
    registry = AdapterRegistry()
    registry.register("payments", "stripe", InMemoryPayments)
    registry.register("payments", "adyen", CountingFactory(fail_times=100))
    snapshot = parse_policy({"policies": {"payments": {
        "default": "stripe",
        "rules": [{"provider": "adyen", "tenants": ["tenant-eu"]}],
        "fallback": ["stripe"],
    }}})
    runtime = CapabilityRuntime(registry, snapshot, settings=CapcoreSettings())
    with TestClient(create_app(runtime)) as test_client:
        yield test_client
    runtime.shutdown()


class TestDiagnosticsAPI:
    """诊断接口测试"""

    def test_list_contracts(self, client):
        response = client.get("/api/capcore/contracts")

        assert response.status_code == 200
        contracts = {c["capability"]: c for c in response.json()["contracts"]}
        assert set(contracts) == {"auth", "payments", "notifications", "storage", "search"}
        names = [op["name"] for op in contracts["payments"]["operations"]]
        assert names == ["create_charge", "refund", "get_charge"]

    def test_list_providers(self, client):
        response = client.get("/api/capcore/providers")

        assert response.status_code == 200
        providers = response.json()["providers"]
        assert [p["provider"] for p in providers] == ["stripe", "adyen"]
        assert all(p["state"] == "uninitialized" for p in providers)

    def test_get_policy(self, client):
        response = client.get("/api/capcore/policy")

        assert response.status_code == 200
        data = response.json()
        assert data["version"] == 1
        assert data["policies"][0]["default"] == "stripe"
        assert data["policies"][0]["rules"][0]["provider"] == "adyen"

    def test_resolve(self, client):
        response = client.post("/api/capcore/resolve", json={"capability": "payments", "tenant_id": "tenant-eu"})

        assert response.status_code == 200
        assert response.json()["sequence"] == ["adyen", "stripe"]

    def test_resolve_without_policy(self, client):
        """配置错误返回结构化的 400 响应"""
        response = client.post("/api/capcore/resolve", json={"capability": "search"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "NO_PROVIDER_CONFIGURED"

    def test_verify(self, client):
        response = client.post("/api/capcore/verify")

        assert response.status_code == 200
        data = response.json()
        assert data["passed"] is False
        rows = {r["provider"]: r for r in data["rows"]}
        assert rows["stripe"]["passed"] is True
        assert rows["adyen"]["failed_operations"] == ["*"]

        providers = client.get("/api/capcore/providers").json()["providers"]
        verified = {p["provider"]: p["verified"] for p in providers}
        assert verified == {"stripe": True, "adyen": False}
