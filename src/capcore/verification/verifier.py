# -*- coding: utf-8 -*-
"""
契约校验器

对任意实现了某能力的适配器运行该能力的一致性用例，输出逐条断言的通过/失败报告。
失败是数据而不是异常，调用方可以对所有适配器运行并汇总成矩阵。
不在请求路径上运行。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from capcore.adapters.registry import AdapterRegistry
from capcore.capabilities import Capability, CapabilityLike, as_capability
from capcore.contracts.catalog import ContractCatalog
from capcore.contracts.types import OperationSpec
from capcore.events import EventBus, EventType
from capcore.exceptions import ProviderFailure, ProviderInitError, UnknownCapabilityError
from capcore.invocation.outcome import InvocationOutcome, run_operation
from capcore.utils.concurrency import call_with_timeout
from .suites import ConformanceCase, ConformanceSuite, get_suite


@dataclass(frozen=True)
class AssertionResult:
    """单条断言结果"""
    operation: str
    check: str
    passed: bool
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "check": self.check,
            "passed": self.passed,
            "detail": self.detail,
        }


@dataclass
class VerificationReport:
    """单个适配器的校验报告"""
    capability: Capability
    provider: str
    contract_version: str
    results: List[AssertionResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return bool(self.results) and all(r.passed for r in self.results)

    @property
    def failures(self) -> List[AssertionResult]:
        return [r for r in self.results if not r.passed]

    @property
    def failed_operations(self) -> List[str]:
        names = []
        for r in self.failures:
            if r.operation not in names:
                names.append(r.operation)
        return names

    def summary(self) -> str:
        total = len(self.results)
        failed = len(self.failures)
        status = "通过" if self.passed else "未通过"
        return f"{self.capability.value}/{self.provider} v{self.contract_version}: {status} ({total - failed}/{total})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capability": self.capability.value,
            "provider": self.provider,
            "contract_version": self.contract_version,
            "passed": self.passed,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class VerificationMatrix:
    """多个适配器的汇总结果：能力 -> 提供方 -> 报告"""
    reports: Dict[Capability, Dict[str, VerificationReport]] = field(default_factory=dict)

    def add(self, report: VerificationReport) -> None:
        self.reports.setdefault(report.capability, {})[report.provider] = report

    def get(self, capability: CapabilityLike, provider: str) -> Optional[VerificationReport]:
        return self.reports.get(as_capability(capability), {}).get(provider)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.all_reports())

    def all_reports(self) -> List[VerificationReport]:
        return [r for by_provider in self.reports.values() for r in by_provider.values()]

    def failing(self) -> List[VerificationReport]:
        return [r for r in self.all_reports() if not r.passed]

    def to_rows(self) -> List[Dict[str, Any]]:
        """展开为表格行（用于外部报告）"""
        return [
            {
                "capability": r.capability.value,
                "provider": r.provider,
                "contract_version": r.contract_version,
                "passed": r.passed,
                "checks": len(r.results),
                "failures": len(r.failures),
                "failed_operations": r.failed_operations,
            }
            for r in self.all_reports()
        ]


class ContractVerifier:
    """契约校验器"""

    def __init__(
        self,
        catalog: Optional[ContractCatalog] = None,
        suites: Optional[Dict[Capability, ConformanceSuite]] = None,
        case_timeout: Optional[float] = None,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Args:
            catalog: 契约目录
            suites: 自定义用例集（未提供的能力使用内置用例）
            case_timeout: 单条用例超时（秒）
            event_bus: 诊断事件总线
        """
        self._catalog = catalog or ContractCatalog()
        self._suites = dict(suites or {})
        self._case_timeout = case_timeout
        self._events = event_bus

    def suite_for(self, capability: CapabilityLike) -> ConformanceSuite:
        cap = as_capability(capability)
        return self._suites.get(cap) or get_suite(cap)

    def verify(self, capability: CapabilityLike, adapter: Any, provider: Optional[str] = None) -> VerificationReport:
        """
        校验单个适配器

        Args:
            capability: 能力
            adapter: 适配器实例
            provider: 提供方名称（仅用于报告）

        Returns:
            校验报告（不会因为断言失败而抛出异常）
        """
        try:
            cap = as_capability(capability)
        except ValueError:
            raise UnknownCapabilityError(str(capability))

        contract = self._catalog.get(cap)
        provider = provider or type(adapter).__name__
        report = VerificationReport(cap, provider, contract.version)

        present = set()
        for name in contract.operation_names:
            ok = callable(getattr(adapter, name, None))
            report.results.append(AssertionResult(name, "present", ok, "" if ok else f"缺少操作 '{name}'"))
            if ok:
                present.add(name)

        outputs: Dict[str, Any] = {}
        for case in self.suite_for(cap).cases:
            op = contract.operation(case.operation)
            if op is None:
                report.results.append(AssertionResult(case.operation, case.name, False,
                                                      "用例引用了契约外的操作"))
                continue
            if case.operation not in present:
                continue
            report.results.append(self._run_case(adapter, op, case, outputs))

        logger.info(f"[契约校验] {report.summary()}")
        for failure in report.failures:
            logger.warning(f"[契约校验] {cap.value}/{provider} {failure.operation}.{failure.check}: {failure.detail}")

        if self._events is not None:
            self._events.emit(EventType.VERIFICATION_COMPLETED, source="verifier",
                              capability=cap.value, provider=provider, passed=report.passed,
                              failures=[f.to_dict() for f in report.failures])
        return report

    def verify_registry(self, registry: AdapterRegistry, record: bool = True) -> VerificationMatrix:
        """
        校验注册表中的所有适配器

        构造失败的适配器记为失败报告，不会中断其他适配器的校验

        Args:
            registry: 适配器注册表
            record: 是否把报告写回注册表

        Returns:
            汇总矩阵
        """
        matrix = VerificationMatrix()
        for cap in registry.capabilities():
            contract = self._catalog.get(cap)
            for provider in registry.list_providers(cap):
                try:
                    adapter = registry.get(cap, provider)
                except ProviderInitError as e:
                    report = VerificationReport(cap, provider, contract.version, [
                        AssertionResult("*", "construct", False, e.message)
                    ])
                else:
                    report = self.verify(cap, adapter, provider)

                matrix.add(report)
                if record:
                    registry.record_verification(cap, provider, report)

        logger.info(f"[契约校验] 共校验 {len(matrix.all_reports())} 个适配器，未通过 {len(matrix.failing())} 个")
        return matrix

    # === 内部方法 ===

    def _run_case(self, adapter: Any, op: OperationSpec, case: ConformanceCase,
                  outputs: Dict[str, Any]) -> AssertionResult:
        try:
            payload = case.build_payload(outputs)
        except (KeyError, TypeError) as e:
            return AssertionResult(op.name, case.name, False, f"前置用例未成功，无法构造载荷: {e}")

        finished, outcome = call_with_timeout(
            run_operation, adapter, op.name, payload,
            timeout=self._case_timeout, name=f"capcore_verify_{op.name}"
        )
        if not finished:
            return AssertionResult(op.name, case.name, False, f"用例超时（{self._case_timeout}s）")

        if case.expects_success:
            return self._check_success(op, case, outcome, outputs)
        return self._check_error(op, case, outcome)

    @staticmethod
    def _check_success(op: OperationSpec, case: ConformanceCase, outcome: InvocationOutcome,
                       outputs: Dict[str, Any]) -> AssertionResult:
        if not outcome.is_success:
            return AssertionResult(op.name, case.name, False,
                                   f"期望成功，实际 {outcome.kind.value}: {outcome.reason}")
        problems = op.output.validate(outcome.value)
        if problems:
            return AssertionResult(op.name, case.name, False, "输出结构不符合契约: " + "; ".join(problems))
        outputs[case.name] = outcome.value
        return AssertionResult(op.name, case.name, True)

    @staticmethod
    def _check_error(op: OperationSpec, case: ConformanceCase, outcome: InvocationOutcome) -> AssertionResult:
        expected = case.expect
        if outcome.is_success:
            return AssertionResult(op.name, case.name, False, f"期望错误 '{expected.value}'，实际成功")

        # 只有适配器显式声明的错误才算数，分类器从普通异常推断出的类型不算
        declared = isinstance(outcome.error, ProviderFailure) or (
            outcome.error is None and outcome.error_kind is not None
        )
        if not declared:
            return AssertionResult(op.name, case.name, False,
                                   f"期望错误 '{expected.value}'，实际为实现特定的异常: {outcome.reason}")
        if outcome.error_kind != expected:
            actual = outcome.error_kind.value if outcome.error_kind else None
            return AssertionResult(op.name, case.name, False, f"期望错误 '{expected.value}'，实际为 '{actual}'")
        if not op.declares(expected):
            return AssertionResult(op.name, case.name, False, f"契约未为该操作声明错误 '{expected.value}'")
        return AssertionResult(op.name, case.name, True)


def assert_conforms(capability: CapabilityLike, adapter: Any, provider: Optional[str] = None,
                    verifier: Optional[ContractVerifier] = None) -> VerificationReport:
    """
    测试辅助：校验不通过时抛出 AssertionError，列出所有失败断言

    用法（pytest）:
        def test_stripe_conforms(stripe_sandbox):
            assert_conforms("payments", stripe_sandbox, "stripe")
    """
    report = (verifier or ContractVerifier()).verify(capability, adapter, provider)
    if not report.passed:
        lines = [f"  - {f.operation}.{f.check}: {f.detail}" for f in report.failures]
        raise AssertionError(report.summary() + "\n" + "\n".join(lines))
    return report
