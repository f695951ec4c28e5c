"""
契约校验
可复用的一致性测试工具，离线或在测试时对每个已注册适配器运行
"""

from .suites import (
    ConformanceCase,
    ConformanceSuite,
    DEFAULT_SUITES,
    MISSING_ID,
    DECLINED_SOURCE,
    VALID_SOURCE,
    get_suite,
)
from .verifier import (
    AssertionResult,
    VerificationReport,
    VerificationMatrix,
    ContractVerifier,
    assert_conforms,
)

__all__ = [
    "ConformanceCase",
    "ConformanceSuite",
    "DEFAULT_SUITES",
    "MISSING_ID",
    "DECLINED_SOURCE",
    "VALID_SOURCE",
    "get_suite",
    "AssertionResult",
    "VerificationReport",
    "VerificationMatrix",
    "ContractVerifier",
    "assert_conforms",
]
