"""
capcore - 能力解析核心

把认证、支付、通知、存储、搜索等能力与具体供应商解耦：
按租户配置与实验分组解析提供方，失败时按回退链切换，并提供契约一致性校验。
"""

__version__ = "1.0.0"

from .capabilities import Capability, ErrorKind, as_capability
from .exceptions import (
    CapcoreException,
    ConfigurationError,
    UnknownCapabilityError,
    UnknownOperationError,
    UnknownProviderError,
    DuplicateProviderError,
    ProviderInitError,
    NoProviderConfiguredError,
    InvalidPolicyError,
    InvocationError,
    ProviderFailure,
    RecoverableFailure,
    FatalFailure,
    AllProvidersExhaustedError,
    InvocationCancelledError,
)
from .adapters import AdapterRegistry
from .contracts import ContractCatalog, get_contract
from .resolution import (
    ResolutionContext,
    SelectionRule,
    CapabilityPolicy,
    PolicySnapshot,
    PolicyStore,
    Resolver,
    tenant_in,
    flag_equals,
)
from .invocation import ResilientInvoker, InvocationOutcome, InvocationResult
from .verification import ContractVerifier, VerificationReport, VerificationMatrix, assert_conforms
from .runtime import CapabilityRuntime, CapabilityClient

__all__ = [
    "__version__",
    "Capability",
    "ErrorKind",
    "as_capability",
    "CapcoreException",
    "ConfigurationError",
    "UnknownCapabilityError",
    "UnknownOperationError",
    "UnknownProviderError",
    "DuplicateProviderError",
    "ProviderInitError",
    "NoProviderConfiguredError",
    "InvalidPolicyError",
    "InvocationError",
    "ProviderFailure",
    "RecoverableFailure",
    "FatalFailure",
    "AllProvidersExhaustedError",
    "InvocationCancelledError",
    "AdapterRegistry",
    "ContractCatalog",
    "get_contract",
    "ResolutionContext",
    "SelectionRule",
    "CapabilityPolicy",
    "PolicySnapshot",
    "PolicyStore",
    "Resolver",
    "tenant_in",
    "flag_equals",
    "ResilientInvoker",
    "InvocationOutcome",
    "InvocationResult",
    "ContractVerifier",
    "VerificationReport",
    "VerificationMatrix",
    "assert_conforms",
    "CapabilityRuntime",
    "CapabilityClient",
]
