"""
能力契约
描述每个能力的操作集合，是契约校验器的检查依据
"""

from .types import FieldSpec, Shape, OperationSpec, CapabilityContract, required, optional
from .catalog import CONTRACTS, ContractCatalog, get_contract

__all__ = [
    "FieldSpec",
    "Shape",
    "OperationSpec",
    "CapabilityContract",
    "required",
    "optional",
    "CONTRACTS",
    "ContractCatalog",
    "get_contract",
]
