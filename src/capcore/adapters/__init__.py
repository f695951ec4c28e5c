"""
适配器注册层
提供注册、延迟构造、热替换与资源释放
"""

from .lifecycle import LifecycleState, release_adapter
from .registry import AdapterRegistry, AdapterFactory

__all__ = [
    "LifecycleState",
    "release_adapter",
    "AdapterRegistry",
    "AdapterFactory",
]
