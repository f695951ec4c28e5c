"""
适配器生命周期定义
"""

from enum import Enum
from typing import Any


class LifecycleState(str, Enum):
    """注册表条目的生命周期状态"""
    UNINITIALIZED = "uninitialized"      # 未构造
    INITIALIZING = "initializing"        # 构造中
    READY = "ready"                      # 就绪
    UNHEALTHY = "unhealthy"              # 上次构造失败
    SHUTDOWN = "shutdown"                # 已关闭


def release_adapter(adapter: Any) -> bool:
    """
    释放适配器持有的资源

    优先调用 shutdown()，其次 close()

    Returns:
        是否调用了释放方法
    """
    for method_name in ("shutdown", "close"):
        method = getattr(adapter, method_name, None)
        if callable(method):
            method()
            return True
    return False
