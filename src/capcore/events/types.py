"""
诊断事件类型定义
"""

from typing import Dict, Any, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class EventType(str, Enum):
    """事件类型枚举"""
    # 注册表事件
    ADAPTER_REGISTERED = "adapter.registered"
    ADAPTER_CONSTRUCTED = "adapter.constructed"
    ADAPTER_INIT_FAILED = "adapter.init_failed"
    ADAPTER_SHUTDOWN = "adapter.shutdown"

    # 调用事件
    ATTEMPT_FAILED = "invocation.attempt_failed"
    INVOCATION_SUCCEEDED = "invocation.succeeded"
    INVOCATION_FATAL = "invocation.fatal"
    INVOCATION_EXHAUSTED = "invocation.exhausted"

    # 配置与校验事件
    POLICY_SWAPPED = "policy.swapped"
    VERIFICATION_COMPLETED = "verification.completed"


@dataclass
class Event:
    """事件基类"""
    type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    data: Dict[str, Any] = field(default_factory=dict)
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "type": self.type.value if isinstance(self.type, EventType) else self.type,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "source": self.source,
        }


# 事件处理器类型
EventHandler = Callable[[Event], None]
