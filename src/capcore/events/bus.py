"""
事件总线实现
"""

import threading
from typing import Dict, List, Optional
from collections import defaultdict
from loguru import logger

from .types import Event, EventType, EventHandler


class EventBus:
    """
    同步事件总线（线程安全）

    核心本身不发送遥测，外部日志/指标采集器通过订阅事件获取诊断信息。
    处理器在发布线程中同步执行，处理器异常只记录日志，不影响调用路径。
    """

    def __init__(self):
        self._subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._wildcard_subscribers: List[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, event_type, handler: EventHandler) -> None:
        """
        订阅事件

        Args:
            event_type: 事件类型（或"*"表示所有事件）
            handler: 事件处理器
        """
        event_key = event_type.value if isinstance(event_type, EventType) else str(event_type)

        with self._lock:
            if event_key == "*":
                self._wildcard_subscribers.append(handler)
            else:
                self._subscribers[event_key].append(handler)

        logger.debug(f"订阅事件: {event_key}, 处理器: {getattr(handler, '__name__', repr(handler))}")

    def unsubscribe(self, event_type, handler: EventHandler) -> None:
        """取消订阅"""
        event_key = event_type.value if isinstance(event_type, EventType) else str(event_type)

        with self._lock:
            if event_key == "*":
                if handler in self._wildcard_subscribers:
                    self._wildcard_subscribers.remove(handler)
            else:
                if handler in self._subscribers[event_key]:
                    self._subscribers[event_key].remove(handler)

    def publish(self, event: Event) -> None:
        """
        发布事件

        Args:
            event: 事件对象
        """
        event_key = event.type.value if isinstance(event.type, EventType) else str(event.type)

        with self._lock:
            handlers = list(self._subscribers.get(event_key, [])) + list(self._wildcard_subscribers)

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"事件处理器执行失败: {getattr(handler, '__name__', repr(handler))}, 错误: {e}")

    def emit(self, event_type: EventType, source: str = "", **data) -> None:
        """构造并发布事件"""
        self.publish(Event(type=event_type, data=data, source=source))

    def get_subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        """获取订阅者数量"""
        with self._lock:
            if event_type is None:
                return sum(len(handlers) for handlers in self._subscribers.values()) + \
                       len(self._wildcard_subscribers)

            event_key = event_type.value if isinstance(event_type, EventType) else str(event_type)
            return len(self._subscribers.get(event_key, []))
