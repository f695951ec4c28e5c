"""
诊断事件系统
"""

from .types import Event, EventType, EventHandler
from .bus import EventBus

__all__ = [
    "Event",
    "EventType",
    "EventHandler",
    "EventBus",
]
