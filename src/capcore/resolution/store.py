# -*- coding: utf-8 -*-
"""策略快照存储：重新加载即原子替换引用，从不原地修改"""

import threading
from typing import Optional

from loguru import logger

from capcore.events import EventBus, EventType
from .policy import PolicySnapshot


class PolicyStore:
    """策略快照持有者

    读取方每次只取一次 current()，因此进行中的解析不会看到半更新的策略。
    """

    def __init__(self, snapshot: Optional[PolicySnapshot] = None, event_bus: Optional[EventBus] = None):
        self._swap_lock = threading.Lock()
        self._events = event_bus
        self._version = 0
        self._snapshot = self._stamp(snapshot or PolicySnapshot())

    def current(self) -> PolicySnapshot:
        """当前快照"""
        return self._snapshot

    def swap(self, snapshot: PolicySnapshot) -> PolicySnapshot:
        """替换快照

        Args:
            snapshot: 新快照

        Returns:
            被替换的旧快照
        """
        with self._swap_lock:
            previous = self._snapshot
            self._snapshot = self._stamp(snapshot)
            current = self._snapshot

        logger.info(f"策略快照已替换: v{previous.version} -> v{current.version} ({current.source or 'inline'})")
        if self._events is not None:
            self._events.emit(
                EventType.POLICY_SWAPPED, source="policy_store",
                previous_version=previous.version, version=current.version,
                capabilities=[c.value for c in current.capabilities()],
            )
        return previous

    def _stamp(self, snapshot: PolicySnapshot) -> PolicySnapshot:
        self._version += 1
        return snapshot.with_version(self._version)
