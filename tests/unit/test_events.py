# -*- coding: utf-8 -*-
"""
诊断事件与日志配置测试
"""

import sys
from pathlib import Path

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import pytest
from loguru import logger

from capcore.events import Event, EventBus, EventType
from capcore.logger import configure_logger


class TestEventBus:
    """事件总线测试"""

    def test_subscribe_and_publish(self):
        bus = EventBus()
        seen = []
        bus.subscribe(EventType.POLICY_SWAPPED, seen.append)

        bus.emit(EventType.POLICY_SWAPPED, source="test", version=2)
        bus.emit(EventType.ADAPTER_REGISTERED, source="test")

        assert len(seen) == 1
        assert seen[0].data == {"version": 2}
        assert seen[0].to_dict()["type"] == "policy.swapped"

    def test_wildcard(self):
        bus = EventBus()
        seen = []
        bus.subscribe("*", seen.append)

        bus.emit(EventType.ADAPTER_CONSTRUCTED)
        bus.emit(EventType.INVOCATION_FATAL)

        assert [e.type for e in seen] == [EventType.ADAPTER_CONSTRUCTED, EventType.INVOCATION_FATAL]

    def test_unsubscribe(self):
        bus = EventBus()
        seen = []
        bus.subscribe(EventType.ADAPTER_SHUTDOWN, seen.append)
        bus.unsubscribe(EventType.ADAPTER_SHUTDOWN, seen.append)

        bus.publish(Event(type=EventType.ADAPTER_SHUTDOWN))

        assert seen == []
        assert bus.get_subscriber_count() == 0

    def test_handler_error_does_not_propagate(self):
        """处理器异常只记录日志，后续处理器照常执行"""
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(EventType.ATTEMPT_FAILED, broken)
        bus.subscribe(EventType.ATTEMPT_FAILED, seen.append)

        bus.emit(EventType.ATTEMPT_FAILED, provider="stripe")

        assert len(seen) == 1
        assert bus.get_subscriber_count(EventType.ATTEMPT_FAILED) == 2


class TestLogger:
    """日志配置测试"""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        yield
        logger.remove()
        logger.add(sys.stderr)

    def test_configure_logger_writes_file(self, tmp_path):
        configure_logger("debug", logs_dir=str(tmp_path))
        logger.info("日志测试")
        # 移除处理器会等待队列写完并关闭文件
        logger.remove()

        log_file = tmp_path / "capcore.log"
        assert log_file.exists()
        assert "日志测试" in log_file.read_text(encoding="utf-8")

    def test_logs_dir_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CAPCORE_LOGS_DIR", str(tmp_path / "env-logs"))
        configure_logger()
        assert (tmp_path / "env-logs").is_dir()
