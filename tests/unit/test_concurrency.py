# -*- coding: utf-8 -*-
"""
限时调用与取消令牌测试
"""

import sys
import threading
import time
from pathlib import Path

# 添加src到路径
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import pytest

from capcore.utils.concurrency import CancelToken, call_with_timeout


class TestCallWithTimeout:
    """限时调用测试"""

    def test_without_timeout_runs_inline(self):
        caller = threading.current_thread()
        finished, value = call_with_timeout(threading.current_thread)
        assert finished
        assert value is caller

    def test_returns_value_in_time(self):
        finished, value = call_with_timeout(lambda x: x * 2, 21, timeout=1.0)
        assert finished
        assert value == 42

    def test_timeout_is_reported(self):
        finished, value = call_with_timeout(time.sleep, 1.0, timeout=0.05)
        assert not finished
        assert value is None

    def test_abandoned_call_does_not_delay_next_call(self):
        """被放弃的调用仍在运行时，下一次调用立即开始执行"""
        release = threading.Event()
        started = threading.Event()

        finished, _ = call_with_timeout(release.wait, timeout=0.05)
        assert not finished

        finished, _ = call_with_timeout(started.set, timeout=0.5)
        assert finished
        assert started.is_set()
        release.set()

    def test_function_timeout_error_is_propagated(self):
        """函数自己抛出的 TimeoutError 原样抛出，不视为超时"""
        def gateway():
            raise TimeoutError("网关响应超时")

        with pytest.raises(TimeoutError, match="网关响应超时"):
            call_with_timeout(gateway, timeout=1.0)

    def test_function_error_is_propagated(self):
        def broken():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            call_with_timeout(broken, timeout=1.0)


class TestCancelToken:
    """取消令牌测试"""

    def test_cancel(self):
        token = CancelToken()
        assert not token.cancelled()
        token.cancel()
        assert token.cancelled()
