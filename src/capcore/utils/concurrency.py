# -*- coding: utf-8 -*-
from __future__ import annotations

import threading
from concurrent.futures import Future, TimeoutError as FuturesTimeout
from typing import Any, Callable, Optional, Tuple


class CancelToken:
    def __init__(self):
        self._flag = False
        self._lock = threading.Lock()

    def cancel(self):
        with self._lock:
            self._flag = True

    def cancelled(self) -> bool:
        with self._lock:
            return self._flag


def call_with_timeout(
    fn: Callable[..., Any],
    *args: Any,
    timeout: Optional[float] = None,
    name: str = "capcore_call"
) -> Tuple[bool, Any]:
    """在独立的守护线程中执行并限时等待

    每次调用使用自己的线程和 future，计时从线程启动开始，
    被放弃的调用不会占用后续调用的执行资源。
    超时的调用无法强行中止，只会被放弃，线程在函数返回后自行退出。

    Args:
        fn: 要执行的函数
        timeout: 超时秒数，None 表示在当前线程直接执行
        name: 线程名

    Returns:
        (是否按时完成, 函数返回值)

    Raises:
        fn 抛出的异常（包括 fn 自己抛出的 TimeoutError）
    """
    if timeout is None:
        return True, fn(*args)

    future: Future = Future()

    def _run():
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)

    threading.Thread(target=_run, name=name, daemon=True).start()
    try:
        return True, future.result(timeout=timeout)
    except FuturesTimeout:
        # Python 3.11 起 FuturesTimeout 就是内置 TimeoutError，已完成说明异常来自 fn
        if future.done():
            return True, future.result()
        return False, None
