# -*- coding: utf-8 -*-
"""
运行时配置

默认值 + 环境变量覆盖。

使用方式：
    from capcore.config import get_settings

    settings = get_settings()
    settings.default_timeout_seconds
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from loguru import logger


# 环境变量 -> 字段名
ENV_FIELDS = {
    "CAPCORE_DEFAULT_TIMEOUT": "default_timeout_seconds",
    "CAPCORE_LOG_LEVEL": "log_level",
    "CAPCORE_POLICY_PATH": "policy_path",
    "CAPCORE_REQUIRE_VERIFIED": "require_verified",
}


@dataclass
class CapcoreSettings:
    """运行时配置（唯一定义）"""
    # 每次尝试的超时（秒），0 表示不限时
    default_timeout_seconds: float = 10.0
    # 日志级别
    log_level: str = "INFO"
    # 策略文件路径（json / yaml）
    policy_path: str = ""
    # 启动校验时是否要求所有被策略引用的适配器都已通过契约校验
    require_verified: bool = False

    @property
    def attempt_timeout(self) -> Optional[float]:
        return self.default_timeout_seconds if self.default_timeout_seconds > 0 else None

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides: Any) -> CapcoreSettings:
        """从环境变量构造配置，overrides 优先级最高"""
        environ = os.environ if environ is None else environ
        types = {f.name: f.type for f in fields(cls)}
        values: Dict[str, Any] = {}

        for env_key, name in ENV_FIELDS.items():
            raw = environ.get(env_key)
            if raw is None or raw == "":
                continue
            try:
                values[name] = _coerce(raw, types[name])
            except ValueError:
                logger.warning(f"[Config] 环境变量 {env_key}={raw!r} 无效，使用默认值")

        values.update(overrides)
        return cls(**values)


def _coerce(raw: str, type_name: Any) -> Any:
    type_name = str(type_name)
    if type_name in ("bool", "<class 'bool'>"):
        lowered = raw.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        raise ValueError(raw)
    if type_name in ("int", "<class 'int'>"):
        return int(raw)
    if type_name in ("float", "<class 'float'>"):
        return float(raw)
    return raw


_settings: Optional[CapcoreSettings] = None
_settings_lock = threading.Lock()


def get_settings() -> CapcoreSettings:
    """获取全局配置（首次调用时从环境变量加载）"""
    global _settings
    if _settings is None:
        with _settings_lock:
            if _settings is None:
                _settings = CapcoreSettings.from_env()
    return _settings


def reload_settings() -> CapcoreSettings:
    """重新从环境变量加载配置"""
    global _settings
    with _settings_lock:
        _settings = CapcoreSettings.from_env()
    logger.info("[Config] 配置已重新加载")
    return _settings
