# -*- coding: utf-8 -*-
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def _normalize_level(level: Optional[str]) -> str:
    """标准化日志级别（内部辅助）"""
    return (level or "INFO").upper()


def configure_logger(level: str = "INFO", logs_dir: Optional[str] = None):
    """配置日志（支持环境变量 CAPCORE_LOGS_DIR 指定日志目录）"""
    logs_path = Path(logs_dir or os.getenv("CAPCORE_LOGS_DIR") or "logs")
    logs_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    normalized_level = _normalize_level(level)
    log_file = logs_path / "capcore.log"
    logger.add(str(log_file), rotation="5 MB", retention=5, enqueue=True, encoding="utf-8", level=normalized_level)
    logger.add(sys.stderr, level=normalized_level)
    return logger
