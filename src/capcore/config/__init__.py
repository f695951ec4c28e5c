"""
配置系统模块

推荐使用:
    from capcore.config import get_settings, load_policy_file, validate_on_startup
"""

from .settings import CapcoreSettings, get_settings, reload_settings
from .loader import PolicyFileModel, parse_policy, load_policy_file
from .validation import ConfigValidator, validate_on_startup

__all__ = [
    "CapcoreSettings",
    "get_settings",
    "reload_settings",
    "PolicyFileModel",
    "parse_policy",
    "load_policy_file",
    "ConfigValidator",
    "validate_on_startup",
]
