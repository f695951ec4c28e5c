"""
诊断 API
"""

from .routes import create_diagnostics_router, create_app

__all__ = ["create_diagnostics_router", "create_app"]
