"""
/**
 * @file dialect_backend/controllers/__init__.py
 * @description 控制器（路由）导出。
 */
"""

from .dialects_controller import router as dialects_router
from .health_controller import AVAILABLE_ENDPOINTS
from .health_controller import router as health_router
from .translate_controller import router as translate_router

__all__ = [
    "AVAILABLE_ENDPOINTS",
    "dialects_router",
    "health_router",
    "translate_router",
]
