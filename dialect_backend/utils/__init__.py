"""
/**
 * @file dialect_backend/utils/__init__.py
 * @description 工具函数导出。
 */
"""

from .formatting import format_uptime, iso_now, iso_timestamp
from .validators import validate_batch_request, validate_translate_request

__all__ = ["format_uptime", "iso_now", "iso_timestamp", "validate_batch_request", "validate_translate_request"]
