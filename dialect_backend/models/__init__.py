"""
/**
 * @file dialect_backend/models/__init__.py
 * @description 数据模型导出。
 */
"""

from .dialect_catalog import DIALECTS, Dialect, dialect_codes, find_dialect, list_dialects
from .translate_request_model import BatchJob, BatchTranslateRequest, TranslateRequest, TranslationRequest

__all__ = [
    "DIALECTS",
    "Dialect",
    "dialect_codes",
    "find_dialect",
    "list_dialects",
    "BatchJob",
    "BatchTranslateRequest",
    "TranslateRequest",
    "TranslationRequest",
]
