"""
/**
 * @file dialect_backend/services/__init__.py
 * @description 业务服务层导出。
 */
"""

from .activity_service import ActivitySnapshot, ActivityTracker
from .batch_translation_service import BatchItemResult, BatchResult, BatchTranslator
from .gemini_client_service import GeminiClient
from .keep_alive_service import KeepAliveScheduler, KeepAliveState, PingOutcome
from .server_stats_service import ServerStats
from .translation_service import DialectTranslator, build_prompt, clean_translation

__all__ = [
    "ActivitySnapshot",
    "ActivityTracker",
    "BatchItemResult",
    "BatchResult",
    "BatchTranslator",
    "GeminiClient",
    "KeepAliveScheduler",
    "KeepAliveState",
    "PingOutcome",
    "ServerStats",
    "DialectTranslator",
    "build_prompt",
    "clean_translation",
]
