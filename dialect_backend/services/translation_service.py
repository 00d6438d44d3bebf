"""
/**
 * @file dialect_backend/services/translation_service.py
 * @description 标准语 ⇄ 方言翻译服务（基于 Gemini），单次调用、无状态、不重试。
 */
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import re
from typing import Optional

from dialect_backend.models.dialect_catalog import GENERIC_DIALECT_NAME, find_dialect
from dialect_backend.models.translate_request_model import DIALECT, STANDARD
from dialect_backend.services.gemini_client_service import GeminiClient


logger = logging.getLogger(__name__)

_LABEL_RE = re.compile(r"^(標準語|方言|翻訳結果|結果)[:：]\s*")

# matches the batch chunk size
DEFAULT_MAX_WORKERS = 5


def build_prompt(text: str, from_type: str, to_type: str, dialect_name: str) -> str:
    if from_type == STANDARD and to_type == DIALECT:
        return (
            f"あなたは{dialect_name}の専門家です。以下の標準語のテキストを自然で現地の人が実際に使うような{dialect_name}に翻訳してください。\n"
            "\n"
            "重要な指示:\n"
            "- 翻訳結果のみを返してください（説明や追加情報は不要）\n"
            f"- 自然で親しみやすい{dialect_name}の表現を使用してください\n"
            "- 文脈に応じて適切な方言表現を選択してください\n"
            "\n"
            f"標準語: {text}\n"
            "\n"
            f"{dialect_name}:"
        )
    return (
        f"あなたは{dialect_name}の専門家です。以下の{dialect_name}のテキストを自然で正しい標準語に翻訳してください。\n"
        "\n"
        "重要な指示:\n"
        "- 翻訳結果のみを返してください（説明や追加情報は不要）\n"
        "- 自然で適切な標準語の表現を使用してください\n"
        "- 方言のニュアンスを保ちながら標準語に変換してください\n"
        "\n"
        f"{dialect_name}: {text}\n"
        "\n"
        "標準語:"
    )


def clean_translation(raw: str) -> str:
    """Keep the first line and drop a restated label such as ``標準語:``."""
    translated = (raw or "").strip()
    first_line = translated.split("\n")[0]
    cleaned = _LABEL_RE.sub("", first_line).strip()
    return cleaned or first_line


class DialectTranslator:
    """
    Provider calls run on a private pool of ``max_workers`` threads. A call the
    caller stopped waiting for keeps its worker until requests returns.
    """

    def __init__(self, client: Optional[GeminiClient] = None, max_workers: int = DEFAULT_MAX_WORKERS):
        self.client = client or GeminiClient()
        self.max_workers = max_workers
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="gemini")

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    def translate_sync(self, text: str, from_type: str, to_type: str, dialect_code: str) -> str:
        dialect = find_dialect(dialect_code)
        dialect_name = dialect.name if dialect else GENERIC_DIALECT_NAME
        prompt = build_prompt(text, from_type, to_type, dialect_name)
        return clean_translation(self.client.generate(prompt))

    async def translate(self, text: str, from_type: str, to_type: str, dialect_code: str) -> str:
        # requests blocks, keep it off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.translate_sync, text, from_type, to_type, dialect_code)

    def close(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
