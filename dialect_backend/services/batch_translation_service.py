"""
/**
 * @file dialect_backend/services/batch_translation_service.py
 * @description 批量翻译调度：按固定大小分块并发调用模型，单条失败隔离，按原始下标恢复顺序。
 */
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from dialect_backend.errors import ProviderError
from dialect_backend.models.translate_request_model import BatchJob


logger = logging.getLogger(__name__)

TranslateFunc = Callable[[str, str, str, str], Awaitable[str]]

DEFAULT_CHUNK_SIZE = 5
DEFAULT_CHUNK_PAUSE = 0.1
DEFAULT_ITEM_TIMEOUT = 45.0


@dataclass
class BatchItemResult:
    index: int
    original_text: str
    translated_text: Optional[str] = None
    succeeded: bool = False
    error_detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        item: Dict[str, Any] = {
            "index": self.index,
            "original": self.original_text,
            "translated": self.translated_text,
            "success": self.succeeded,
        }
        if self.error_detail is not None:
            item["error"] = self.error_detail
        return item


@dataclass
class BatchResult:
    results: List[BatchItemResult] = field(default_factory=list)
    total_count: int = 0
    processing_time_ms: int = 0

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def error_count(self) -> int:
        return self.total_count - self.success_count


def chunk_indices(total: int, chunk_size: int) -> List[range]:
    return [range(start, min(start + chunk_size, total)) for start in range(0, total, chunk_size)]


class BatchTranslator:
    """
    Drives a translate function over a BatchJob.

    At most ``chunk_size`` provider calls are in flight at any time: every item of a
    chunk is dispatched together and the whole chunk must settle before the next one
    starts. A ProviderError (or per-item timeout) is recorded on that item only.
    """

    def __init__(
        self,
        translate_func: TranslateFunc,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_pause: float = DEFAULT_CHUNK_PAUSE,
        item_timeout: Optional[float] = DEFAULT_ITEM_TIMEOUT,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self._translate = translate_func
        self.chunk_size = chunk_size
        self.chunk_pause = chunk_pause
        self.item_timeout = item_timeout
        self._sleep = sleep

    async def _run_item(self, job: BatchJob, index: int) -> BatchItemResult:
        text = job.texts[index]
        call = self._translate(text.strip(), job.from_type, job.to_type, job.dialect_code)
        try:
            if self.item_timeout:
                translated = await asyncio.wait_for(call, timeout=self.item_timeout)
            else:
                translated = await call
        except asyncio.TimeoutError:
            logger.error(f"翻訳エラー (インデックス{index}): timed out after {self.item_timeout}s")
            return BatchItemResult(index=index, original_text=text, error_detail=f"翻訳エラー: timed out after {self.item_timeout}s")
        except ProviderError as e:
            logger.error(f"翻訳エラー (インデックス{index}): {e}")
            return BatchItemResult(index=index, original_text=text, error_detail=str(e))
        return BatchItemResult(index=index, original_text=text, translated_text=translated, succeeded=True)

    async def run(self, job: BatchJob) -> BatchResult:
        start = time.monotonic()
        total = len(job.texts)
        chunks = chunk_indices(total, self.chunk_size)
        results: List[BatchItemResult] = []

        for n, chunk in enumerate(chunks):
            settled = await asyncio.gather(*(self._run_item(job, i) for i in chunk))
            results.extend(settled)
            if n < len(chunks) - 1:
                await self._sleep(self.chunk_pause)

        # gather keeps submission order, but callers rely on index order regardless
        results.sort(key=lambda r: r.index)
        batch = BatchResult(
            results=results,
            total_count=total,
            processing_time_ms=int((time.monotonic() - start) * 1000),
        )
        logger.info(
            f"バッチ翻訳完了: total={batch.total_count} success={batch.success_count} "
            f"chunks={len(chunks)} time={batch.processing_time_ms}ms"
        )
        return batch
