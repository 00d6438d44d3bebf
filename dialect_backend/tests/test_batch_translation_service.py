"""
/**
 * @file dialect_backend/tests/test_batch_translation_service.py
 * @description 批量翻译调度测试：顺序恢复、失败隔离、并发上限、分块间隔。
 */
"""

import asyncio
import concurrent.futures
import threading
import time
import unittest
from unittest.mock import MagicMock

from dialect_backend.errors import ProviderError
from dialect_backend.models.translate_request_model import BatchJob
from dialect_backend.services.batch_translation_service import BatchTranslator, chunk_indices
from dialect_backend.services.gemini_client_service import GeminiClient
from dialect_backend.services.translation_service import DialectTranslator


def _job(n=0, texts=None):
    return BatchJob(
        texts=texts or tuple(f"text-{i}" for i in range(n)),
        from_type="standard",
        to_type="dialect",
        dialect_code="kumamoto",
        dialect_name="熊本弁",
    )


class InstrumentedTranslator:
    """Counts in-flight calls; later items finish first so completion order is reversed."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.in_flight = 0
        self.max_in_flight = 0
        self.started = []
        self.finished = []

    async def translate(self, text, from_type, to_type, dialect_code):
        index = int(text.split("-")[1])
        self.started.append(index)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.005 * (5 - index % 5))
            if index in self.fail_on:
                raise ProviderError(f"simulated failure {index}")
            return f"{text}ばい"
        finally:
            self.in_flight -= 1
            self.finished.append(index)


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, delay):
        self.calls.append(delay)


class TestChunkIndices(unittest.TestCase):
    def test_partition(self):
        self.assertEqual([list(r) for r in chunk_indices(6, 5)], [[0, 1, 2, 3, 4], [5]])
        self.assertEqual([list(r) for r in chunk_indices(5, 5)], [[0, 1, 2, 3, 4]])
        self.assertEqual(chunk_indices(0, 5), [])


class TestBatchTranslator(unittest.IsolatedAsyncioTestCase):
    async def test_results_ordered_by_index_for_every_size(self):
        for n in range(1, 21):
            stub = InstrumentedTranslator()
            batch = BatchTranslator(stub.translate, sleep=RecordingSleep())
            result = await batch.run(_job(n))

            self.assertEqual(len(result.results), n)
            self.assertEqual([r.index for r in result.results], list(range(n)))
            self.assertEqual([r.translated_text for r in result.results], [f"text-{i}ばい" for i in range(n)])
            self.assertEqual(result.success_count, n)
            self.assertEqual(result.error_count, 0)

    async def test_completion_order_differs_from_submission(self):
        stub = InstrumentedTranslator()
        await BatchTranslator(stub.translate, sleep=RecordingSleep()).run(_job(5))
        self.assertNotEqual(stub.finished, sorted(stub.finished))

    async def test_concurrency_never_exceeds_chunk_size(self):
        stub = InstrumentedTranslator()
        await BatchTranslator(stub.translate, sleep=RecordingSleep()).run(_job(20))
        self.assertEqual(stub.max_in_flight, 5)

    async def test_single_failure_is_isolated(self):
        for failing in (0, 3, 5):
            stub = InstrumentedTranslator(fail_on={failing})
            result = await BatchTranslator(stub.translate, sleep=RecordingSleep()).run(_job(6))

            self.assertEqual(result.success_count + result.error_count, 6)
            self.assertEqual(result.error_count, 1)
            for r in result.results:
                if r.index == failing:
                    self.assertFalse(r.succeeded)
                    self.assertIsNone(r.translated_text)
                    self.assertIn("simulated failure", r.error_detail)
                else:
                    self.assertTrue(r.succeeded)
                    self.assertIsNone(r.error_detail)

    async def test_two_chunks_with_one_pause(self):
        stub = InstrumentedTranslator()
        sleep = RecordingSleep()
        result = await BatchTranslator(stub.translate, chunk_pause=0.1, sleep=sleep).run(_job(6))

        self.assertEqual(sleep.calls, [0.1])
        # every item of the first chunk settles before the sixth starts
        self.assertEqual(set(stub.finished[:5]), {0, 1, 2, 3, 4})
        self.assertEqual(stub.started[5], 5)
        self.assertEqual([r.index for r in result.results], [0, 1, 2, 3, 4, 5])

    async def test_no_pause_for_single_chunk(self):
        sleep = RecordingSleep()
        await BatchTranslator(InstrumentedTranslator().translate, sleep=sleep).run(_job(5))
        self.assertEqual(sleep.calls, [])

    async def test_item_timeout_is_recorded_on_item(self):
        async def slow_on_first(text, *args):
            if text == "text-0":
                await asyncio.sleep(1)
            return "ok"

        result = await BatchTranslator(slow_on_first, item_timeout=0.05, sleep=RecordingSleep()).run(_job(3))
        self.assertFalse(result.results[0].succeeded)
        self.assertIn("timed out", result.results[0].error_detail)
        self.assertTrue(all(r.succeeded for r in result.results[1:]))

    async def test_unexpected_error_escapes(self):
        async def broken(text, *args):
            raise RuntimeError("bug")

        with self.assertRaises(RuntimeError):
            await BatchTranslator(broken, sleep=RecordingSleep()).run(_job(2))

    async def test_to_dict_shape(self):
        stub = InstrumentedTranslator(fail_on={1})
        result = await BatchTranslator(stub.translate, sleep=RecordingSleep()).run(_job(2))
        ok, failed = (r.to_dict() for r in result.results)
        self.assertEqual(ok, {"index": 0, "original": "text-0", "translated": "text-0ばい", "success": True})
        self.assertEqual(failed["translated"], None)
        self.assertFalse(failed["success"])
        self.assertIn("error", failed)

    async def test_provider_gets_trimmed_text_and_original_is_kept(self):
        received = []

        async def record(text, *args):
            received.append(text)
            return "よか"

        result = await BatchTranslator(record, sleep=RecordingSleep()).run(_job(texts=("a", " b ")))
        self.assertEqual(received, ["a", "b"])
        self.assertEqual([r.to_dict()["original"] for r in result.results], ["a", " b "])


class TestBatchWithBlockingProvider(unittest.IsolatedAsyncioTestCase):
    async def test_timed_out_calls_still_count_against_chunk_size(self):
        lock = threading.Lock()
        counts = {"in_flight": 0, "max": 0}

        def blocking_generate(prompt):
            with lock:
                counts["in_flight"] += 1
                counts["max"] = max(counts["max"], counts["in_flight"])
            try:
                time.sleep(0.2)
                return "よか"
            finally:
                with lock:
                    counts["in_flight"] -= 1

        # a large shared pool must not raise the provider-side cap
        default_pool = concurrent.futures.ThreadPoolExecutor(max_workers=32)
        asyncio.get_running_loop().set_default_executor(default_pool)

        client = MagicMock(spec=GeminiClient)
        client.generate.side_effect = blocking_generate
        translator = DialectTranslator(client=client, max_workers=5)
        batch = BatchTranslator(translator.translate, item_timeout=0.05, sleep=RecordingSleep())

        result = await batch.run(_job(15))
        translator.close(wait=True)

        self.assertEqual(result.error_count, 15)
        self.assertLessEqual(counts["max"], 5)
        self.assertGreater(client.generate.call_count, 0)



if __name__ == "__main__":
    unittest.main()
