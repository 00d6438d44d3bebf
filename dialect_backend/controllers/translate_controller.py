"""
/**
 * @file dialect_backend/controllers/translate_controller.py
 * @description 翻译控制器（单条 / 批量，标准语 ⇄ 方言）。
 */
"""

import logging
import time

from fastapi import APIRouter, Request

from dialect_backend.models.translate_request_model import BatchTranslateRequest, TranslateRequest
from dialect_backend.utils import iso_now, validate_batch_request, validate_translate_request


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/translate")
async def translate(req: TranslateRequest, request: Request):
    payload = validate_translate_request(req.text, req.from_type, req.to_type, req.dialect)
    translator = request.app.state.translator

    start = time.monotonic()
    translated = await translator.translate(payload.text, payload.from_type, payload.to_type, payload.dialect_code)
    processing_time = int((time.monotonic() - start) * 1000)

    logger.info(f"翻訳完了: dialect={payload.dialect_code} time={processing_time}ms")
    return {
        "success": True,
        "data": {
            "original_text": req.text,
            "translated_text": translated,
            "from_type": payload.from_type,
            "to_type": payload.to_type,
            "dialect_code": payload.dialect_code,
            "dialect_name": payload.dialect_name,
            "processing_time_ms": processing_time,
            "timestamp": iso_now(),
        },
    }


@router.post("/api/translate/batch")
async def translate_batch(req: BatchTranslateRequest, request: Request):
    job = validate_batch_request(req.texts, req.from_type, req.to_type, req.dialect)
    logger.info(f"バッチ翻訳リクエスト受信: {len(job)}件 dialect={job.dialect_code}")

    result = await request.app.state.batch_translator.run(job)
    return {
        "success": True,
        "data": {
            "results": [r.to_dict() for r in result.results],
            "from_type": job.from_type,
            "to_type": job.to_type,
            "dialect_code": job.dialect_code,
            "dialect_name": job.dialect_name,
            "processing_time_ms": result.processing_time_ms,
            "total_count": result.total_count,
            "success_count": result.success_count,
            "error_count": result.error_count,
            "timestamp": iso_now(),
        },
    }
