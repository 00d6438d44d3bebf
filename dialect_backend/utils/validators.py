"""
/**
 * @file dialect_backend/utils/validators.py
 * @description 翻译请求校验（单条 / 批量），在调用模型之前完成，首个失败即返回。
 */
"""

from __future__ import annotations

from typing import Any, List

from dialect_backend.errors import UnsupportedDialectError, ValidationError
from dialect_backend.models.dialect_catalog import dialect_codes, find_dialect
from dialect_backend.models.translate_request_model import (
    MAX_BATCH_SIZE,
    MAX_TEXT_LENGTH,
    TEXT_TYPES,
    BatchJob,
    TranslationRequest,
)


ERR_TEXT_REQUIRED = "翻訳するテキストが必要です"
ERR_TEXT_TOO_LONG = f"テキストは{MAX_TEXT_LENGTH}文字以下にしてください"
ERR_INVALID_TYPES = 'fromとtoは "standard" または "dialect" である必要があります'
ERR_SAME_TYPES = "翻訳元と翻訳先が同じです"
ERR_TEXTS_NOT_LIST = "textsは配列である必要があります"
ERR_BATCH_TOO_LARGE = f"バッチ翻訳は一度に{MAX_BATCH_SIZE}件までです"


def is_valid_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _check_direction(from_type: Any, to_type: Any) -> None:
    if from_type not in TEXT_TYPES or to_type not in TEXT_TYPES:
        raise ValidationError(ERR_INVALID_TYPES)
    if from_type == to_type:
        raise ValidationError(ERR_SAME_TYPES)


def _check_dialect(code: Any):
    dialect = find_dialect(code) if code else None
    if dialect is None:
        raise UnsupportedDialectError(dialect_codes())
    return dialect


def validate_translate_request(text: Any, from_type: Any, to_type: Any, dialect: Any) -> TranslationRequest:
    if not is_valid_text(text):
        raise ValidationError(ERR_TEXT_REQUIRED)
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(ERR_TEXT_TOO_LONG)
    _check_direction(from_type, to_type)
    found = _check_dialect(dialect)
    return TranslationRequest(
        text=text.strip(),
        from_type=from_type,
        to_type=to_type,
        dialect_code=found.code,
        dialect_name=found.name,
    )


def validate_batch_request(texts: Any, from_type: Any, to_type: Any, dialect: Any) -> BatchJob:
    if not isinstance(texts, list) or not texts:
        raise ValidationError(ERR_TEXTS_NOT_LIST)
    if len(texts) > MAX_BATCH_SIZE:
        raise ValidationError(ERR_BATCH_TOO_LARGE)

    raw: List[str] = []
    for i, text in enumerate(texts):
        if not is_valid_text(text) or len(text) > MAX_TEXT_LENGTH:
            raise ValidationError(
                f"無効なテキストが含まれています（インデックス{i}）: {MAX_TEXT_LENGTH}文字以下の文字列である必要があります",
                extra={"index": i},
            )
        raw.append(text)

    _check_direction(from_type, to_type)
    found = _check_dialect(dialect)
    return BatchJob(
        texts=tuple(raw),
        from_type=from_type,
        to_type=to_type,
        dialect_code=found.code,
        dialect_name=found.name,
    )
