"""
/**
 * @file dialect_backend/models/translate_request_model.py
 * @description 翻译请求模型（Pydantic）与校验后的内部请求结构。
 * @note 字段类型刻意放宽为 Any，具体错误信息由 utils/validators.py 给出。
 */
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field


STANDARD = "standard"
DIALECT = "dialect"
TEXT_TYPES = (STANDARD, DIALECT)

MAX_TEXT_LENGTH = 2000
MAX_BATCH_SIZE = 20


class TranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Any = None
    from_type: Any = Field(None, alias="from")
    to_type: Any = Field(None, alias="to")
    dialect: Any = None


class BatchTranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    texts: Any = None
    from_type: Any = Field(None, alias="from")
    to_type: Any = Field(None, alias="to")
    dialect: Any = None


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    from_type: str
    to_type: str
    dialect_code: str
    dialect_name: str


@dataclass(frozen=True)
class BatchJob:
    texts: Tuple[str, ...]
    from_type: str
    to_type: str
    dialect_code: str
    dialect_name: str

    def __len__(self) -> int:
        return len(self.texts)

