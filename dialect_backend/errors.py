"""
/**
 * @file dialect_backend/errors.py
 * @description 统一异常定义（校验 / 方言 / 限流 / 上游模型 / 内部错误）。
 */
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DialectAPIError(Exception):
    """Base error carrying the HTTP status and the stable ``error`` string shown to clients."""

    status_code = 500
    default_error = "サーバーエラーが発生しました"

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None, extra: Optional[Dict[str, Any]] = None):
        self.error = error or self.default_error
        self.message = message
        self.extra = dict(extra or {})
        super().__init__(message or self.error)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.error}
        if self.message:
            body["message"] = self.message
        body.update(self.extra)
        return body


class ValidationError(DialectAPIError):
    status_code = 400
    default_error = "リクエストが不正です"


class UnsupportedDialectError(ValidationError):
    default_error = "対応していない方言コードです"

    def __init__(self, supported_codes, message: Optional[str] = None):
        super().__init__(message=message, extra={"supported_dialects": list(supported_codes)})


class RateLimitError(DialectAPIError):
    status_code = 429
    default_error = "レート制限に達しました。しばらく待ってから再度お試しください。"


class ProviderError(DialectAPIError):
    """The remote generation provider is unconfigured, unreachable or rejected the call."""

    status_code = 500
    default_error = "サーバーエラーが発生しました"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message=message)
        self.upstream_status = status_code


class InternalError(DialectAPIError):
    status_code = 500
    default_error = "サーバー内部エラーが発生しました"
