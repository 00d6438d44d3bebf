"""
/**
 * @file dialect_backend/services/gemini_client_service.py
 * @description Gemini generateContent 调用封装（prompt 进，文本出）。
 */
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from dialect_backend.config import Settings, load_settings
from dialect_backend.errors import ProviderError


logger = logging.getLogger(__name__)


class GeminiClient:
    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        # Settings are fetched dynamically unless pinned, so hot reloads apply
        self._initial_settings = settings
        self._session = session or requests.Session()

    @property
    def settings(self) -> Settings:
        return self._initial_settings or load_settings()

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.resolve_gemini_key()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": self.settings.generation_config,
        }

    @staticmethod
    def _extract_text(data: Any) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            raise ProviderError(f"Unexpected response: {str(data)[:200]}")
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise ProviderError("Empty response from Gemini")
        return text

    def generate(self, prompt: str) -> str:
        """Send one prompt and return the raw generated text. Raises ProviderError on any failure."""
        key = self.api_key
        if not key:
            raise ProviderError("GEMINI_API_KEY が設定されていません")

        settings = self.settings
        logger.info("Gemini API call started (model=%s)", settings.gemini_model)
        try:
            response = self._session.post(
                settings.gemini_endpoint,
                params={"key": key},
                headers={"Content-Type": "application/json"},
                json=self._build_payload(prompt),
                timeout=settings.provider_timeout,
            )
        except requests.Timeout:
            raise ProviderError(f"翻訳エラー: Gemini API timed out after {settings.provider_timeout}s")
        except requests.RequestException as e:
            raise ProviderError(f"翻訳エラー: {e}")

        if response.status_code != 200:
            logger.error("Gemini API returned HTTP %s: %s", response.status_code, response.text[:200])
            raise ProviderError(f"翻訳エラー: HTTP {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise ProviderError("翻訳エラー: invalid JSON from Gemini")
        text = self._extract_text(data)
        logger.info("Gemini API call finished")
        return text
