"""
/**
 * @file dialect_backend/config/settings.py
 * @description 后端配置加载与合并（config.json + config.local.json + 环境变量）。
 */
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


PACKAGE_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CONFIG_PATH = os.path.join(PACKAGE_ROOT, "config.json")
CONFIG_LOCAL_PATH = os.path.join(PACKAGE_ROOT, "config.local.json")
CONFIG_EXAMPLE_PATH = os.path.join(PACKAGE_ROOT, "config.example.json")

DEFAULT_GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash-exp"

logger = logging.getLogger("config_loader")


def _load_json(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            value = json.load(f)
            return value if isinstance(value, dict) else {}
    except FileNotFoundError:
        return {}


def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge_dicts(base[key], value)
        else:
            base[key] = value
    return base


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _number(section: Dict[str, Any], key: str, default: float) -> float:
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


@dataclass(frozen=True)
class Settings:
    raw: Dict[str, Any]

    @property
    def api_keys(self) -> Dict[str, str]:
        return _section(self.raw, "api_keys")

    @property
    def gemini(self) -> Dict[str, Any]:
        return _section(self.raw, "gemini")

    @property
    def batch(self) -> Dict[str, Any]:
        return _section(self.raw, "batch")

    @property
    def keep_alive(self) -> Dict[str, Any]:
        return _section(self.raw, "keep_alive")

    @property
    def rate_limit(self) -> Dict[str, Any]:
        return _section(self.raw, "rate_limit")

    def resolve_gemini_key(self) -> Optional[str]:
        return os.getenv("GEMINI_API_KEY") or (
            self.api_keys.get("gemini") if isinstance(self.api_keys.get("gemini"), str) else None
        )

    @property
    def gemini_model(self) -> str:
        return os.getenv("GEMINI_MODEL") or self.gemini.get("model") or DEFAULT_GEMINI_MODEL

    @property
    def gemini_endpoint(self) -> str:
        template = self.gemini.get("endpoint") or DEFAULT_GEMINI_ENDPOINT
        return template.format(model=self.gemini_model)

    @property
    def generation_config(self) -> Dict[str, Any]:
        value = self.gemini.get("generation_config")
        if isinstance(value, dict) and value:
            return value
        return {"temperature": 0.7, "topK": 40, "topP": 0.95, "maxOutputTokens": 1024}

    @property
    def provider_timeout(self) -> float:
        return _number(self.gemini, "timeout_seconds", 30)

    @property
    def port(self) -> int:
        value = os.getenv("PORT") or self.raw.get("port")
        try:
            return int(value) if value else 3000
        except (TypeError, ValueError):
            return 3000

    @property
    def is_production(self) -> bool:
        env = os.getenv("NODE_ENV") or os.getenv("ENVIRONMENT") or self.raw.get("environment") or ""
        return str(env).lower() == "production"

    def resolve_public_url(self) -> Optional[str]:
        domain = os.getenv("KOYEB_PUBLIC_DOMAIN")
        if domain:
            return f"https://{domain.strip().rstrip('/')}"
        url = os.getenv("PUBLIC_URL") or self.keep_alive.get("public_url")
        if isinstance(url, str) and url.strip():
            return url.strip().rstrip("/")
        return None

    @property
    def chunk_size(self) -> int:
        return max(1, int(_number(self.batch, "chunk_size", 5)))

    @property
    def chunk_pause_seconds(self) -> float:
        return _number(self.batch, "chunk_pause_ms", 100) / 1000.0

    @property
    def item_timeout_seconds(self) -> float:
        return _number(self.batch, "item_timeout_seconds", 45)

    @property
    def keep_alive_startup_delay(self) -> float:
        return _number(self.keep_alive, "startup_delay_seconds", 5 * 60)

    @property
    def keep_alive_interval(self) -> float:
        return _number(self.keep_alive, "interval_seconds", 14 * 60)

    @property
    def keep_alive_timeout(self) -> float:
        return _number(self.keep_alive, "timeout_seconds", 30)

    @property
    def status_report_interval(self) -> float:
        return _number(self.raw, "status_report_interval_seconds", 30 * 60)

    @property
    def rate_limit_window(self) -> float:
        return _number(self.rate_limit, "window_seconds", 15 * 60)

    @property
    def rate_limit_max_requests(self) -> int:
        return int(_number(self.rate_limit, "max_requests", 100))


_CACHED_SETTINGS: Optional[Settings] = None
_LAST_LOAD_TIME = 0.0
_CONFIG_HASH = ""
_SETTINGS_LOCK = threading.Lock()


def _deep_diff(d1: Dict[str, Any], d2: Dict[str, Any], path="") -> list:
    diffs = []
    for k in sorted(set(d1.keys()) | set(d2.keys())):
        p = f"{path}.{k}" if path else k
        if k not in d1:
            diffs.append(f"Added: {p}")
        elif k not in d2:
            diffs.append(f"Removed: {p}")
        elif isinstance(d1[k], dict) and isinstance(d2[k], dict):
            diffs.extend(_deep_diff(d1[k], d2[k], p))
        elif d1[k] != d2[k]:
            # api keys never reach the log
            shown = "***" if "key" in p else f"{d1[k]} -> {d2[k]}"
            diffs.append(f"Changed: {p} ({shown})")
    return diffs


def reload_settings(
    base_path: str = CONFIG_PATH,
    local_path: str = CONFIG_LOCAL_PATH,
    example_path: str = CONFIG_EXAMPLE_PATH,
    force: bool = False,
) -> Settings:
    global _CACHED_SETTINGS, _LAST_LOAD_TIME, _CONFIG_HASH

    with _SETTINGS_LOCK:
        now = time.time()
        # Debounce: 500ms
        if not force and _CACHED_SETTINGS and (now - _LAST_LOAD_TIME < 0.5):
            return _CACHED_SETTINGS

        try:
            base_cfg = _load_json(base_path)
            if not base_cfg.get("gemini") and os.path.exists(example_path):
                base_cfg = _merge_dicts(_load_json(example_path), base_cfg)

            local_cfg = _load_json(local_path)
            merged = _merge_dicts(base_cfg, local_cfg)

            new_hash = hashlib.md5(json.dumps(merged, sort_keys=True).encode("utf-8")).hexdigest()
            if _CACHED_SETTINGS and new_hash == _CONFIG_HASH:
                _LAST_LOAD_TIME = now
                return _CACHED_SETTINGS

            is_reload = _CACHED_SETTINGS is not None
            if is_reload:
                diffs = _deep_diff(_CACHED_SETTINGS.raw, merged)
                if diffs:
                    logger.info(f"Config changes detected: {'; '.join(diffs)}")

            _CACHED_SETTINGS = Settings(raw=merged)
            _CONFIG_HASH = new_hash
            _LAST_LOAD_TIME = now

            if is_reload:
                logger.info("Configuration reloaded successfully.")

        except (OSError, ValueError) as e:
            logger.error(f"Failed to reload config: {e}. Keeping old config.")
            if not _CACHED_SETTINGS:
                logger.warning("Initializing with empty settings due to load failure.")
                _CACHED_SETTINGS = Settings(raw={})

    return _CACHED_SETTINGS


def load_settings() -> Settings:
    """
    Get current settings. Lazy loads on first call.
    Subsequent reloads are handled by the file watcher calling reload_settings().
    """
    if _CACHED_SETTINGS is None:
        return reload_settings()
    return _CACHED_SETTINGS
