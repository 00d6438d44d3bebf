"""
/**
 * @file dialect_backend/main.py
 * @description FastAPI 应用入口（装配路由、中间件、异常处理与后台任务）。
 */
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from dialect_backend.config import CONFIG_LOCAL_PATH, CONFIG_PATH, Settings, load_settings, reload_settings
from dialect_backend.controllers import AVAILABLE_ENDPOINTS, dialects_router, health_router, translate_router
from dialect_backend.errors import DialectAPIError, InternalError, ValidationError
from dialect_backend.middleware import ActivityMiddleware, FixedWindowLimiter, RateLimitMiddleware
from dialect_backend.models.dialect_catalog import DIALECTS
from dialect_backend.services import (
    ActivityTracker,
    BatchTranslator,
    DialectTranslator,
    KeepAliveScheduler,
    ServerStats,
)
from dialect_backend.services.server_stats_service import run_status_reporter
from dialect_backend.utils import iso_now


logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("dialect-api")


class ConfigEventHandler(FileSystemEventHandler):
    """Handler for config file changes"""

    def on_modified(self, event):
        if event.is_directory:
            return
        if event.src_path in (CONFIG_PATH, CONFIG_LOCAL_PATH):
            reload_settings()


def _start_config_watcher() -> Optional[Observer]:
    try:
        observer = Observer()
        config_dir = os.path.dirname(CONFIG_PATH)
        observer.schedule(ConfigEventHandler(), config_dir, recursive=False)
        observer.start()
        logger.info(f"Config watcher started on {config_dir}")
        return observer
    except OSError as e:
        logger.warning(f"Failed to start config watcher: {e}")
        return None


def _log_banner(settings: Settings, translator: DialectTranslator, scheduler: KeepAliveScheduler) -> None:
    logger.info("=" * 80)
    logger.info("九州方言翻訳API サーバーが起動しました")
    logger.info(f"URL: http://localhost:{settings.port}")
    logger.info(f"対応方言: {', '.join(d.name for d in DIALECTS)}")
    logger.info(f"Gemini API Key: {'設定済み' if translator.is_configured else '未設定'}")
    if not translator.is_configured:
        logger.warning("GEMINI_API_KEY が設定されていません。翻訳機能は動作しません。")
    if scheduler.enabled:
        logger.info(f"Keep-Alive URL: {scheduler.base_url} (interval {int(scheduler.interval)}s)")
    elif settings.is_production:
        logger.warning("本番環境ですが KOYEB_PUBLIC_DOMAIN が未設定です")
    logger.info("=" * 80)


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    _log_banner(state.settings, state.translator, state.scheduler)

    state.scheduler.start()
    reporter = state.reporter = asyncio.create_task(
        run_status_reporter(state.stats, state.activity, state.scheduler, state.settings.status_report_interval)
    )
    observer = _start_config_watcher() if state.watch_config else None

    yield

    logger.info("サーバー終了処理を開始...")
    await state.scheduler.stop()
    reporter.cancel()
    try:
        await reporter
    except asyncio.CancelledError:
        pass
    if observer:
        observer.stop()
        observer.join()
    if state.owns_translator:
        state.translator.close()


def _error_response(exc: DialectAPIError) -> JSONResponse:
    body = exc.to_dict()
    body["timestamp"] = iso_now()
    return JSONResponse(status_code=exc.status_code, content=body)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DialectAPIError)
    async def handle_api_error(request: Request, exc: DialectAPIError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error_response(ValidationError(message="リクエストボディはJSONオブジェクトである必要があります"))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            logger.info(f"404 - 見つからないエンドポイント: {request.method} {request.url.path}")
            return JSONResponse(
                status_code=404,
                content={
                    "success": False,
                    "error": "エンドポイントが見つかりません",
                    "requested_path": request.url.path,
                    "available_endpoints": AVAILABLE_ENDPOINTS,
                    "timestamp": iso_now(),
                },
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail), "timestamp": iso_now()},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled Error: {request.method} {request.url.path}")
        return _error_response(InternalError())


def create_app(
    settings: Optional[Settings] = None,
    translator: Optional[DialectTranslator] = None,
    scheduler: Optional[KeepAliveScheduler] = None,
    watch_config: bool = True,
) -> FastAPI:
    settings = settings or load_settings()
    owns_translator = translator is None
    translator = translator or DialectTranslator(max_workers=settings.chunk_size)
    activity = ActivityTracker()
    if scheduler is None:
        scheduler = KeepAliveScheduler(
            settings.resolve_public_url(),
            startup_delay=settings.keep_alive_startup_delay,
            interval=settings.keep_alive_interval,
            timeout=settings.keep_alive_timeout,
        )

    app = FastAPI(
        title="九州方言翻訳API",
        description="Standard Japanese <-> Kyushu dialect translation backed by Gemini",
        version="2.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.translator = translator
    app.state.batch_translator = BatchTranslator(
        translator.translate,
        chunk_size=settings.chunk_size,
        chunk_pause=settings.chunk_pause_seconds,
        item_timeout=settings.item_timeout_seconds,
    )
    app.state.activity = activity
    app.state.scheduler = scheduler
    app.state.stats = ServerStats()
    app.state.watch_config = watch_config
    app.state.owns_translator = owns_translator

    # last added runs first: activity logging wraps rate limiting
    app.add_middleware(
        RateLimitMiddleware,
        limiter=FixedWindowLimiter(settings.rate_limit_max_requests, settings.rate_limit_window),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ActivityMiddleware, tracker=activity)

    _register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(dialects_router)
    app.include_router(translate_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port, timeout_keep_alive=65)
