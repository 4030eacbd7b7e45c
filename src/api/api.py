"""
HTTP API для web-app (Telegram Mini App)
Статус бесплатного времени, просмотр рекламы и запуск скачивания
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from src.config import Settings
from src.database.redis_db import Database
from src.downloader.download_manager import DownloadManager
from src.downloader.errors import DownloadError, UnsupportedPlatformError
from src.models.platform import Platform
from src.utils.utils import normalize_url
from src.workers.download_worker import DownloadWorker

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class WatchAdRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(None, alias='userId')


class DownloadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(None, alias='userId')
    url: Optional[str] = None
    platform: Optional[str] = None


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'message': message, **extra})


def create_app(
    settings: Settings,
    db: Database,
    worker: DownloadWorker,
    manager: DownloadManager,
) -> FastAPI:
    """Собрать FastAPI приложение с зависимостями"""
    app = FastAPI(title="Video Downloader API", version=API_VERSION)
    app.add_middleware(CORSMiddleware, allow_origins=['*'], allow_methods=['*'], allow_headers=['*'])

    @app.get("/")
    async def root():
        return {
            'name': 'Video Downloader API',
            'version': API_VERSION,
            'endpoints': {
                'status': 'GET /api/status/{user_id}',
                'watchAd': 'POST /api/watch-ad',
                'download': 'POST /api/download',
            },
        }

    @app.get("/health")
    async def health():
        return {
            'status': 'OK',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'bot': 'running',
        }

    @app.get("/api/status/{user_id}")
    async def free_time_status(user_id: int):
        """Статус бесплатного времени пользователя"""
        status = await db.get_free_time_status(user_id)
        return {
            'hasFreeTime': status['has_free_time'],
            'expiresAt': status['expires_at'],
            'remainingMinutes': status['remaining_minutes'],
        }

    @app.post("/api/watch-ad")
    async def watch_ad(body: WatchAdRequest):
        """Пользователь посмотрел рекламу - выдаем бесплатное время"""
        if not body.user_id:
            return _error(400, 'User ID не указан')

        free_until = await db.grant_free_time(body.user_id, hours=settings.free_time_hours)
        logger.info(f"✅ User {body.user_id} посмотрел рекламу - бесплатно до {free_until.isoformat()}")
        return {
            'success': True,
            'freeUntil': free_until.isoformat(),
            'message': f'{settings.free_time_hours:g} ч бесплатных скачиваний активировано',
        }

    @app.post("/api/download")
    async def download(body: DownloadRequest):
        """
        Запустить скачивание

        Ответ приходит сразу, видео отправляется ботом в личные сообщения.
        """
        if not body.user_id or not body.url:
            return _error(400, 'Не хватает данных')

        if not await db.has_free_access(body.user_id):
            return _error(403, 'Посмотрите рекламу, чтобы продолжить', needsAd=True)

        url = normalize_url(body.url)
        try:
            platform = manager.detect_platform(url, body.platform)
            manager.validate_shape(url, platform)
        except UnsupportedPlatformError as e:
            return _error(400, e.user_message(), supported=[p.value for p in Platform])
        except DownloadError as e:
            return _error(400, e.user_message())

        logger.info(f"📥 Запрос на скачивание - User: {body.user_id}, платформа: {platform.display_name}")
        worker.submit(body.user_id, url, platform)
        return {'success': True, 'platform': platform.value, 'message': 'Скачивание началось...'}

    @app.exception_handler(Exception)
    async def unhandled_error(request, exc):
        logger.error(f"Ошибка API {request.url.path}: {exc}", exc_info=exc)
        return _error(500, 'Внутренняя ошибка сервера')

    return app


__all__ = ['create_app']
