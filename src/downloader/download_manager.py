"""
DownloadManager - координатор системы скачивания видео
Ссылка -> платформа -> прямая ссылка -> файл на диске
"""
import logging
import os
from dataclasses import replace
from typing import Optional, Union

from src.config import Settings
from src.downloader.errors import (
    DownloadError,
    FetchError,
    FetchFailedError,
    InvalidUrlShapeError,
    ResolutionError,
    ResolutionFailedError,
    StorageError,
    StorageFailedError,
    UnsupportedPlatformError,
)
from src.downloader.media_fetcher import MediaFetcher, ProgressCallback
from src.downloader.optimizer import VideoOptimizer
from src.models.media import DownloadResult, ResolutionRequest
from src.models.platform import Platform
from src.services.service_factory import ServiceFactory
from src.utils.utils import URL_SHAPE_EXAMPLES, get_platform, has_valid_shape, normalize_url, shorten

logger = logging.getLogger(__name__)


class DownloadManager:
    """
    Координатор системы скачивания видео

    Ответственность:
    - Определение платформы и проверка структуры ссылки (без сети)
    - Вызов резолвера платформы
    - Скачивание файла через MediaFetcher
    - Перевод внутренних ошибок в DownloadError с текстом для пользователя

    НЕ делает:
    - Не повторяет запросы (повторы - это следующая стратегия резолвера)
    - Не работает с Telegram и пользователями (это делает DownloadWorker)
    - Не удаляет файл после отправки (файл принадлежит вызывающему коду)
    """

    def __init__(
        self,
        settings: Settings,
        factory: ServiceFactory,
        media_fetcher: MediaFetcher,
        optimizer: Optional[VideoOptimizer] = None,
    ):
        self.settings = settings
        self.factory = factory
        self.media_fetcher = media_fetcher
        self.optimizer = optimizer

    def detect_platform(self, url: str, platform_hint: Union[Platform, str, None] = None) -> Platform:
        """
        Определить платформу по ссылке

        Подсказка вызывающего кода не может переопределить платформу, найденную по ссылке.

        Raises:
            UnsupportedPlatformError: Ссылка не относится ни к одной платформе
        """
        platform = get_platform(url)
        if platform is None:
            raise UnsupportedPlatformError(url)

        if platform_hint:
            hint = platform_hint.value if isinstance(platform_hint, Platform) else str(platform_hint).lower()
            if hint != platform.value:
                logger.warning(
                    f"⚠️ Подсказка платформы '{hint}' не совпадает со ссылкой, "
                    f"использую {platform.display_name}"
                )
        return platform

    def validate_shape(self, url: str, platform: Platform):
        """
        Raises:
            InvalidUrlShapeError: В ссылке нет идентификатора видео/поста/пина
        """
        if not has_valid_shape(url, platform):
            raise InvalidUrlShapeError(url, platform, URL_SHAPE_EXAMPLES[platform])

    async def download(
        self,
        url: str,
        platform_hint: Union[Platform, str, None] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DownloadResult:
        """
        Главный метод: скачать видео по ссылке пользователя

        Args:
            url: Ссылка пользователя
            platform_hint: Платформа, выбранная пользователем (необязательно)
            on_progress: Callback прогресса скачивания

        Returns:
            DownloadResult - файл принадлежит вызывающему коду

        Raises:
            DownloadError: Подкласс с текстом для пользователя
        """
        url = normalize_url(url)
        platform = self.detect_platform(url, platform_hint)
        self.validate_shape(url, platform)
        request = ResolutionRequest(source_url=url, platform=platform)
        name = platform.display_name

        resolver = self.factory.get_resolver(platform)
        if resolver is None:
            raise UnsupportedPlatformError(url)

        logger.info(f"[{name}] 🎬 Запрос на скачивание: {shorten(request.source_url)}")

        try:
            media = await resolver.resolve(request.source_url)
        except ResolutionError as e:
            raise ResolutionFailedError(platform, e) from e

        try:
            stored = await self.media_fetcher.store(
                media.direct_url,
                platform,
                quality_label=media.quality_label,
                on_progress=on_progress,
            )
        except FetchError as e:
            logger.error(f"[{name}] ❌ Ошибка скачивания файла: {e}")
            raise FetchFailedError(platform, e) from e
        except (StorageError, OSError) as e:
            logger.error(f"[{name}] ❌ Ошибка записи файла: {e}")
            raise StorageFailedError(platform, e) from e

        if self.optimizer is not None and self.settings.optimize_videos:
            if await self.optimizer.optimize(stored.path):
                # Файл заменен результатом ffmpeg
                stored = replace(stored, size_bytes=os.path.getsize(stored.path))

        return DownloadResult.from_parts(stored, media)

    async def download_video(
        self,
        url: str,
        platform_hint: Union[Platform, str, None] = None,
    ) -> DownloadResult:
        """Скачать видео (алиас download для внешних вызовов)"""
        return await self.download(url, platform_hint)


__all__ = ['DownloadManager', 'DownloadError']
