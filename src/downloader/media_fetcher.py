"""
MediaFetcher - скачивание видео по прямой ссылке в файл

Ответственность:
- Потоковая запись в уникальный файл в общей директории
- Лимиты размера и общего времени скачивания
- Проверка результата (минимальный размер, сигнатура контейнера)
- Удаление недокачанного файла при любой ошибке

НЕ знает о стратегиях, пользователях и Telegram.
"""
import asyncio
import logging
import os
import secrets
import time
from typing import Callable, Dict, Optional

from src.config import Settings
from src.downloader.errors import FetchTimeoutError, MediaTooSmallError, StorageError
from src.downloader.fetch_client import FetchClient, FetchRequest
from src.models.media import StoredFile
from src.models.platform import Platform
from src.utils.utils import shorten

logger = logging.getLogger(__name__)

PROGRESS_LOG_INTERVAL = 5.0

ProgressCallback = Callable[[int, Optional[int]], None]


def detect_container(head: bytes) -> Optional[str]:
    """Определить контейнер по первым байтам файла (None если не распознан)"""
    if len(head) >= 8 and head[4:8] == b'ftyp':
        return 'mp4'
    if head.startswith(b'\x1a\x45\xdf\xa3'):
        return 'webm'
    if head.startswith(b'FLV'):
        return 'flv'
    # MPEG-TS: байт синхронизации 0x47 каждые 188 байт
    if head[:1] == b'\x47' and (len(head) < 189 or head[188:189] == b'\x47'):
        return 'ts'
    return None


class MediaFetcher:
    """Скачивание видео по прямой ссылке на локальный диск"""

    def __init__(self, client: FetchClient, settings: Settings):
        self.client = client
        self.settings = settings
        self.download_dir = settings.download_dir
        os.makedirs(self.download_dir, exist_ok=True)

    def build_filename(self, platform: Platform, quality_label: Optional[str] = None) -> str:
        """
        Уникальное имя файла: <platform>_<quality>_<epoch-ms>_<random-hex>.mp4

        Случайный суффикс исключает коллизии при одновременных скачиваниях в одну миллисекунду.
        """
        quality = ''.join(c for c in (quality_label or 'HD') if c.isalnum()) or 'HD'
        return f"{platform.value}_{quality}_{int(time.time() * 1000)}_{secrets.token_hex(4)}.mp4"

    def build_headers(self, platform: Platform) -> Dict[str, str]:
        # CDN платформ отдают файл только с Referer своего домена
        origin = f"https://{platform.domain}"
        return {
            'Referer': f"{origin}/",
            'Origin': origin,
            'Accept': '*/*',
        }

    async def store(
        self,
        direct_url: str,
        platform: Platform,
        quality_label: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StoredFile:
        """
        Скачать видео в файл

        Args:
            direct_url: Прямая ссылка (используется один раз)
            platform: Платформа (для имени файла и Referer)
            quality_label: Метка качества (для имени файла)
            on_progress: Callback (скачано байт, всего байт или None)

        Returns:
            StoredFile - файл принадлежит вызывающему коду

        Raises:
            FetchError: Сеть, таймаут, превышение размера, слишком маленький файл
            StorageError: Ошибка записи на диск
        """
        filename = self.build_filename(platform, quality_label)
        filepath = os.path.join(self.download_dir, filename)
        name = platform.display_name

        logger.info(f"[{name}] ⬇️ Скачиваю {quality_label or 'HD'}: {shorten(direct_url)}")

        success = False
        try:
            try:
                size = await asyncio.wait_for(
                    self._download(direct_url, platform, filepath, on_progress),
                    timeout=self.settings.media_timeout,
                )
            except asyncio.TimeoutError as e:
                raise FetchTimeoutError(
                    f"Скачивание не уложилось в {self.settings.media_timeout:.0f} сек"
                ) from e

            if size < self.settings.media_min_size_bytes:
                raise MediaTooSmallError(size, self.settings.media_min_size_bytes)

            self._check_container(filepath, name)
            success = True
        finally:
            if not success:
                self._remove_partial(filepath)

        stored = StoredFile(path=filepath, platform=platform, size_bytes=size)
        logger.info(f"[{name}] ✅ Видео скачано: {filename} ({stored.size_mb:.2f} MB)")
        return stored

    async def _download(
        self,
        direct_url: str,
        platform: Platform,
        filepath: str,
        on_progress: Optional[ProgressCallback],
    ) -> int:
        request = FetchRequest(
            url=direct_url,
            headers=self.build_headers(platform),
            max_size=self.settings.media_max_size,
            max_redirects=max(self.settings.max_redirects, 10),
        )
        downloaded = 0
        last_log = time.monotonic()

        async with self.client.stream(request) as response:
            total = response.content_length
            try:
                output = open(filepath, 'wb')
            except OSError as e:
                raise StorageError(f"Не удалось создать файл {filepath}: {e}") from e

            with output:
                async for chunk in response.iter_chunks():
                    try:
                        output.write(chunk)
                    except OSError as e:
                        raise StorageError(f"Ошибка записи в {filepath}: {e}") from e
                    downloaded += len(chunk)

                    if on_progress is not None:
                        on_progress(downloaded, total)
                    if time.monotonic() - last_log >= PROGRESS_LOG_INTERVAL:
                        logger.info(
                            f"[{platform.display_name}] 📥 Прогресс: {downloaded / 1024 / 1024:.2f} MB"
                            + (f" из {total / 1024 / 1024:.2f} MB" if total else "")
                        )
                        last_log = time.monotonic()

        return downloaded

    def _check_container(self, filepath: str, name: str):
        """Мягкая проверка сигнатуры: несовпадение только логируется"""
        try:
            with open(filepath, 'rb') as f:
                head = f.read(512)
        except OSError as e:
            raise StorageError(f"Не удалось прочитать {filepath}: {e}") from e

        container = detect_container(head)
        if container is None:
            logger.warning(f"[{name}] ⚠️ Неизвестный формат файла {os.path.basename(filepath)}, отправляю как есть")
        else:
            logger.debug(f"[{name}] Контейнер: {container}")

    @staticmethod
    def _remove_partial(filepath: str):
        try:
            os.remove(filepath)
            logger.info(f"🗑️ Недокачанный файл удален: {os.path.basename(filepath)}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Не удалось удалить недокачанный файл {filepath}: {e}")


__all__ = ['MediaFetcher', 'detect_container']
