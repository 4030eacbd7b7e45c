"""
DownloadWorker - скачивание и доставка видео пользователю

Каждый запрос выполняется отдельной asyncio задачей:
скачивание -> send_video -> счетчик скачиваний -> удаление файла
"""
import asyncio
import logging
import os
from typing import Optional, Set, Union

from aiogram import Bot, types

from src.config import Settings
from src.database.redis_db import Database
from src.downloader.download_manager import DownloadManager
from src.downloader.errors import DownloadError
from src.models.media import DownloadResult
from src.models.platform import Platform
from src.utils.utils import shorten

logger = logging.getLogger(__name__)

# Лимит подписи к медиа в Telegram
CAPTION_LIMIT = 1024


def build_caption(result: DownloadResult) -> str:
    """Подпись к видео: платформа, автор, оригинальная подпись (обрезается до лимита Telegram)"""
    lines = [f"✅ Ваше видео {result.platform.display_name}!"]
    if result.author:
        lines.append(f"👤 {result.author}")
    if result.soundtrack:
        lines.append(f"🎵 {result.soundtrack}")
    if result.caption:
        lines.append("")
        lines.append(result.caption)
    caption = '\n'.join(lines)
    if len(caption) > CAPTION_LIMIT:
        caption = caption[:CAPTION_LIMIT - 1] + '…'
    return caption


def remove_file(path: str):
    """Удалить файл после отправки (уже удаленный файл - не ошибка)"""
    try:
        os.remove(path)
        logger.info(f"[worker] 🗑️ Временный файл удален: {os.path.basename(path)}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"[worker] Не удалось удалить временный файл {path}: {e}")


class DownloadWorker:
    """
    Исполнитель запросов на скачивание

    Запросы независимы: общих блокировок нет, каждый запрос - своя задача.
    """

    def __init__(self, manager: DownloadManager, bot: Bot, db: Database, settings: Settings):
        self.manager = manager
        self.bot = bot
        self.db = db
        self.settings = settings
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active(self) -> int:
        return len(self._tasks)

    def submit(self, user_id: int, url: str, platform_hint: Union[Platform, str, None] = None) -> asyncio.Task:
        """Запустить скачивание в фоне и сразу вернуть управление"""
        task = asyncio.create_task(self.process(user_id, url, platform_hint))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"[worker] Задача принята: user_id={user_id}, активных задач: {self.active}")
        return task

    async def process(
        self,
        user_id: int,
        url: str,
        platform_hint: Union[Platform, str, None] = None,
    ) -> Optional[DownloadResult]:
        """
        Скачать видео и отправить пользователю

        Returns:
            DownloadResult или None при ошибке (пользователь получает текст ошибки)
        """
        logger.info(f"[worker] ⬇️ Скачивание для user_id={user_id}: {shorten(url)}")
        try:
            result = await self.manager.download_video(url, platform_hint)
        except DownloadError as e:
            logger.warning(f"[worker] Скачивание не удалось для user_id={user_id}: {e}")
            await self._send_error(user_id, e.user_message(self.settings.verbose_errors))
            return None
        except Exception as e:
            logger.error(f"[worker] ❌ Неожиданная ошибка скачивания для user_id={user_id}: {e}", exc_info=True)
            await self._send_error(user_id, DownloadError().user_message())
            return None

        try:
            await self.bot.send_video(
                chat_id=user_id,
                video=types.FSInputFile(result.path),
                caption=build_caption(result),
                supports_streaming=True,
            )
            logger.info(f"[worker] 📤 Видео отправлено user_id={user_id} ({result.size_bytes / 1024 / 1024:.2f} MB)")
        except Exception as e:
            logger.error(f"[worker] Ошибка отправки видео user_id={user_id}: {e}", exc_info=True)
            await self._send_error(user_id, DownloadError().user_message())
            return None
        finally:
            remove_file(result.path)

        try:
            await self.db.increment_downloads(user_id)
        except Exception as e:
            logger.error(f"[worker] ⚠️ Redis недоступен, счетчик не обновлен: {e}")

        return result

    async def _send_error(self, user_id: int, text: str):
        try:
            await self.bot.send_message(chat_id=user_id, text=text)
        except Exception as e:
            logger.error(f"[worker] Не удалось отправить сообщение об ошибке user_id={user_id}: {e}")

    async def shutdown(self, timeout: float = 30.0):
        """Дождаться активных задач (остальные отменяются по таймауту)"""
        if not self._tasks:
            return
        logger.info(f"[worker] Ожидание {self.active} активных задач...")
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"[worker] ⚠️ Отменено задач: {len(pending)}")
        logger.info("[worker] Worker остановлен")
