"""
Очистка директории скачиваний

Страховка на случай, если файл не был удален после отправки (падение, ошибка Telegram).
Удаляются только файлы старше max_age: свежий файл может быть в процессе скачивания или отправки.
"""
import asyncio
import logging
import os
import time
from typing import Optional

logger = logging.getLogger(__name__)


def sweep_directory(directory: str, max_age_seconds: float, now: Optional[float] = None) -> int:
    """
    Удалить файлы старше max_age_seconds (по времени изменения)

    Args:
        directory: Директория скачиваний
        max_age_seconds: Максимальный возраст файла
        now: Текущее время (timestamp), по умолчанию time.time()

    Returns:
        Количество удаленных файлов
    """
    if now is None:
        now = time.time()

    try:
        entries = list(os.scandir(directory))
    except FileNotFoundError:
        return 0

    cleaned = 0
    for entry in entries:
        try:
            if not entry.is_file(follow_symlinks=False):
                continue
            if now - entry.stat().st_mtime <= max_age_seconds:
                continue
            os.remove(entry.path)
        except FileNotFoundError:
            # Файл уже удален после отправки
            continue
        except OSError as e:
            logger.error(f"[cleanup] Ошибка удаления {entry.name}: {e}")
            continue
        cleaned += 1
        logger.info(f"[cleanup] 🗑️ Старый файл удален: {entry.name}")

    if cleaned:
        logger.info(f"[cleanup] ✅ Очищено файлов: {cleaned}")
    return cleaned


class RetentionSweeper:
    """Периодическая очистка директории скачиваний (первый проход - сразу при старте)"""

    def __init__(self, directory: str, interval: float = 30 * 60, max_age: float = 60 * 60):
        self.directory = directory
        self.interval = interval
        self.max_age = max_age
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        return sweep_directory(self.directory, self.max_age)

    async def _loop(self):
        logger.info(
            f"[cleanup] Очистка запущена: каждые {self.interval:.0f} сек, "
            f"максимальный возраст {self.max_age:.0f} сек"
        )
        while True:
            try:
                await asyncio.to_thread(self.run_once)
            except Exception as e:
                logger.error(f"[cleanup] Ошибка очистки: {e}", exc_info=True)
            await asyncio.sleep(self.interval)

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[cleanup] Очистка остановлена")
