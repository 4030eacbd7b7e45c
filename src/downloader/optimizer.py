"""
VideoOptimizer - перепаковка mp4 для быстрого старта воспроизведения в Telegram

Без перекодирования: ffmpeg -c copy -movflags +faststart (moov атом переносится в начало файла).
Любая ошибка оставляет исходный файл без изменений.
"""
import asyncio
import logging
import os
import shutil
from typing import Optional

logger = logging.getLogger(__name__)


class VideoOptimizer:
    """Необязательная оптимизация скачанного видео (best effort)"""

    def __init__(self, ffmpeg_path: Optional[str] = None, timeout: float = 60.0):
        self.ffmpeg_path = ffmpeg_path or shutil.which('ffmpeg')
        self.timeout = timeout
        if not self.ffmpeg_path:
            logger.warning("⚠️ ffmpeg не найден, оптимизация видео отключена")

    @property
    def available(self) -> bool:
        return bool(self.ffmpeg_path)

    async def optimize(self, filepath: str) -> bool:
        """
        Перепаковать файл на месте

        Returns:
            True если файл заменен оптимизированной версией
        """
        if not self.available:
            return False

        root, ext = os.path.splitext(filepath)
        temp_path = f"{root}.faststart{ext or '.mp4'}"
        cmd = [
            self.ffmpeg_path, '-y', '-loglevel', 'error',
            '-i', filepath,
            '-c', 'copy',
            '-movflags', '+faststart',
            temp_path,
        ]

        replaced = False
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                logger.warning(f"⚠️ ffmpeg не уложился в {self.timeout:.0f} сек, оставляю исходный файл")
                return False

            if process.returncode != 0:
                message = stderr.decode(errors='replace').strip()[:200]
                logger.warning(f"⚠️ ffmpeg завершился с кодом {process.returncode}: {message}")
                return False

            os.replace(temp_path, filepath)
            replaced = True
            logger.info(f"✅ Видео оптимизировано: {os.path.basename(filepath)}")
            return True
        except OSError as e:
            logger.warning(f"⚠️ Ошибка оптимизации {os.path.basename(filepath)}: {e}")
            return False
        finally:
            if not replaced and os.path.exists(temp_path):
                os.remove(temp_path)
