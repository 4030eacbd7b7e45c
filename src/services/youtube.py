"""
Резолвер YouTube
Содержит всю специфичную логику для YouTube видео/Shorts
yt-dlp используется только для получения метаданных, файл скачивает MediaFetcher
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import yt_dlp

from src.models.media import ResolvedMedia
from src.models.platform import Platform
from .base import BaseResolver, BaseStrategy

logger = logging.getLogger(__name__)


class YtDlpStrategy(BaseStrategy):
    """
    Метаданные через yt-dlp (download=False)

    Выбирается прогрессивный mp4 (видео + аудио в одном файле) с максимальной
    высотой не больше youtube_max_height. Отдельные дорожки не подходят: без ffmpeg их не склеить.
    """

    name = 'ytdlp'

    def _get_ydl_opts(self) -> Dict[str, Any]:
        return {
            'quiet': True,
            'no_warnings': True,
            'noplaylist': True,
            'extract_flat': False,
            'skip_download': True,
            'socket_timeout': self.settings.request_timeout,
            'http_headers': {'User-Agent': self.settings.user_agent},
        }

    def _extract_info(self, url: str) -> Dict[str, Any]:
        with yt_dlp.YoutubeDL(self._get_ydl_opts()) as ydl:
            return ydl.extract_info(url, download=False)

    async def request(self, url: str) -> Any:
        try:
            # yt-dlp синхронный, не блокируем event loop
            return await asyncio.to_thread(self._extract_info, url)
        except yt_dlp.utils.DownloadError as e:
            raise self.fail(f"yt-dlp: {e}") from e

    def parse(self, payload: Dict[str, Any]) -> Optional[ResolvedMedia]:
        if not payload:
            raise self.fail("yt-dlp не вернул метаданные")

        selected = select_progressive_format(payload.get('formats') or [], self.settings.youtube_max_height)
        if selected:
            direct_url = selected['url']
            quality_label = f"{selected['height']}p"
        else:
            direct_url = payload.get('url')
            quality_label = f"{payload['height']}p" if payload.get('height') else None

        return self.media(
            direct_url,
            caption=payload.get('title'),
            author=payload.get('uploader') or payload.get('channel'),
            quality_label=quality_label,
        )


def select_progressive_format(formats: list, max_height: int) -> Optional[Dict[str, Any]]:
    """Лучший mp4 формат с видео и аудио, не выше max_height"""
    candidates = [
        f for f in formats
        if f.get('url')
        and f.get('ext') == 'mp4'
        and f.get('vcodec') not in (None, 'none')
        and f.get('acodec') not in (None, 'none')
        and f.get('height')
        and f['height'] <= max_height
        and f.get('protocol', 'https') in ('http', 'https')
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda f: (f['height'], f.get('tbr') or 0))


class YouTubeResolver(BaseResolver):
    """Резолвер YouTube (Shorts и обычные видео)"""

    platform = Platform.YOUTUBE
    resolve_short_links = False


STRATEGIES = {
    YtDlpStrategy.name: (YtDlpStrategy, None),
}
