"""
Резолвер TikTok
Содержит всю специфичную логику для TikTok: сторонние API и разбор их ответов
"""
import logging
import re
from typing import Any, Dict, Optional

from src.downloader.fetch_client import FetchRequest
from src.models.media import ResolvedMedia
from src.models.platform import Platform
from .base import BaseResolver, BaseStrategy

logger = logging.getLogger(__name__)

_MP4_LINK = re.compile(r'href="(https://[^"]+\.mp4[^"]*)"', re.IGNORECASE)
_PARAGRAPH = re.compile(r'<p[^>]*>([^<]+)</p>', re.IGNORECASE)


class TikWmStrategy(BaseStrategy):
    """
    tikwm.com - JSON API

    Ответ: {"code": 0, "data": {"hdplay": ..., "play": ..., "title": ..., "author": {...}, "music": ...}}
    """

    name = 'tikwm'

    async def request(self, url: str) -> Any:
        return await self.fetch_json(FetchRequest(
            url=self.endpoint,
            method='POST',
            json={'url': url, 'hd': 1},
            headers={'Content-Type': 'application/json'},
        ))

    def parse(self, payload: Dict[str, Any]) -> Optional[ResolvedMedia]:
        if payload.get('code') != 0:
            raise self.fail(payload.get('msg') or 'ошибка API')

        data = payload['data']
        hd_url = data.get('hdplay')
        author = data.get('author') or {}
        return self.media(
            hd_url or data.get('play'),
            caption=data.get('title'),
            author=author.get('nickname') if isinstance(author, dict) else None,
            soundtrack=_music_title(data.get('music_info')) or _as_text(data.get('music')),
            quality_label='HD' if hd_url else 'SD',
        )


class MusicallyDownStrategy(BaseStrategy):
    """musicallydown.com - HTML форма, ссылка на .mp4 ищется в разметке"""

    name = 'musicallydown'

    async def request(self, url: str) -> Any:
        response = await self.fetch(FetchRequest(
            url=self.endpoint,
            method='POST',
            data={'url': url, 'token': ''},
            headers={
                'Origin': 'https://musicallydown.com',
                'Referer': 'https://musicallydown.com/',
            },
        ))
        return response.text()

    def parse(self, payload: str) -> Optional[ResolvedMedia]:
        match = _MP4_LINK.search(payload)
        if not match:
            raise self.fail("ссылка на .mp4 не найдена в ответе")
        caption = _PARAGRAPH.search(payload)
        return self.media(
            match.group(1),
            caption=caption.group(1) if caption else None,
            quality_label='HD',
        )


class SnapTikStrategy(BaseStrategy):
    """snaptik.app - JSON API (последний шанс)"""

    name = 'snaptik'

    async def request(self, url: str) -> Any:
        return await self.fetch_json(FetchRequest(
            url=self.endpoint,
            method='POST',
            json={'url': url},
            headers={'Content-Type': 'application/json'},
        ))

    def parse(self, payload: Dict[str, Any]) -> Optional[ResolvedMedia]:
        if not payload.get('videoUrl'):
            raise self.fail("videoUrl отсутствует в ответе")
        return self.media(
            payload['videoUrl'],
            caption=payload.get('caption'),
            author=_as_text(payload.get('author')),
            quality_label='HD',
        )


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _music_title(music_info: Any) -> Optional[str]:
    if not isinstance(music_info, dict) or not music_info.get('title'):
        return None
    author = music_info.get('author')
    return f"{music_info['title']} - {author}" if author else music_info['title']


class TikTokResolver(BaseResolver):
    """
    Резолвер TikTok

    Знает:
    - Сторонние API, отдающие ссылку на видео TikTok
    - Форматы их ответов

    НЕ знает:
    - Telegram
    - Пользователей
    - Файлы
    """

    platform = Platform.TIKTOK
    # tikwm и остальные API сами понимают vm.tiktok.com
    resolve_short_links = False


STRATEGIES = {
    TikWmStrategy.name: (TikWmStrategy, 'tikwm'),
    MusicallyDownStrategy.name: (MusicallyDownStrategy, 'musicallydown'),
    SnapTikStrategy.name: (SnapTikStrategy, 'snaptik'),
}
