"""
Резолвер Instagram
Содержит всю специфичную логику для Instagram Reels/постов
"""
import html
import json
import logging
import re
from typing import Any, Dict, Optional

from src.downloader.fetch_client import FetchRequest
from src.models.media import ResolvedMedia
from src.models.platform import Platform
from .base import BaseResolver, BaseStrategy

logger = logging.getLogger(__name__)

_MP4_LINK = re.compile(r'href="(https://[^"]+\.mp4[^"]*)"', re.IGNORECASE)
_DOWNLOAD_LINK = re.compile(r'href="(https://[^"]+)"[^>]*class="[^"]*download[^"]*"', re.IGNORECASE)
_DESC = re.compile(r'<p[^>]*class="[^"]*desc[^"]*"[^>]*>([^<]+)</p>', re.IGNORECASE)

_JSON_LD = re.compile(r'<script[^>]*type="application/ld\+json"[^>]*>(.+?)</script>', re.IGNORECASE | re.DOTALL)
_META = re.compile(r'<meta[^>]+(?:property|name)="([^"]+)"[^>]+content="([^"]*)"', re.IGNORECASE)
_META_REVERSED = re.compile(r'<meta[^>]+content="([^"]*)"[^>]+(?:property|name)="([^"]+)"', re.IGNORECASE)


class IgDownloaderStrategy(BaseStrategy):
    """
    igdownloader.app - агрегатор, отдает JSON с HTML внутри поля data

    Сначала ищется прямая ссылка на .mp4, затем ссылка с классом download
    """

    name = 'igdownloader'

    async def request(self, url: str) -> Any:
        response = await self.fetch(FetchRequest(
            url=self.endpoint,
            params={'recaptchaToken': '', 'q': url, 't': 'media', 'lang': 'en'},
            headers={
                'Origin': 'https://igdownloader.app',
                'Referer': 'https://igdownloader.app/',
            },
        ))
        try:
            payload = response.json()
        except ValueError:
            return response.text()
        return payload

    def parse(self, payload: Any) -> Optional[ResolvedMedia]:
        markup = payload.get('data') if isinstance(payload, dict) else payload
        if not isinstance(markup, str) or not markup:
            raise self.fail("пустой ответ агрегатора")

        match = _MP4_LINK.search(markup) or _DOWNLOAD_LINK.search(markup)
        if not match:
            raise self.fail("видео не найдено в ответе")

        caption = _DESC.search(markup)
        return self.media(
            html.unescape(match.group(1)),
            caption=html.unescape(caption.group(1)) if caption else None,
            quality_label='HD',
        )


class VidloderStrategy(BaseStrategy):
    """vidloder.com - JSON API"""

    name = 'vidloder'

    async def request(self, url: str) -> Any:
        return await self.fetch_json(FetchRequest(
            url=self.endpoint,
            method='POST',
            json={'url': url, 'type': 'instagram'},
            headers={'Content-Type': 'application/json'},
        ))

    def parse(self, payload: Dict[str, Any]) -> Optional[ResolvedMedia]:
        if not payload.get('videoUrl'):
            raise self.fail("videoUrl отсутствует в ответе")
        return self.media(payload['videoUrl'], caption=payload.get('caption'), quality_label='HD')


class InstagramPageStrategy(BaseStrategy):
    """
    Разбор публичной страницы поста

    Работает только для публичных постов, которые Instagram отдает без логина:
    JSON-LD (VideoObject.contentUrl), затем мета-тег og:video
    """

    name = 'page'

    async def request(self, url: str) -> Any:
        response = await self.fetch(FetchRequest(
            url=url,
            headers={
                'Accept': 'text/html,application/xhtml+xml',
                'Accept-Language': 'en-US,en;q=0.9',
            },
        ))
        return response.text()

    def parse(self, payload: str) -> Optional[ResolvedMedia]:
        meta = _parse_meta(payload)

        for block in _JSON_LD.findall(payload):
            try:
                data = json.loads(block)
            except ValueError:
                continue
            video = _find_video_object(data)
            if video and video.get('contentUrl'):
                author = video.get('author')
                return self.media(
                    video['contentUrl'],
                    caption=video.get('caption') or video.get('description') or meta.get('og:description'),
                    author=author.get('alternateName') or author.get('name') if isinstance(author, dict) else None,
                    quality_label='HD',
                )

        video_url = meta.get('og:video:secure_url') or meta.get('og:video')
        if not video_url:
            raise self.fail("видео не найдено на странице (пост приватный или это фото)")
        return self.media(
            video_url,
            caption=meta.get('og:description') or meta.get('og:title'),
            quality_label='SD',
        )


def _parse_meta(markup: str) -> Dict[str, str]:
    meta = {}
    for key, value in _META.findall(markup):
        meta.setdefault(key.lower(), html.unescape(value))
    for value, key in _META_REVERSED.findall(markup):
        meta.setdefault(key.lower(), html.unescape(value))
    return meta


def _find_video_object(data: Any) -> Optional[Dict[str, Any]]:
    """Найти VideoObject в JSON-LD (может быть списком, @graph или вложенным video)"""
    if isinstance(data, list):
        for item in data:
            found = _find_video_object(item)
            if found:
                return found
        return None
    if not isinstance(data, dict):
        return None
    if data.get('@type') == 'VideoObject':
        return data
    for key in ('video', '@graph'):
        if key in data:
            found = _find_video_object(data[key])
            if found:
                return found
    return None


class InstagramResolver(BaseResolver):
    """Резолвер Instagram (Reels, посты, IGTV)"""

    platform = Platform.INSTAGRAM
    resolve_short_links = False


STRATEGIES = {
    IgDownloaderStrategy.name: (IgDownloaderStrategy, 'igdownloader'),
    VidloderStrategy.name: (VidloderStrategy, 'vidloder'),
    InstagramPageStrategy.name: (InstagramPageStrategy, None),
}
