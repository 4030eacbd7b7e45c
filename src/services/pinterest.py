"""
Резолвер Pinterest
Видео-пины: внутренний ресурс PinResource и разбор страницы пина
"""
import json
import logging
import re
from typing import Any, Dict, Optional

from src.downloader.fetch_client import FetchRequest
from src.models.media import ResolvedMedia
from src.models.platform import Platform
from src.utils.utils import extract_pinterest_pin_id
from .base import BaseResolver, BaseStrategy, pick_variant

logger = logging.getLogger(__name__)

# V_720P лучше всего подходит для Telegram, HLS - запасной вариант
VIDEO_PREFERENCE = ('V_720P', 'V_HLSV4')

_PWS_DATA = re.compile(r'<script id="__PWS_DATA__" type="application/json">(\{.+?\})</script>', re.DOTALL)
_REDUX_STATE = re.compile(r'window\.initial-redux-state\s*=\s*(\{.+?\});', re.DOTALL)


class NotAVideoPin(Exception):
    """Пин найден, но это изображение"""


def select_video(pin: Dict[str, Any]) -> tuple:
    """
    Выбрать вариант видео пина

    Returns:
        (метка качества, URL)

    Raises:
        NotAVideoPin: У пина нет видео
    """
    videos = pin.get('videos')
    if not videos:
        raise NotAVideoPin()
    chosen = pick_variant(videos['video_list'], VIDEO_PREFERENCE)
    if chosen is None:
        raise KeyError('video_list')
    label, variant = chosen
    return label, variant['url']


def find_pin_data(obj: Any) -> Optional[Dict[str, Any]]:
    """Рекурсивный поиск данных пина в JSON страницы"""
    if not isinstance(obj, (dict, list)):
        return None
    if isinstance(obj, list):
        for item in obj:
            found = find_pin_data(item)
            if found:
                return found
        return None

    if obj.get('videos') and obj.get('id'):
        return obj
    for key, value in obj.items():
        if isinstance(key, str) and key.startswith('pin-') and isinstance(value, dict):
            return value
        found = find_pin_data(value)
        if found:
            return found
    return None


class PinterestStrategy(BaseStrategy):

    def media_from_pin(self, pin: Dict[str, Any]) -> Optional[ResolvedMedia]:
        try:
            label, video_url = select_video(pin)
        except NotAVideoPin:
            raise self.fail("пин не является видео (это изображение)")
        pinner = pin.get('pinner') or {}
        return self.media(
            video_url,
            caption=pin.get('description') or pin.get('title') or pin.get('grid_title'),
            author=pinner.get('full_name') or pinner.get('username') if isinstance(pinner, dict) else None,
            quality_label=label,
        )


class PinResourceStrategy(PinterestStrategy):
    """
    Внутренний JSON ресурс PinResource/get

    Запрос: data={"options": {"id": <pin_id>, "field_set_key": "unauth_react"}}
    Ответ: resource_response.data.videos.video_list
    """

    name = 'resource'

    async def request(self, url: str) -> Any:
        pin_id = extract_pinterest_pin_id(url)
        if not pin_id:
            raise self.fail("не удалось извлечь ID пина из ссылки")
        logger.debug(f"[Pinterest] Pin ID: {pin_id}")

        return await self.fetch_json(FetchRequest(
            url=self.endpoint,
            params={'data': json.dumps({'options': {'id': pin_id, 'field_set_key': 'unauth_react'}})},
            headers={
                'X-Requested-With': 'XMLHttpRequest',
                'X-APPLES': 'pleased',
                'Accept': 'application/json, text/javascript, */*; q=0.01',
            },
        ))

    def parse(self, payload: Dict[str, Any]) -> Optional[ResolvedMedia]:
        pin = (payload.get('resource_response') or {}).get('data')
        if not pin:
            raise self.fail("данные пина не получены")
        return self.media_from_pin(pin)


class PinterestPageStrategy(PinterestStrategy):
    """Разбор страницы пина: JSON в __PWS_DATA__ или initial-redux-state"""

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
        match = _PWS_DATA.search(payload) or _REDUX_STATE.search(payload)
        if not match:
            raise self.fail("JSON данные не найдены на странице")

        pin = find_pin_data(json.loads(match.group(1)))
        if not pin:
            raise self.fail("пин не найден в данных страницы")
        return self.media_from_pin(pin)


class PinterestResolver(BaseResolver):
    """Резолвер Pinterest (pin.it разрешается до запуска стратегий, ID пина нужен из полной ссылки)"""

    platform = Platform.PINTEREST
    resolve_short_links = True


STRATEGIES = {
    PinResourceStrategy.name: (PinResourceStrategy, 'pinterest_resource'),
    PinterestPageStrategy.name: (PinterestPageStrategy, None),
}
