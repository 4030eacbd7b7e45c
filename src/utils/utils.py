"""
Утилиты для работы с URL и определения платформы
"""
import re
from typing import Optional
from urllib.parse import urlparse

from src.models.platform import Platform


# Сигнатуры платформ по хосту. Порядок важен: первая совпавшая побеждает
PLATFORM_SIGNATURES = [
    (Platform.TIKTOK, re.compile(r'(^|\.)tiktok\.com$')),
    (Platform.INSTAGRAM, re.compile(r'(^|\.)instagram\.com$')),
    (Platform.PINTEREST, re.compile(r'(^|\.)(pinterest\.[a-z]{2,3}(\.[a-z]{2})?|pin\.it)$')),
    (Platform.YOUTUBE, re.compile(r'(^|\.)(youtube\.com|youtu\.be)$')),
]

# Короткие ссылки, которые редиректят на полную ссылку
SHORT_LINK_HOSTS = {
    Platform.TIKTOK: ('vm.tiktok.com', 'vt.tiktok.com'),
    Platform.PINTEREST: ('pin.it',),
    Platform.YOUTUBE: ('youtu.be',),
}

# Структура ссылки на видео (проверяется до сетевых запросов)
URL_SHAPES = {
    Platform.TIKTOK: re.compile(r'/(?:video|v|photo)/\d+|/t/[\w-]+'),
    Platform.INSTAGRAM: re.compile(r'/(?:p|reel|reels|tv|share(?:/reel)?)/[\w-]+'),
    Platform.PINTEREST: re.compile(r'/pin/[\w-]+'),
    Platform.YOUTUBE: re.compile(r'[?&]v=[\w-]+|/(?:shorts|embed|live)/[\w-]+'),
}

URL_SHAPE_EXAMPLES = {
    Platform.TIKTOK: 'https://www.tiktok.com/@user/video/7234567890123456789',
    Platform.INSTAGRAM: 'https://www.instagram.com/reel/C1a2B3c4D5e/',
    Platform.PINTEREST: 'https://www.pinterest.com/pin/123456789012345678/',
    Platform.YOUTUBE: 'https://www.youtube.com/shorts/dQw4w9WgXcQ',
}

_URL_WITH_SCHEME = re.compile(r'https?://[^\s<>"\']+', re.IGNORECASE)
_BARE_URL = re.compile(r'(?:[\w-]+\.)+[a-z]{2,}(?:/[^\s]*)?', re.IGNORECASE)


def normalize_url(url: str) -> str:
    """
    Нормализация введенной пользователем ссылки

    Убирает пробелы и добавляет https://, если схема не указана
    (instagram.com/reel/... -> https://instagram.com/reel/...)
    """
    url = url.strip().strip('<>"\'')
    if url and not re.match(r'^[a-z][a-z0-9+.-]*://', url, re.IGNORECASE):
        url = f"https://{url}"
    return url


def clean_url(url: str) -> str:
    """
    Убрать артефакты экранирования, которые остаются в ссылках из JSON внутри HTML

    https:\\/\\/cdn.example\\/v.mp4?a=1\\u0026b=2 -> https://cdn.example/v.mp4?a=1&b=2
    """
    if not url:
        return url
    url = url.strip().strip('"\'')
    url = url.replace('\\/', '/')
    url = re.sub(r'\\u0026|\\x26', '&', url, flags=re.IGNORECASE)
    url = url.replace('&amp;', '&')
    url = url.replace('\\', '')
    return url


def get_host(url: str) -> str:
    """Хост ссылки в нижнем регистре (пустая строка для мусора)"""
    try:
        host = urlparse(normalize_url(url)).hostname
    except ValueError:
        return ''
    return (host or '').lower()


def get_platform(url: str) -> Optional[Platform]:
    """Определение платформы по URL (None если платформа не поддерживается)"""
    host = get_host(url)
    if not host:
        return None
    for platform, signature in PLATFORM_SIGNATURES:
        if signature.search(host):
            return platform
    return None


def is_supported_url(url: str) -> bool:
    """Проверка, поддерживается ли URL"""
    return get_platform(url) is not None


def is_short_link(url: str, platform: Platform) -> bool:
    """Является ли ссылка короткой (требует разрешения редиректа)"""
    return get_host(url) in SHORT_LINK_HOSTS.get(platform, ())


def has_valid_shape(url: str, platform: Platform) -> bool:
    """
    Проверка структуры ссылки без HTTP-запросов

    Короткие ссылки считаются корректными, если в них есть путь
    (их содержимое проверит сама платформа после редиректа)
    """
    url = normalize_url(url)
    parsed = urlparse(url)
    if is_short_link(url, platform):
        return len(parsed.path.strip('/')) > 0
    shape = URL_SHAPES.get(platform)
    if shape is None:
        return True
    target = parsed.path + (f"?{parsed.query}" if parsed.query else '')
    return bool(shape.search(target))


def extract_pinterest_pin_id(url: str) -> Optional[str]:
    """Извлечь ID пина из полной ссылки Pinterest"""
    match = re.search(r'/pin/(\d+)', url) or re.search(r'/pin/[^/?]*?-(\d{6,})(?:[/?]|$)', url)
    if not match:
        match = re.search(r'/(\d+)(?:/|$|\?)', urlparse(url).path)
    return match.group(1) if match else None


def find_url(text: str) -> Optional[str]:
    """Найти первую ссылку в тексте сообщения"""
    if not text:
        return None
    # Ссылка со схемой важнее голого домена (clip.mp4 в тексте - не ссылка)
    match = _URL_WITH_SCHEME.search(text) or _BARE_URL.search(text)
    return normalize_url(match.group(0)) if match else None


def shorten(url: str, limit: int = 100) -> str:
    """Обрезать длинную (подписанную) ссылку для логов"""
    return url if len(url) <= limit else f"{url[:limit]}..."
