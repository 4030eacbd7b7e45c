"""
Утилиты для работы с URL и определения платформы
"""
from .utils import (
    normalize_url,
    clean_url,
    get_platform,
    is_supported_url,
    is_short_link,
    has_valid_shape,
    extract_pinterest_pin_id,
    find_url,
    shorten,
)

__all__ = [
    'normalize_url',
    'clean_url',
    'get_platform',
    'is_supported_url',
    'is_short_link',
    'has_valid_shape',
    'extract_pinterest_pin_id',
    'find_url',
    'shorten',
]
