"""
Резолверы платформ (TikTok, Instagram, Pinterest, YouTube) и их стратегии
"""
from .base import BaseResolver, BaseStrategy
from .instagram import InstagramResolver
from .pinterest import PinterestResolver
from .tiktok import TikTokResolver
from .youtube import YouTubeResolver
from .service_factory import ServiceFactory

__all__ = [
    'BaseResolver',
    'BaseStrategy',
    'InstagramResolver',
    'PinterestResolver',
    'TikTokResolver',
    'YouTubeResolver',
    'ServiceFactory',
]
