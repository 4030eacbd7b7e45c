"""
Модуль для скачивания видео

DownloadManager импортируется из src.downloader.download_manager
(он зависит от резолверов, которые сами используют этот модуль)
"""
from .errors import DownloadError, FetchError, StrategyError
from .fetch_client import FetchClient, FetchRequest, FetchResponse
from .media_fetcher import MediaFetcher
from .optimizer import VideoOptimizer

__all__ = [
    'DownloadError',
    'FetchError',
    'StrategyError',
    'FetchClient',
    'FetchRequest',
    'FetchResponse',
    'MediaFetcher',
    'VideoOptimizer',
]
