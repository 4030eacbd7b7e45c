"""
Модели данных для системы скачивания видео
"""
from .platform import Platform
from .media import ResolutionRequest, ResolvedMedia, StoredFile, DownloadResult

__all__ = ['Platform', 'ResolutionRequest', 'ResolvedMedia', 'StoredFile', 'DownloadResult']
