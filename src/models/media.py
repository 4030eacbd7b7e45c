"""
Модели результата разрешения ссылки и скачанного файла
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .platform import Platform


@dataclass(frozen=True)
class ResolutionRequest:
    """Запрос на разрешение ссылки (живет в рамках одного скачивания)"""
    source_url: str
    platform: Platform


@dataclass(frozen=True)
class ResolvedMedia:
    """
    Прямая ссылка на видео и метаданные, найденные стратегией

    Attributes:
        direct_url: Прямая (часто подписанная и короткоживущая) ссылка на файл
        caption: Подпись/описание
        author: Автор
        soundtrack: Название звуковой дорожки
        quality_label: Метка качества (HD, SD, 720p, ...)
        strategy: Имя стратегии, которая нашла ссылку
    """
    direct_url: str
    caption: Optional[str] = None
    author: Optional[str] = None
    soundtrack: Optional[str] = None
    quality_label: Optional[str] = None
    strategy: Optional[str] = None


@dataclass(frozen=True)
class StoredFile:
    """Скачанный файл. После возврата принадлежит вызывающему коду"""
    path: str
    platform: Platform
    size_bytes: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


@dataclass
class DownloadResult:
    """
    Результат скачивания для бота/API

    Создается DownloadManager. Вызывающий код отправляет файл пользователю
    и удаляет его (очистка по возрасту - только страховка).
    """
    path: str
    platform: Platform
    size_bytes: int
    caption: Optional[str] = None
    author: Optional[str] = None
    soundtrack: Optional[str] = None
    quality_label: Optional[str] = None

    @classmethod
    def from_parts(cls, stored: StoredFile, media: ResolvedMedia) -> 'DownloadResult':
        return cls(
            path=stored.path,
            platform=stored.platform,
            size_bytes=stored.size_bytes,
            caption=media.caption,
            author=media.author,
            soundtrack=media.soundtrack,
            quality_label=media.quality_label,
        )
