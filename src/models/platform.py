"""
Platform - идентификатор поддерживаемой платформы
"""
from enum import Enum


class Platform(str, Enum):
    """
    Поддерживаемые платформы

    Значение совпадает с ключом в настройках (порядок стратегий, эндпоинты)
    и с префиксом имени скачанного файла.
    """
    TIKTOK = 'tiktok'
    INSTAGRAM = 'instagram'
    PINTEREST = 'pinterest'
    YOUTUBE = 'youtube'

    @property
    def display_name(self) -> str:
        """Название для сообщений пользователю"""
        return _TITLES[self]

    @property
    def domain(self) -> str:
        """Собственный домен платформы (для Referer/Origin)"""
        return _DOMAINS[self]


_TITLES = {
    Platform.TIKTOK: 'TikTok',
    Platform.INSTAGRAM: 'Instagram',
    Platform.PINTEREST: 'Pinterest',
    Platform.YOUTUBE: 'YouTube',
}

_DOMAINS = {
    Platform.TIKTOK: 'www.tiktok.com',
    Platform.INSTAGRAM: 'www.instagram.com',
    Platform.PINTEREST: 'www.pinterest.com',
    Platform.YOUTUBE: 'www.youtube.com',
}
