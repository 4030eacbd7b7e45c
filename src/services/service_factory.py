"""
Фабрика резолверов платформ
"""
import logging
from typing import Dict, Optional

from src.config import Settings
from src.downloader.fetch_client import FetchClient
from src.models.platform import Platform
from src.services import instagram, pinterest, tiktok, youtube
from src.services.base import BaseResolver, BaseStrategy

logger = logging.getLogger(__name__)

# Платформа -> (класс резолвера, реестр стратегий по имени)
RESOLVERS = {
    Platform.TIKTOK: (tiktok.TikTokResolver, tiktok.STRATEGIES),
    Platform.INSTAGRAM: (instagram.InstagramResolver, instagram.STRATEGIES),
    Platform.PINTEREST: (pinterest.PinterestResolver, pinterest.STRATEGIES),
    Platform.YOUTUBE: (youtube.YouTubeResolver, youtube.STRATEGIES),
}


class ServiceFactory:
    """
    Фабрика для создания резолверов платформ

    Порядок стратегий берется из Settings.strategies_for(), неизвестные имена пропускаются.
    Резолверы создаются лениво и переиспользуются (у них нет состояния между запросами).
    """

    def __init__(self, client: FetchClient, settings: Settings):
        """
        Args:
            client: Общий HTTP клиент
            settings: Настройки приложения
        """
        self.client = client
        self.settings = settings
        self._resolvers: Dict[Platform, BaseResolver] = {}

    def build_strategy(self, platform: Platform, name: str) -> Optional[BaseStrategy]:
        _, registry = RESOLVERS[platform]
        entry = registry.get(name)
        if entry is None:
            logger.warning(f"[{platform.display_name}] Неизвестная стратегия '{name}', пропускаю")
            return None
        strategy_cls, endpoint_key = entry
        endpoint = self.settings.endpoint(endpoint_key) if endpoint_key else None
        return strategy_cls(self.client, self.settings, endpoint)

    def get_resolver(self, platform: Platform) -> Optional[BaseResolver]:
        """
        Получить резолвер для платформы

        Args:
            platform: Платформа

        Returns:
            Резолвер или None если платформа не поддерживается
        """
        if platform not in RESOLVERS:
            return None

        if platform not in self._resolvers:
            resolver_cls, _ = RESOLVERS[platform]
            strategies = [
                strategy
                for strategy in (
                    self.build_strategy(platform, name)
                    for name in self.settings.strategies_for(platform.value)
                )
                if strategy is not None
            ]
            resolver = resolver_cls(self.client, strategies)
            logger.info(f"[{platform.display_name}] Стратегии: {', '.join(resolver.strategy_names)}")
            self._resolvers[platform] = resolver

        return self._resolvers[platform]

    def build_all(self) -> Dict[Platform, BaseResolver]:
        """
        Создать резолверы всех платформ сразу (проверка конфигурации при старте)

        Raises:
            ValueError: Для платформы не осталось ни одной известной стратегии
        """
        return {platform: self.get_resolver(platform) for platform in RESOLVERS}
