"""
Базовые классы стратегий и резолверов платформ

Резолвер платформы владеет упорядоченным списком стратегий и пробует их строго по очереди:
первая стратегия, вернувшая прямую ссылку, побеждает, остальные не вызываются.
Ошибка стратегии - обычное дело (сторонние API меняются без предупреждения),
поэтому она только логируется, наружу выходит лишь AllStrategiesFailed.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from src.config import Settings
from src.downloader.errors import AllStrategiesFailed, FetchError, StrategyError
from src.downloader.fetch_client import FetchClient, FetchRequest, FetchResponse
from src.models.media import ResolvedMedia
from src.models.platform import Platform
from src.utils.utils import clean_url, is_short_link, shorten

logger = logging.getLogger(__name__)

# Ошибки разбора недокументированного JSON/HTML, которые превращаются в StrategyError
PARSE_ERRORS = (KeyError, IndexError, TypeError, ValueError, AttributeError)


class BaseStrategy(ABC):
    """
    Один способ получить прямую ссылку на видео

    Стратегия:
    - делает один или несколько запросов через FetchClient (request)
    - разбирает ответ одной функцией (parse), возвращая ResolvedMedia
    - НЕ повторяет запросы и НЕ знает о других стратегиях

    Состояние - только конфигурация (эндпоинт, заголовки), живет в рамках одного резолвера.
    """

    name: str = 'base'

    def __init__(self, client: FetchClient, settings: Settings, endpoint: Optional[str] = None):
        self.client = client
        self.settings = settings
        self.endpoint = endpoint

    async def attempt(self, url: str) -> ResolvedMedia:
        """
        Попробовать получить прямую ссылку

        Raises:
            StrategyError: Ответ не содержит ссылку или имеет неожиданный формат
            FetchError: Сетевая ошибка
        """
        payload = await self.request(url)
        try:
            media = self.parse(payload)
        except StrategyError:
            raise
        except PARSE_ERRORS as e:
            raise StrategyError(self.name, f"неожиданный формат ответа ({type(e).__name__}: {e})") from e

        if media is None or not media.direct_url:
            raise StrategyError(self.name, "прямая ссылка не найдена")
        return media

    @abstractmethod
    async def request(self, url: str) -> Any:
        """Сделать запрос(ы) к источнику и вернуть сырой ответ"""

    @abstractmethod
    def parse(self, payload: Any) -> Optional[ResolvedMedia]:
        """Достать прямую ссылку и метаданные из сырого ответа"""

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        return await self.client.fetch(request)

    async def fetch_json(self, request: FetchRequest) -> Any:
        """Запрос к JSON API (не-JSON ответ, например страница капчи, - StrategyError)"""
        response = await self.fetch(request)
        try:
            return response.json()
        except ValueError as e:
            raise self.fail(f"ответ не является JSON (HTTP {response.status})") from e

    def fail(self, message: str) -> StrategyError:
        return StrategyError(self.name, message)

    def media(
        self,
        direct_url: Optional[str],
        caption: Optional[str] = None,
        author: Optional[str] = None,
        soundtrack: Optional[str] = None,
        quality_label: Optional[str] = None,
    ) -> Optional[ResolvedMedia]:
        """Собрать ResolvedMedia с очищенной ссылкой (None если ссылки нет)"""
        direct_url = clean_url(direct_url or '')
        if not direct_url:
            return None
        return ResolvedMedia(
            direct_url=direct_url,
            caption=_clean_text(caption),
            author=_clean_text(author),
            soundtrack=_clean_text(soundtrack),
            quality_label=quality_label,
            strategy=self.name,
        )


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def pick_variant(variants: Dict[str, Any], preference: Sequence[str]) -> Optional[tuple]:
    """
    Выбрать вариант качества

    Сначала явно помеченные варианты в порядке preference, иначе первый доступный.

    Returns:
        (метка, вариант) или None если вариантов нет
    """
    if not variants:
        return None
    for label in preference:
        variant = variants.get(label)
        if variant:
            return label, variant
    for label, variant in variants.items():
        if variant:
            return label, variant
    return None


class BaseResolver:
    """
    Резолвер платформы: упорядоченная цепочка стратегий

    Порядок стратегий - конфигурация (Settings.strategy_order), а не логика.
    Резолвер не хранит состояние между вызовами resolve().
    """

    platform: Platform
    # Разрешать ли короткие ссылки до запуска стратегий
    resolve_short_links: bool = False

    def __init__(self, client: FetchClient, strategies: Sequence[BaseStrategy]):
        if not strategies:
            raise ValueError(f"Для {self.platform.display_name} не настроено ни одной стратегии")
        self.client = client
        self.strategies: List[BaseStrategy] = list(strategies)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def strategy_names(self) -> List[str]:
        return [strategy.name for strategy in self.strategies]

    async def prepare_url(self, url: str) -> str:
        """Очистить ссылку и, если нужно, разрешить короткую ссылку"""
        url = clean_url(url)
        if self.resolve_short_links and is_short_link(url, self.platform):
            try:
                url = await self.client.resolve_redirect(url)
            except FetchError as e:
                # Стратегии могут справиться и с короткой ссылкой
                self.logger.warning(f"[{self.platform.display_name}] Не удалось разрешить короткую ссылку: {e}")
        return url

    async def resolve(self, url: str) -> ResolvedMedia:
        """
        Получить прямую ссылку на видео

        Raises:
            AllStrategiesFailed: Ни одна стратегия не вернула ссылку
        """
        name = self.platform.display_name
        url = await self.prepare_url(url)
        last_error: Optional[str] = None
        attempts = 0

        for index, strategy in enumerate(self.strategies, start=1):
            attempts += 1
            self.logger.info(f"[{name}] Стратегия #{index} ({strategy.name}): {shorten(url)}")
            try:
                media = await strategy.attempt(url)
            except (StrategyError, FetchError) as e:
                last_error = f"{strategy.name}: {e}" if isinstance(e, FetchError) else str(e)
                self.logger.warning(f"[{name}] ⚠️ Стратегия {strategy.name} не сработала: {e}")
                continue

            self.logger.info(
                f"[{name}] ✅ Стратегия {strategy.name} успешна "
                f"(качество: {media.quality_label or 'неизвестно'})"
            )
            return media

        self.logger.error(f"[{name}] ❌ Все стратегии не сработали ({attempts}): {last_error}")
        raise AllStrategiesFailed(self.platform, attempts, last_error)
