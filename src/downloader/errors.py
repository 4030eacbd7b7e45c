"""
Иерархия ошибок системы скачивания

FetchError      - сетевой уровень (FetchClient, MediaFetcher)
StrategyError   - одна стратегия не сработала (глотается резолвером)
ResolutionError - все стратегии платформы не сработали
DownloadError   - то, что видит бот/API (с текстом для пользователя)
"""
from typing import Iterable, Optional

from src.models.platform import Platform


# ========== Сетевой уровень ==========

class FetchError(Exception):
    """Базовая ошибка HTTP запроса"""


class FetchNetworkError(FetchError):
    """Ошибка соединения/DNS/TLS или слишком много редиректов"""


class FetchTimeoutError(FetchError):
    """Превышен таймаут запроса или общий лимит времени скачивания"""


class FetchTooLargeError(FetchError):
    """Тело ответа превышает разрешенный размер"""

    def __init__(self, limit: int, received: Optional[int] = None):
        self.limit = limit
        self.received = received
        detail = f" (получено {received} байт)" if received is not None else ""
        super().__init__(f"Ответ превышает лимит {limit} байт{detail}")


class FetchHttpStatusError(FetchError):
    """Сервер вернул неуспешный HTTP статус"""

    def __init__(self, status: int, url: str = ''):
        self.status = status
        self.url = url
        super().__init__(f"HTTP {status}")


class MediaTooSmallError(FetchError):
    """Скачанный файл слишком маленький - скорее всего это страница ошибки, а не видео"""

    def __init__(self, size: int, minimum: int):
        self.size = size
        self.minimum = minimum
        super().__init__(f"Файл слишком маленький ({size} байт < {minimum}) - вероятно, это страница ошибки")


class StorageError(Exception):
    """Ошибка записи на локальный диск"""


# ========== Уровень стратегий ==========

class StrategyError(Exception):
    """Стратегия не смогла получить прямую ссылку"""

    def __init__(self, strategy: str, message: str):
        self.strategy = strategy
        super().__init__(f"{strategy}: {message}")


class ResolutionError(Exception):
    """Базовая ошибка разрешения ссылки"""


class AllStrategiesFailed(ResolutionError):
    """
    Все стратегии платформы не сработали

    Attributes:
        platform: Платформа
        attempts: Сколько стратегий было опробовано
        last_error: Краткое описание последней ошибки (без стектрейса)
    """

    def __init__(self, platform: Platform, attempts: int, last_error: Optional[str] = None):
        self.platform = platform
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{platform.display_name}: все стратегии не сработали ({attempts}). "
            f"Последняя ошибка: {last_error or 'нет данных'}"
        )


# ========== Уровень оркестратора ==========

class DownloadError(Exception):
    """Базовая ошибка скачивания, которую видит вызывающий код"""

    def user_message(self, verbose: bool = False) -> str:
        """Текст ошибки для пользователя"""
        return "❌ Не удалось скачать видео. Попробуйте позже."


class UnsupportedPlatformError(DownloadError):
    """Ссылка не относится ни к одной поддерживаемой платформе"""

    def __init__(self, url: str, supported: Iterable[Platform] = tuple(Platform)):
        self.url = url
        self.supported = list(supported)
        super().__init__(f"Неподдерживаемая платформа: {url}")

    def user_message(self, verbose: bool = False) -> str:
        names = ', '.join(p.display_name for p in self.supported)
        return f"❌ Неподдерживаемая платформа.\nПоддерживаются: {names}"


class InvalidUrlShapeError(DownloadError):
    """Ссылка на платформу, но без идентификатора поста/видео"""

    def __init__(self, url: str, platform: Platform, example: str):
        self.url = url
        self.platform = platform
        self.example = example
        super().__init__(f"Некорректная ссылка {platform.display_name}: {url}")

    def user_message(self, verbose: bool = False) -> str:
        return (
            f"❌ Ссылка {self.platform.display_name} не похожа на ссылку на видео.\n"
            f"Пример корректной ссылки: {self.example}"
        )


# Подсказки, почему платформа могла не отдать видео
_RESOLUTION_HINTS = {
    Platform.TIKTOK: "Видео приватное, удалено или ссылка неверная.",
    Platform.INSTAGRAM: "Аккаунт приватный или видео было удалено.",
    Platform.PINTEREST: "Ссылка неверная или пин не является видео (это изображение).",
    Platform.YOUTUBE: "Видео недоступно, удалено или имеет возрастные ограничения.",
}


class ResolutionFailedError(DownloadError):
    """Платформа не отдала прямую ссылку ни одной стратегией"""

    def __init__(self, platform: Platform, cause: ResolutionError):
        self.platform = platform
        self.cause = cause
        super().__init__(str(cause))

    def user_message(self, verbose: bool = False) -> str:
        message = (
            f"❌ Не удалось получить видео {self.platform.display_name}.\n"
            f"{_RESOLUTION_HINTS.get(self.platform, '')}"
        )
        last_error = getattr(self.cause, 'last_error', None)
        if verbose and last_error:
            message += f"\n\nПоследняя ошибка: {last_error}"
        return message


class FetchFailedError(DownloadError):
    """Прямая ссылка найдена, но файл не скачался"""

    def __init__(self, platform: Platform, cause: FetchError):
        self.platform = platform
        self.cause = cause
        super().__init__(f"{platform.display_name}: {cause}")

    def user_message(self, verbose: bool = False) -> str:
        message = "❌ Не удалось скачать видео. Проблема с соединением или файл слишком большой."
        if verbose:
            message += f"\n\nПричина: {self.cause}"
        return message


class StorageFailedError(DownloadError):
    """Ошибка записи файла на диск"""

    def __init__(self, platform: Platform, cause: Exception):
        self.platform = platform
        self.cause = cause
        super().__init__(f"{platform.display_name}: ошибка записи файла: {cause}")

    def user_message(self, verbose: bool = False) -> str:
        return "❌ Внутренняя ошибка сервера при сохранении видео. Попробуйте позже."
