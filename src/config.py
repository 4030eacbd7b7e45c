"""
Конфигурация приложения
Собирается один раз при старте из переменных окружения (.env) и передается во все компоненты
"""
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv


DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/124.0 Safari/537.36'
)

# Порядок стратегий по умолчанию (от самой надежной к запасной)
DEFAULT_STRATEGY_ORDER: Dict[str, List[str]] = {
    'tiktok': ['tikwm', 'musicallydown', 'snaptik'],
    'instagram': ['igdownloader', 'vidloder', 'page'],
    'pinterest': ['resource', 'page'],
    'youtube': ['ytdlp'],
}

# Эндпоинты сторонних API, переопределяются через <NAME>_URL
DEFAULT_ENDPOINTS: Dict[str, str] = {
    'tikwm': 'https://www.tikwm.com/api/',
    'musicallydown': 'https://musicallydown.com/download',
    'snaptik': 'https://snaptik.app/api',
    'igdownloader': 'https://v3.igdownloader.app/api/ajaxSearch',
    'vidloder': 'https://vidloder.com/api',
    'pinterest_resource': 'https://www.pinterest.com/resource/PinResource/get/',
}


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _get_redis_url() -> str:
    # Сначала проверяем полный URL, иначе собираем из отдельных переменных
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        return redis_url
    redis_host = os.getenv("REDIS_HOST", "localhost")
    redis_port = os.getenv("REDIS_PORT", "6379")
    redis_db = os.getenv("REDIS_DB", "0")
    return f"redis://{redis_host}:{redis_port}/{redis_db}"


@dataclass
class Settings:
    """
    Настройки приложения

    Attributes:
        download_dir: Общая директория для скачанных файлов
        request_timeout: Таймаут одного запроса к API платформы (секунды)
        max_redirects: Максимум редиректов на один запрос
        max_response_size_mb: Лимит тела ответа API/HTML страницы
        media_max_size_mb: Лимит размера скачиваемого видео
        media_timeout: Общий лимит времени на скачивание видео (секунды)
        media_min_size_bytes: Файлы меньше этого размера считаются страницей ошибки
        retention_interval: Как часто запускается очистка (секунды)
        retention_max_age: Возраст файла, после которого он удаляется (секунды)
        strategy_order: Порядок стратегий для каждой платформы
        endpoints: URL сторонних API по имени стратегии
    """
    bot_token: Optional[str] = None
    webapp_url: str = 'https://tik-dl1.vercel.app/'
    api_host: str = '0.0.0.0'
    api_port: int = 3000
    redis_url: str = 'redis://localhost:6379/0'
    log_level: str = 'INFO'

    download_dir: str = 'downloads'
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 30.0
    max_redirects: int = 5
    max_response_size_mb: float = 10.0

    media_max_size_mb: float = 200.0
    media_timeout: float = 180.0
    media_min_size_bytes: int = 50_000

    retention_interval: float = 30 * 60
    retention_max_age: float = 60 * 60

    free_time_hours: float = 2.0
    verbose_errors: bool = False

    optimize_videos: bool = False
    ffmpeg_path: Optional[str] = None
    youtube_max_height: int = 720

    strategy_order: Dict[str, List[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_STRATEGY_ORDER.items()}
    )
    endpoints: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ENDPOINTS))

    @property
    def max_response_size(self) -> int:
        return int(self.max_response_size_mb * 1024 * 1024)

    @property
    def media_max_size(self) -> int:
        return int(self.media_max_size_mb * 1024 * 1024)

    def endpoint(self, name: str) -> str:
        return self.endpoints.get(name) or DEFAULT_ENDPOINTS[name]

    def strategies_for(self, platform: str) -> List[str]:
        return list(self.strategy_order.get(platform, DEFAULT_STRATEGY_ORDER.get(platform, [])))

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'Settings':
        """
        Собрать настройки из переменных окружения

        Args:
            env_file: Путь к .env файлу (по умолчанию .env в текущей директории)
        """
        load_dotenv(env_file)

        strategy_order = {}
        for platform, default_order in DEFAULT_STRATEGY_ORDER.items():
            raw = os.getenv(f"{platform.upper()}_STRATEGIES")
            if raw:
                strategy_order[platform] = [name.strip() for name in raw.split(',') if name.strip()]
            else:
                strategy_order[platform] = list(default_order)

        endpoints = {
            name: os.getenv(f"{name.upper()}_URL", default)
            for name, default in DEFAULT_ENDPOINTS.items()
        }

        return cls(
            bot_token=os.getenv("BOT_TOKEN"),
            webapp_url=os.getenv("WEBAPP_URL", cls.webapp_url),
            api_host=os.getenv("API_HOST", cls.api_host),
            api_port=_get_int("PORT", cls.api_port),
            redis_url=_get_redis_url(),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            download_dir=os.getenv("DOWNLOAD_DIR", cls.download_dir),
            user_agent=os.getenv("USER_AGENT", DEFAULT_USER_AGENT),
            request_timeout=_get_float("REQUEST_TIMEOUT_SECONDS", cls.request_timeout),
            max_redirects=_get_int("MAX_REDIRECTS", cls.max_redirects),
            max_response_size_mb=_get_float("MAX_RESPONSE_SIZE_MB", cls.max_response_size_mb),
            media_max_size_mb=_get_float("MEDIA_MAX_SIZE_MB", cls.media_max_size_mb),
            media_timeout=_get_float("MEDIA_TIMEOUT_SECONDS", cls.media_timeout),
            media_min_size_bytes=_get_int("MEDIA_MIN_SIZE_BYTES", cls.media_min_size_bytes),
            retention_interval=_get_float("RETENTION_INTERVAL_SECONDS", cls.retention_interval),
            retention_max_age=_get_float("RETENTION_MAX_AGE_SECONDS", cls.retention_max_age),
            free_time_hours=_get_float("FREE_TIME_HOURS", cls.free_time_hours),
            verbose_errors=_get_bool("VERBOSE_ERRORS"),
            optimize_videos=_get_bool("OPTIMIZE_VIDEOS"),
            ffmpeg_path=os.getenv("FFMPEG_PATH"),
            youtube_max_height=_get_int("YOUTUBE_MAX_HEIGHT", cls.youtube_max_height),
            strategy_order=strategy_order,
            endpoints=endpoints,
        )
