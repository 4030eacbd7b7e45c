"""
Модуль для работы с Redis
Хранит пользователей: user:<id> -> {user_id, created_at, updated_at, free_until, total_downloads, ads_watched}
Бесплатное время выдается за просмотр рекламы
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from redis import asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Бесплатное время за один просмотр рекламы (часы)
DEFAULT_FREE_TIME_HOURS = 2.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"Некорректная дата в Redis: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Database:
    def __init__(self, redis_url: str = 'redis://localhost:6379/0', client: Optional[redis.Redis] = None):
        """
        Инициализация Redis подключения

        Args:
            redis_url: URL для подключения к Redis (Settings.redis_url)
            client: Готовый клиент (для тестов)
        """
        self.redis_client = client or redis.from_url(redis_url, decode_responses=True)

    def _get_user_key(self, user_id: int) -> str:
        """Получить ключ Redis для пользователя"""
        return f"user:{user_id}"

    async def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        """
        Получить пользователя

        Returns:
            Словарь с полями пользователя или None если пользователя нет
        """
        data = await self.redis_client.hgetall(self._get_user_key(user_id))
        if not data:
            return None
        user = dict(data)
        for counter in ('total_downloads', 'ads_watched'):
            user[counter] = int(user.get(counter) or 0)
        return user

    async def create_or_update_user(self, user_id: int, **fields) -> Dict[str, Any]:
        """
        Создать пользователя или обновить его поля

        Args:
            user_id: Telegram ID пользователя
            **fields: Поля для обновления (free_until, ...)
        """
        key = self._get_user_key(user_id)
        now = _utcnow().isoformat()
        values = {name: str(value) for name, value in fields.items() if value is not None}

        if await self.redis_client.exists(key):
            values['updated_at'] = now
        else:
            defaults = {
                'user_id': str(user_id),
                'created_at': now,
                'free_until': '',
                'total_downloads': '0',
                'ads_watched': '0',
            }
            defaults.update(values)
            values = defaults

        await self.redis_client.hset(key, mapping=values)
        return await self.get_user(user_id)

    async def grant_free_time(
        self,
        user_id: int,
        hours: float = DEFAULT_FREE_TIME_HOURS,
        now: Optional[datetime] = None,
    ) -> datetime:
        """
        Выдать бесплатное время после просмотра рекламы

        Returns:
            Момент окончания бесплатного времени (UTC)
        """
        free_until = (now or _utcnow()) + timedelta(hours=hours)
        await self.create_or_update_user(user_id, free_until=free_until.isoformat())
        await self.redis_client.hincrby(self._get_user_key(user_id), 'ads_watched', 1)
        logger.info(f"💾 User {user_id} - бесплатное время до {free_until.isoformat()}")
        return free_until

    async def has_free_access(self, user_id: int, now: Optional[datetime] = None) -> bool:
        """Есть ли у пользователя активное бесплатное время"""
        value = await self.redis_client.hget(self._get_user_key(user_id), 'free_until')
        free_until = _parse_time(value)
        return free_until is not None and free_until > (now or _utcnow())

    async def get_free_time_status(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Статус бесплатного времени для API

        Returns:
            {'has_free_time': bool, 'expires_at': str | None, 'remaining_minutes': int}
        """
        now = now or _utcnow()
        value = await self.redis_client.hget(self._get_user_key(user_id), 'free_until')
        free_until = _parse_time(value)

        if free_until is None or free_until <= now:
            return {'has_free_time': False, 'expires_at': None, 'remaining_minutes': 0}

        return {
            'has_free_time': True,
            'expires_at': free_until.isoformat(),
            'remaining_minutes': int((free_until - now).total_seconds() // 60),
        }

    async def increment_downloads(self, user_id: int) -> int:
        """
        Инкремент счетчика скачиваний пользователя

        Returns:
            Новое значение счетчика
        """
        key = self._get_user_key(user_id)
        if not await self.redis_client.exists(key):
            await self.create_or_update_user(user_id)
        total = await self.redis_client.hincrby(key, 'total_downloads', 1)
        await self.redis_client.hset(key, 'last_download', _utcnow().isoformat())
        return int(total)

    async def ping(self) -> bool:
        """Проверить подключение к Redis"""
        try:
            return bool(await self.redis_client.ping())
        except RedisError as e:
            logger.error(f"⚠️ Redis недоступен: {e}")
            return False

    async def close(self):
        """Закрыть подключение к Redis"""
        await self.redis_client.aclose()
