"""
Тесты для Database (пользователи и бесплатное время в Redis)
"""
import unittest
from datetime import datetime, timedelta, timezone

from redis.exceptions import ConnectionError as RedisConnectionError

from src.database.redis_db import Database


class FakeRedis:
    """Хеши Redis в памяти (только команды, которые использует Database)"""

    def __init__(self):
        self.hashes = {}
        self.closed = False
        self.fail_ping = False

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def exists(self, key):
        return 1 if key in self.hashes else 0

    async def hset(self, key, field=None, value=None, mapping=None):
        data = self.hashes.setdefault(key, {})
        if field is not None:
            data[field] = str(value)
        for name, item in (mapping or {}).items():
            data[name] = str(item)
        return 1

    async def hget(self, key, field):
        return self.hashes.get(key, {}).get(field)

    async def hincrby(self, key, field, amount=1):
        data = self.hashes.setdefault(key, {})
        data[field] = str(int(data.get(field) or 0) + amount)
        return int(data[field])

    async def ping(self):
        if self.fail_ping:
            raise RedisConnectionError('connection refused')
        return True

    async def aclose(self):
        self.closed = True


class TestDatabase(unittest.IsolatedAsyncioTestCase):
    """Тесты работы с пользователями"""

    def setUp(self):
        """Настройка перед каждым тестом"""
        self.redis = FakeRedis()
        self.db = Database(client=self.redis)
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    async def test_unknown_user(self):
        self.assertIsNone(await self.db.get_user(1))
        self.assertFalse(await self.db.has_free_access(1, now=self.now))

    async def test_create_user_defaults(self):
        """Новый пользователь создается с нулевыми счетчиками"""
        user = await self.db.create_or_update_user(5)
        self.assertEqual(user['user_id'], '5')
        self.assertEqual(user['total_downloads'], 0)
        self.assertEqual(user['ads_watched'], 0)
        self.assertIn('user:5', self.redis.hashes)

    async def test_grant_free_time(self):
        """Просмотр рекламы дает бесплатное время"""
        free_until = await self.db.grant_free_time(10, hours=2, now=self.now)

        self.assertEqual(free_until, self.now + timedelta(hours=2))
        self.assertTrue(await self.db.has_free_access(10, now=self.now + timedelta(minutes=90)))
        self.assertFalse(await self.db.has_free_access(10, now=self.now + timedelta(hours=3)))
        user = await self.db.get_user(10)
        self.assertEqual(user['ads_watched'], 1)

    async def test_free_time_status(self):
        await self.db.grant_free_time(10, hours=2, now=self.now)

        status = await self.db.get_free_time_status(10, now=self.now + timedelta(minutes=30))
        self.assertTrue(status['has_free_time'])
        self.assertEqual(status['remaining_minutes'], 90)
        self.assertEqual(status['expires_at'], (self.now + timedelta(hours=2)).isoformat())

        expired = await self.db.get_free_time_status(10, now=self.now + timedelta(hours=5))
        self.assertEqual(expired, {'has_free_time': False, 'expires_at': None, 'remaining_minutes': 0})

    async def test_broken_date_means_no_access(self):
        self.redis.hashes['user:3'] = {'user_id': '3', 'free_until': 'not-a-date'}
        self.assertFalse(await self.db.has_free_access(3, now=self.now))

    async def test_increment_downloads(self):
        """Счетчик скачиваний создает пользователя при первом скачивании"""
        self.assertEqual(await self.db.increment_downloads(7), 1)
        self.assertEqual(await self.db.increment_downloads(7), 2)
        user = await self.db.get_user(7)
        self.assertEqual(user['total_downloads'], 2)
        self.assertIn('last_download', user)

    async def test_update_keeps_counters(self):
        await self.db.increment_downloads(8)
        await self.db.create_or_update_user(8, free_until=self.now.isoformat())
        user = await self.db.get_user(8)
        self.assertEqual(user['total_downloads'], 1)
        self.assertIn('updated_at', user)

    async def test_ping(self):
        self.assertTrue(await self.db.ping())
        self.redis.fail_ping = True
        self.assertFalse(await self.db.ping())

    async def test_close(self):
        await self.db.close()
        self.assertTrue(self.redis.closed)


if __name__ == '__main__':
    unittest.main()
