"""
Тесты для HTTP API web-app
"""
import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from src.api.api import create_app
from src.config import Settings
from src.database.redis_db import Database
from src.downloader.download_manager import DownloadManager
from src.models.platform import Platform
from test_database import FakeRedis


class TestApi(unittest.TestCase):
    """Тесты эндпоинтов API"""

    def setUp(self):
        """Настройка перед каждым тестом"""
        self.settings = Settings(free_time_hours=2.0)
        self.db = Database(client=FakeRedis())
        self.worker = MagicMock()
        self.manager = DownloadManager(self.settings, MagicMock(), MagicMock())
        app = create_app(self.settings, self.db, self.worker, self.manager)
        self.client = TestClient(app)

    def test_health(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'OK')

    def test_status_without_free_time(self):
        response = self.client.get('/api/status/42')
        self.assertEqual(response.json(), {'hasFreeTime': False, 'expiresAt': None, 'remainingMinutes': 0})

    def test_watch_ad_grants_free_time(self):
        """После рекламы статус показывает бесплатное время"""
        response = self.client.post('/api/watch-ad', json={'userId': 42})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['success'])

        status = self.client.get('/api/status/42').json()
        self.assertTrue(status['hasFreeTime'])
        self.assertGreaterEqual(status['remainingMinutes'], 119)

    def test_watch_ad_without_user(self):
        response = self.client.post('/api/watch-ad', json={})
        self.assertEqual(response.status_code, 400)

    def test_download_requires_ad(self):
        """Без бесплатного времени скачивание не запускается"""
        response = self.client.post('/api/download', json={'userId': 42, 'url': 'https://vm.tiktok.com/ZM1/'})
        self.assertEqual(response.status_code, 403)
        self.assertTrue(response.json()['needsAd'])
        self.worker.submit.assert_not_called()

    def test_download_missing_data(self):
        response = self.client.post('/api/download', json={'userId': 42})
        self.assertEqual(response.status_code, 400)

    def test_download_unsupported_platform(self):
        self.client.post('/api/watch-ad', json={'userId': 42})
        response = self.client.post('/api/download', json={'userId': 42, 'url': 'https://vimeo.com/1'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['supported'], [p.value for p in Platform])
        self.worker.submit.assert_not_called()

    def test_download_invalid_shape(self):
        self.client.post('/api/watch-ad', json={'userId': 42})
        response = self.client.post('/api/download', json={'userId': 42, 'url': 'https://www.instagram.com/someuser/'})
        self.assertEqual(response.status_code, 400)
        self.worker.submit.assert_not_called()

    def test_download_started(self):
        """Корректная ссылка передается в worker"""
        self.client.post('/api/watch-ad', json={'userId': 42})
        response = self.client.post(
            '/api/download',
            json={'userId': 42, 'url': 'https://www.pinterest.com/pin/123456/', 'platform': 'pinterest'},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['platform'], 'pinterest')
        self.worker.submit.assert_called_once_with(42, 'https://www.pinterest.com/pin/123456/', Platform.PINTEREST)


if __name__ == '__main__':
    unittest.main()
