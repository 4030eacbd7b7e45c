"""
Тесты для DownloadManager (ссылка -> файл)
"""
import json
import os
import shutil
import tempfile
import unittest
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

from src.config import Settings
from src.downloader.download_manager import DownloadManager
from src.downloader.errors import (
    FetchFailedError,
    FetchNetworkError,
    FetchTooLargeError,
    InvalidUrlShapeError,
    ResolutionFailedError,
    UnsupportedPlatformError,
)
from src.downloader.fetch_client import FetchResponse
from src.downloader.media_fetcher import MediaFetcher
from src.models.platform import Platform
from src.services.service_factory import ServiceFactory

MP4_HEADER = b'\x00\x00\x00\x18ftypisom'


def json_response(payload):
    return FetchResponse(status=200, url='https://api.example/', headers={}, body=json.dumps(payload).encode())


class FakeStream:
    def __init__(self, size):
        self.size = size
        self.content_length = size
        self.status = 200
        self.url = 'https://cdn.example/video.mp4'

    async def iter_chunks(self, chunk_size=64 * 1024):
        yield MP4_HEADER
        left = self.size - len(MP4_HEADER)
        while left > 0:
            part = min(chunk_size, left)
            left -= part
            yield b'\x00' * part


class FakeClient:
    """HTTP клиент без сети: ответы API по порядку и один потоковый ответ"""

    def __init__(self, responses=(), stream_size=2 * 1024 * 1024, stream_error=None):
        self.fetch = AsyncMock(side_effect=list(responses))
        self.resolve_redirect = AsyncMock(side_effect=lambda url, headers=None: url)
        self.stream_size = stream_size
        self.stream_error = stream_error
        self.stream_requests = []

    @asynccontextmanager
    async def stream(self, request):
        self.stream_requests.append(request)
        if self.stream_error is not None:
            raise self.stream_error
        yield FakeStream(self.stream_size)


class TestDownloadManager(unittest.IsolatedAsyncioTestCase):
    """Тесты оркестрации скачивания"""

    def setUp(self):
        """Настройка перед каждым тестом"""
        self.test_dir = tempfile.mkdtemp()
        self.settings = Settings(download_dir=self.test_dir)

    def tearDown(self):
        """Очистка после каждого теста"""
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def make_manager(self, client, settings=None, optimizer=None):
        settings = settings or self.settings
        return DownloadManager(
            settings,
            ServiceFactory(client, settings),
            MediaFetcher(client, settings),
            optimizer,
        )

    async def test_tiktok_short_link_end_to_end(self):
        """vm.tiktok.com -> tikwm -> файл 2 МБ на диске"""
        client = FakeClient([json_response({
            'code': 0,
            'data': {
                'hdplay': 'https://v16.tiktokcdn.com/hd.mp4?sig=1\\u0026e=2',
                'title': 'Skate trick',
                'author': {'nickname': 'skater'},
            },
        })])
        manager = self.make_manager(client)

        result = await manager.download_video('https://vm.tiktok.com/ZMabc123/')

        self.assertEqual(result.platform, Platform.TIKTOK)
        self.assertEqual(result.size_bytes, 2 * 1024 * 1024)
        self.assertEqual(os.path.getsize(result.path), 2 * 1024 * 1024)
        self.assertEqual(os.path.dirname(result.path), self.test_dir)
        self.assertEqual(result.caption, 'Skate trick')
        self.assertEqual(result.author, 'skater')
        self.assertEqual(result.quality_label, 'HD')
        # Первая стратегия успешна - остальные не вызывались
        self.assertEqual(client.fetch.await_count, 1)
        self.assertEqual(client.stream_requests[0].url, 'https://v16.tiktokcdn.com/hd.mp4?sig=1&e=2')

    async def test_unsupported_url_makes_no_requests(self):
        """Неподдерживаемая ссылка - ни одного сетевого запроса"""
        client = FakeClient()
        manager = self.make_manager(client)

        with self.assertRaises(UnsupportedPlatformError) as ctx:
            await manager.download('https://vimeo.com/123456')

        client.fetch.assert_not_awaited()
        client.resolve_redirect.assert_not_awaited()
        self.assertEqual(client.stream_requests, [])
        self.assertIn('TikTok', ctx.exception.user_message())
        self.assertIn('Pinterest', ctx.exception.user_message())

    async def test_invalid_shape_makes_no_requests(self):
        client = FakeClient()
        manager = self.make_manager(client)

        with self.assertRaises(InvalidUrlShapeError) as ctx:
            await manager.download('https://www.instagram.com/someuser/')

        client.fetch.assert_not_awaited()
        self.assertIn('instagram.com/reel/', ctx.exception.user_message())

    async def test_all_strategies_failed(self):
        """Все стратегии упали - ResolutionFailedError, каждая вызвана один раз"""
        client = FakeClient([FetchNetworkError('dns')] * 3)
        manager = self.make_manager(client)

        with self.assertRaises(ResolutionFailedError) as ctx:
            await manager.download('https://www.tiktok.com/@u/video/7234567890123456789')

        self.assertEqual(client.fetch.await_count, 3)
        self.assertEqual(client.stream_requests, [])
        self.assertEqual(ctx.exception.cause.attempts, 3)
        self.assertNotIn('dns', ctx.exception.user_message())
        self.assertIn('dns', ctx.exception.user_message(verbose=True))
        self.assertEqual(os.listdir(self.test_dir), [])

    async def test_pinterest_image_pin(self):
        """Пин-изображение - понятная ошибка 'не является видео'"""
        settings = Settings(download_dir=self.test_dir, strategy_order={'pinterest': ['resource']})
        client = FakeClient([json_response({'resource_response': {'data': {
            'id': '123456', 'images': {'orig': {'url': 'https://i.pinimg.com/a.jpg'}},
        }}})])
        manager = self.make_manager(client, settings)

        with self.assertRaises(ResolutionFailedError) as ctx:
            await manager.download('https://www.pinterest.com/pin/123456/')

        self.assertIn('не является видео', ctx.exception.user_message())
        self.assertIn('не является видео', ctx.exception.cause.last_error)

    async def test_fetch_failure_is_not_re_resolved(self):
        """Ошибка скачивания файла не запускает резолвер повторно"""
        client = FakeClient(
            [json_response({'code': 0, 'data': {'play': 'https://cdn.example/sd.mp4'}})],
            stream_error=FetchTooLargeError(200, 500),
        )
        manager = self.make_manager(client)

        with self.assertRaises(FetchFailedError):
            await manager.download('https://www.tiktok.com/@u/video/1')

        self.assertEqual(client.fetch.await_count, 1)
        self.assertEqual(len(client.stream_requests), 1)
        self.assertEqual(os.listdir(self.test_dir), [])

    async def test_platform_hint_cannot_override_url(self):
        client = FakeClient([json_response({'code': 0, 'data': {'play': 'https://cdn.example/sd.mp4'}})])
        manager = self.make_manager(client)

        result = await manager.download('https://www.tiktok.com/@u/video/1', platform_hint='instagram')

        self.assertEqual(result.platform, Platform.TIKTOK)

    async def test_optimizer_called_when_enabled(self):
        settings = Settings(download_dir=self.test_dir, optimize_videos=True)
        client = FakeClient([json_response({'code': 0, 'data': {'play': 'https://cdn.example/sd.mp4'}})])
        optimizer = MagicMock()
        optimizer.optimize = AsyncMock(return_value=False)
        manager = self.make_manager(client, settings, optimizer)

        result = await manager.download('https://www.tiktok.com/@u/video/1')

        optimizer.optimize.assert_awaited_once_with(result.path)
        self.assertTrue(os.path.exists(result.path))

    async def test_size_updated_after_optimization(self):
        """После ffmpeg размер в результате соответствует новому файлу"""
        settings = Settings(download_dir=self.test_dir, optimize_videos=True)
        client = FakeClient([json_response({'code': 0, 'data': {'play': 'https://cdn.example/sd.mp4'}})])

        async def remux(path):
            with open(path, 'wb') as f:
                f.write(MP4_HEADER + b'\x00' * 1000)
            return True

        optimizer = MagicMock()
        optimizer.optimize = AsyncMock(side_effect=remux)
        manager = self.make_manager(client, settings, optimizer)

        result = await manager.download('https://www.tiktok.com/@u/video/1')

        self.assertEqual(result.size_bytes, len(MP4_HEADER) + 1000)
        self.assertEqual(os.path.getsize(result.path), result.size_bytes)



if __name__ == '__main__':
    unittest.main()
