"""
Тесты для модуля src/utils/utils.py
"""
import unittest

from src.models.platform import Platform
from src.utils.utils import (
    clean_url,
    extract_pinterest_pin_id,
    find_url,
    get_platform,
    has_valid_shape,
    is_short_link,
    is_supported_url,
    normalize_url,
    shorten,
)


class TestGetPlatform(unittest.TestCase):
    """Тесты определения платформы по ссылке"""

    def test_tiktok(self):
        """Тест TikTok ссылок (полные и короткие)"""
        self.assertEqual(get_platform('https://www.tiktok.com/@user/video/7234567890123456789'), Platform.TIKTOK)
        self.assertEqual(get_platform('https://vm.tiktok.com/ZMabc123/'), Platform.TIKTOK)
        self.assertEqual(get_platform('https://vt.tiktok.com/ZSabc123/'), Platform.TIKTOK)

    def test_instagram(self):
        """Тест Instagram ссылок"""
        self.assertEqual(get_platform('https://www.instagram.com/reel/C1a2B3c4D5e/'), Platform.INSTAGRAM)
        self.assertEqual(get_platform('instagram.com/p/C1a2B3c4D5e'), Platform.INSTAGRAM)

    def test_pinterest(self):
        """Тест Pinterest ссылок (в т.ч. региональные домены и pin.it)"""
        self.assertEqual(get_platform('https://www.pinterest.com/pin/123456789/'), Platform.PINTEREST)
        self.assertEqual(get_platform('https://fr.pinterest.com/pin/123456789/'), Platform.PINTEREST)
        self.assertEqual(get_platform('https://www.pinterest.co.uk/pin/123456789/'), Platform.PINTEREST)
        self.assertEqual(get_platform('https://pin.it/abcDEF'), Platform.PINTEREST)

    def test_youtube(self):
        """Тест YouTube ссылок"""
        self.assertEqual(get_platform('https://www.youtube.com/shorts/dQw4w9WgXcQ'), Platform.YOUTUBE)
        self.assertEqual(get_platform('https://youtu.be/dQw4w9WgXcQ'), Platform.YOUTUBE)

    def test_unsupported(self):
        """Тест неподдерживаемых ссылок"""
        self.assertIsNone(get_platform('https://example.com/video.mp4'))
        self.assertIsNone(get_platform('https://nottiktok.com/video/1'))
        self.assertIsNone(get_platform('not a url at all'))
        self.assertIsNone(get_platform(''))
        self.assertFalse(is_supported_url('https://vimeo.com/123'))

    def test_lookalike_host_in_path(self):
        """Домен платформы в пути или параметрах не делает ссылку поддерживаемой"""
        self.assertIsNone(get_platform('https://evil.example/tiktok.com/video/1'))
        self.assertIsNone(get_platform('https://evil.example/?u=instagram.com'))


class TestUrlShape(unittest.TestCase):
    """Тесты проверки структуры ссылки"""

    def test_valid_shapes(self):
        self.assertTrue(has_valid_shape('https://www.tiktok.com/@user/video/7234567890123456789', Platform.TIKTOK))
        self.assertTrue(has_valid_shape('https://www.instagram.com/reel/C1a2B3c4D5e/', Platform.INSTAGRAM))
        self.assertTrue(has_valid_shape('https://www.instagram.com/p/C1a2B3c4D5e/', Platform.INSTAGRAM))
        self.assertTrue(has_valid_shape('https://www.pinterest.com/pin/123456789/', Platform.PINTEREST))
        self.assertTrue(has_valid_shape('https://www.youtube.com/watch?v=dQw4w9WgXcQ', Platform.YOUTUBE))
        self.assertTrue(has_valid_shape('https://www.youtube.com/shorts/dQw4w9WgXcQ', Platform.YOUTUBE))

    def test_short_links_valid_with_path(self):
        """Короткая ссылка корректна, если в ней есть путь"""
        self.assertTrue(has_valid_shape('https://vm.tiktok.com/ZMabc123/', Platform.TIKTOK))
        self.assertTrue(has_valid_shape('https://pin.it/abcDEF', Platform.PINTEREST))
        self.assertFalse(has_valid_shape('https://pin.it/', Platform.PINTEREST))

    def test_invalid_shapes(self):
        """Ссылки на профиль/главную страницу не являются ссылками на видео"""
        self.assertFalse(has_valid_shape('https://www.tiktok.com/@user', Platform.TIKTOK))
        self.assertFalse(has_valid_shape('https://www.instagram.com/someuser/', Platform.INSTAGRAM))
        self.assertFalse(has_valid_shape('https://www.pinterest.com/someuser/boards/', Platform.PINTEREST))
        self.assertFalse(has_valid_shape('https://www.youtube.com/', Platform.YOUTUBE))

    def test_is_short_link(self):
        self.assertTrue(is_short_link('https://pin.it/abc', Platform.PINTEREST))
        self.assertTrue(is_short_link('https://vm.tiktok.com/abc', Platform.TIKTOK))
        self.assertFalse(is_short_link('https://www.pinterest.com/pin/1/', Platform.PINTEREST))

    def test_instagram_has_no_short_links(self):
        """instagr.am и ig.me не считаются ссылками Instagram"""
        self.assertIsNone(get_platform('https://instagr.am/p/C1a2B3c4D5e/'))
        self.assertIsNone(get_platform('https://ig.me/m/someuser'))
        self.assertFalse(is_short_link('https://instagr.am/p/abc', Platform.INSTAGRAM))



class TestUrlHelpers(unittest.TestCase):
    """Тесты вспомогательных функций"""

    def test_normalize_url_adds_scheme(self):
        self.assertEqual(normalize_url('  instagram.com/reel/abc  '), 'https://instagram.com/reel/abc')
        self.assertEqual(normalize_url('http://tiktok.com/v/1'), 'http://tiktok.com/v/1')

    def test_clean_url_escapes(self):
        """Тест очистки экранирования из JSON внутри HTML"""
        self.assertEqual(
            clean_url('https:\\/\\/cdn.example.com\\/v.mp4?a=1\\u0026b=2'),
            'https://cdn.example.com/v.mp4?a=1&b=2',
        )
        self.assertEqual(clean_url('https://cdn.example.com/v.mp4?a=1&amp;b=2'), 'https://cdn.example.com/v.mp4?a=1&b=2')
        self.assertEqual(clean_url(''), '')

    def test_extract_pinterest_pin_id(self):
        self.assertEqual(extract_pinterest_pin_id('https://www.pinterest.com/pin/123456789012/'), '123456789012')
        self.assertEqual(extract_pinterest_pin_id('https://www.pinterest.com/pin/cool-video--987654321/'), '987654321')
        self.assertIsNone(extract_pinterest_pin_id('https://www.pinterest.com/user/boards/'))

    def test_find_url(self):
        """Тест поиска ссылки в тексте сообщения"""
        self.assertEqual(
            find_url('смотри https://www.tiktok.com/@u/video/1 круто'),
            'https://www.tiktok.com/@u/video/1',
        )
        self.assertEqual(find_url('instagram.com/reel/abc'), 'https://instagram.com/reel/abc')
        self.assertIsNone(find_url('просто текст'))
        self.assertIsNone(find_url(''))

    def test_find_url_prefers_scheme(self):
        """Ссылка со схемой важнее похожего на домен слова перед ней"""
        self.assertEqual(
            find_url('clip.mp4 https://www.tiktok.com/@a/video/123'),
            'https://www.tiktok.com/@a/video/123',
        )

    def test_shorten(self):
        self.assertEqual(shorten('abc'), 'abc')
        self.assertEqual(shorten('a' * 150), 'a' * 100 + '...')


if __name__ == '__main__':
    unittest.main()
