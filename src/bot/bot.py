"""
Основной модуль бота - Event Router + сборка приложения

В одном процессе работают: polling бота, HTTP API (uvicorn) и очистка директории скачиваний
"""
import asyncio
import logging
from typing import Optional

import uvicorn
from aiogram import Bot, Dispatcher, F, Router, types
from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.filters import Command, CommandStart
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo

from src.api.api import create_app
from src.config import Settings
from src.database.redis_db import Database
from src.downloader.download_manager import DownloadManager
from src.downloader.errors import DownloadError
from src.downloader.fetch_client import FetchClient
from src.downloader.media_fetcher import MediaFetcher
from src.downloader.optimizer import VideoOptimizer
from src.models.platform import Platform
from src.services.service_factory import ServiceFactory
from src.utils.utils import find_url
from src.workers.cleanup_worker import RetentionSweeper
from src.workers.download_worker import DownloadWorker

logger = logging.getLogger(__name__)

PLATFORM_ICONS = {
    Platform.TIKTOK: '🎵',
    Platform.INSTAGRAM: '📸',
    Platform.PINTEREST: '📌',
    Platform.YOUTUBE: '▶️',
}


def platform_list(prefix: Optional[str] = None) -> str:
    return '\n'.join(f"{prefix or PLATFORM_ICONS[p]} {p.display_name}" for p in Platform)


def webapp_keyboard(settings: Settings) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(text="🚀 Открыть Video Downloader", web_app=WebAppInfo(url=settings.webapp_url)),
    ]])


def create_router(settings: Settings, db: Database, worker: DownloadWorker, manager: DownloadManager) -> Router:
    """Собрать обработчики сообщений"""
    router = Router(name='downloader')

    @router.message(CommandStart())
    async def start_handler(message: types.Message):
        """Обработка команды /start"""
        first_name = message.from_user.first_name if message.from_user else None
        await message.answer(
            f"👋 Привет, {first_name or 'друг'}!\n\n"
            "Добро пожаловать в Video Downloader 🎥\n\n"
            "Я умею скачивать видео из:\n"
            f"{platform_list()}\n\n"
            "Нажми кнопку ниже или просто отправь ссылку!",
            reply_markup=webapp_keyboard(settings),
        )

    @router.message(Command("help"))
    async def help_handler(message: types.Message):
        """Обработка команды /help"""
        hours = f"{settings.free_time_hours:g}"
        await message.answer(
            "📖 Как это работает?\n\n"
            "1️⃣ Открой приложение\n"
            f"2️⃣ Посмотри рекламу - {hours} ч бесплатных скачиваний\n"
            "3️⃣ Отправь ссылку на видео\n"
            "4️⃣ Я пришлю видео сюда!\n\n"
            "Поддерживаемые платформы:\n"
            f"{platform_list('✅')}"
        )

    @router.message(F.text)
    async def message_handler(message: types.Message):
        """Обработка текстовых сообщений со ссылками"""
        user_id = message.from_user.id if message.from_user else message.chat.id
        url = find_url(message.text)

        if not url:
            await message.answer("❌ Пожалуйста, отправь корректную ссылку на видео.")
            return

        try:
            platform = manager.detect_platform(url)
            manager.validate_shape(url, platform)
        except DownloadError as e:
            await message.answer(e.user_message())
            return

        try:
            has_access = await db.has_free_access(user_id)
        except Exception as e:
            logger.error(f"⚠️ Redis недоступен при проверке доступа: {e}")
            await message.answer("❌ Сервис временно недоступен. Попробуй позже.")
            return

        if not has_access:
            await message.answer(
                "⏳ Бесплатное время закончилось.\n"
                "Посмотри рекламу в приложении, чтобы продолжить.",
                reply_markup=webapp_keyboard(settings),
            )
            return

        await message.answer(f"⏳ Скачиваю видео {platform.display_name}...")
        worker.submit(user_id, url, platform)

    return router


async def main(settings: Optional[Settings] = None):
    """Запуск бота, API и очистки в одном процессе"""
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not settings.bot_token:
        raise ValueError("BOT_TOKEN не найден в .env файле! Создайте .env файл с BOT_TOKEN=ваш_токен")

    client = FetchClient(settings)
    factory = ServiceFactory(client, settings)
    # Ошибка в порядке стратегий останавливает запуск, а не каждый запрос
    factory.build_all()

    # Увеличенный таймаут для отправки больших файлов
    session = AiohttpSession(timeout=600)
    bot = Bot(token=settings.bot_token, session=session)
    db = Database(settings.redis_url)

    optimizer = VideoOptimizer(settings.ffmpeg_path) if settings.optimize_videos else None
    manager = DownloadManager(settings, factory, MediaFetcher(client, settings), optimizer)
    worker = DownloadWorker(manager, bot, db, settings)
    sweeper = RetentionSweeper(settings.download_dir, settings.retention_interval, settings.retention_max_age)

    dp = Dispatcher()
    dp.include_router(create_router(settings, db, worker, manager))

    api = uvicorn.Server(uvicorn.Config(
        create_app(settings, db, worker, manager),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    ))

    if not await db.ping():
        logger.warning("⚠️ Redis недоступен при старте, проверка бесплатного времени работать не будет")

    sweeper.start()
    api_task = asyncio.create_task(api.serve())
    logger.info(f"🚀 API запущен на порту {settings.api_port}")
    logger.info(f"📱 WebApp URL: {settings.webapp_url}")
    logger.info("Бот запущен! Ожидаю обновления...")

    try:
        await dp.start_polling(bot)
    finally:
        logger.info("👋 Остановка...")
        api.should_exit = True
        await api_task
        await worker.shutdown()
        await sweeper.stop()
        await client.close()
        await db.close()
        await bot.session.close()
        logger.info("Бот остановлен")
