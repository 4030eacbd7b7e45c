"""
Скрипт для запуска бота (вместе с HTTP API и очисткой скачиваний)
Запускать из корневой директории проекта: python run_bot.py
"""
import sys
import os

# Добавляем корневую директорию в PYTHONPATH
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import asyncio
from src.bot.bot import main

if __name__ == "__main__":
    asyncio.run(main())
