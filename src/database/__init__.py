"""
Модуль для работы с базой данных пользователей (Redis)
"""
from .redis_db import Database

__all__ = ['Database']
