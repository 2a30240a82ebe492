"""
Сервис для работы с базой данных SQLite.
"""

import logging
import sqlite3
import aiosqlite
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any, AsyncGenerator, Tuple

from ..config import settings
from ..errors import Unavailable
from .schema import SCHEMA_SQL


logger = logging.getLogger(__name__)


def now() -> str:
    """Текущее время UTC в формате SQLite CURRENT_TIMESTAMP."""
    return datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")


class WhereBuilder:
    """
    Собирает WHERE из необязательных фильтров.
    Условие добавляется только если значение фильтра передано.
    """

    def __init__(self):
        self.conditions: List[str] = []
        self.params: List[Any] = []

    def add(self, condition: str, *params: Any) -> "WhereBuilder":
        """Добавляет условие безусловно."""
        self.conditions.append(condition)
        self.params.extend(params)
        return self

    def add_if(self, value: Any, condition: str, *params: Any) -> "WhereBuilder":
        """Добавляет условие, если value не None и не пустая строка."""
        if value is None or (isinstance(value, str) and value.strip() == ""):
            return self
        return self.add(condition, *(params or (value,)))

    @property
    def clause(self) -> str:
        return " AND ".join(self.conditions) if self.conditions else "1=1"

    def build(self) -> Tuple[str, tuple]:
        return self.clause, tuple(self.params)


class DatabaseService:
    """Асинхронный сервис для работы с SQLite."""

    def __init__(self, db_path: Path = settings.DATABASE_PATH):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Устанавливает соединение с базой данных."""
        try:
            self._connection = await aiosqlite.connect(self.db_path)
        except sqlite3.Error as e:
            raise Unavailable(f"Database unavailable: {e}") from e
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._connection.execute("PRAGMA encoding = 'UTF-8'")

    async def disconnect(self) -> None:
        """Закрывает соединение с базой данных."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def init_schema(self) -> None:
        """Создаёт таблицы, если их ещё нет."""
        await self.connection.executescript(SCHEMA_SQL)
        await self.commit()

    @property
    def connection(self) -> aiosqlite.Connection:
        """Возвращает текущее соединение."""
        if not self._connection:
            raise Unavailable("Database not connected")
        return self._connection

    async def execute(
        self,
        query: str,
        params: tuple = ()
    ) -> aiosqlite.Cursor:
        """Выполняет SQL запрос."""
        try:
            return await self.connection.execute(query, params)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            logger.error(f"[DB] Query failed: {e}")
            raise Unavailable(f"Database unavailable: {e}") from e

    async def commit(self) -> None:
        """Фиксирует транзакцию."""
        try:
            await self.connection.commit()
        except sqlite3.Error as e:
            raise Unavailable(f"Database unavailable: {e}") from e

    async def rollback(self) -> None:
        """Откатывает транзакцию."""
        if self._connection:
            await self._connection.rollback()

    async def fetch_one(
        self,
        query: str,
        params: tuple = ()
    ) -> Optional[Dict[str, Any]]:
        """Выполняет запрос и возвращает одну строку."""
        cursor = await self.execute(query, params)
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def fetch_all(
        self,
        query: str,
        params: tuple = ()
    ) -> List[Dict[str, Any]]:
        """Выполняет запрос и возвращает все строки."""
        cursor = await self.execute(query, params)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def count(self, table: str, where: str = "1=1", params: tuple = ()) -> int:
        """Возвращает количество строк в таблице по условию."""
        row = await self.fetch_one(f"SELECT COUNT(*) AS cnt FROM {table} WHERE {where}", params)
        return row["cnt"] if row else 0

    async def insert(
        self,
        table: str,
        data: Dict[str, Any]
    ) -> int:
        """Вставляет запись и возвращает ID."""
        columns = ", ".join(data.keys())
        placeholders = ", ".join(["?" for _ in data])
        query = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"

        try:
            cursor = await self.execute(query, tuple(data.values()))
        except sqlite3.IntegrityError:
            await self.rollback()
            raise
        await self.commit()
        return cursor.lastrowid

    async def update(
        self,
        table: str,
        data: Dict[str, Any],
        where: str,
        where_params: tuple = ()
    ) -> int:
        """Обновляет записи и возвращает количество затронутых строк."""
        set_clause = ", ".join([f"{k} = ?" for k in data.keys()])
        query = f"UPDATE {table} SET {set_clause} WHERE {where}"

        try:
            cursor = await self.execute(query, tuple(data.values()) + where_params)
        except sqlite3.IntegrityError:
            await self.rollback()
            raise
        await self.commit()
        return cursor.rowcount

    async def delete(
        self,
        table: str,
        where: str,
        where_params: tuple = ()
    ) -> int:
        """Удаляет записи и возвращает количество затронутых строк."""
        query = f"DELETE FROM {table} WHERE {where}"
        cursor = await self.execute(query, where_params)
        await self.commit()
        return cursor.rowcount


# Глобальный экземпляр сервиса
_db_service: Optional[DatabaseService] = None


async def get_db() -> AsyncGenerator[DatabaseService, None]:
    """Dependency для FastAPI - возвращает сервис базы данных."""
    global _db_service

    if _db_service is None:
        # Используем глобальный экземпляр, если он уже создан в lifespan
        _db_service = DatabaseService()
        await _db_service.connect()

    try:
        yield _db_service
    except Exception:
        await _db_service.rollback()
        raise


def paginate(total: int, page: int, limit: int) -> dict:
    """Блок pagination для ответов со списками."""
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": (total + limit - 1) // limit if limit else 0,
    }
