"""
Хранилище одноразовых кодов подтверждения с временем жизни.
"""

import json
from abc import ABC, abstractmethod
import logging
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Depends

from .database import DatabaseService, get_db


logger = logging.getLogger(__name__)


class VerificationStore(ABC):
    """
    Ключ-значение с TTL. Запись с истёкшим сроком считается отсутствующей.
    """

    @abstractmethod
    async def put(self, key: str, payload: Dict[str, Any], ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def replace(self, key: str, payload: Dict[str, Any]) -> bool:
        """Меняет payload живой записи, срок жизни сохраняется."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class SQLiteVerificationStore(VerificationStore):
    """Коды в таблице verification_codes."""

    def __init__(self, db: DatabaseService, clock: Callable[[], float] = time.time):
        self.db = db
        self.clock = clock

    async def put(self, key: str, payload: Dict[str, Any], ttl_seconds: int) -> None:
        await self.purge_expired()
        await self.db.execute(
            "INSERT OR REPLACE INTO verification_codes (key, payload, expires_at) VALUES (?, ?, ?)",
            (key, json.dumps(payload), self.clock() + ttl_seconds)
        )
        await self.db.commit()

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        row = await self.db.fetch_one(
            "SELECT payload FROM verification_codes WHERE key = ? AND expires_at > ?",
            (key, self.clock())
        )
        return json.loads(row["payload"]) if row else None

    async def replace(self, key: str, payload: Dict[str, Any]) -> bool:
        updated = await self.db.update(
            "verification_codes",
            {"payload": json.dumps(payload)},
            "key = ? AND expires_at > ?",
            (key, self.clock())
        )
        return updated > 0

    async def delete(self, key: str) -> None:
        await self.db.delete("verification_codes", "key = ?", (key,))

    async def purge_expired(self) -> int:
        """Удаляет истёкшие записи, возвращает их количество."""
        removed = await self.db.delete("verification_codes", "expires_at <= ?", (self.clock(),))
        if removed:
            logger.debug(f"[AUTH] Purged {removed} expired verification codes")
        return removed


async def get_verification_store(db: DatabaseService = Depends(get_db)) -> VerificationStore:
    """Dependency для FastAPI."""
    return SQLiteVerificationStore(db)
