"""
Сервис для отправки уведомлений модераторам в Telegram.
"""

import html
import logging
from typing import Optional
from aiogram import Bot
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties
from aiogram.exceptions import TelegramAPIError

from ..config import settings
from ..models.shop import Shop


logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Сервис для отправки уведомлений в Telegram."""

    _bot: Optional[Bot] = None

    @classmethod
    def get_bot(cls) -> Optional[Bot]:
        """Возвращает экземпляр бота или None если токен не настроен."""
        if not settings.BOT_TOKEN:
            return None

        if cls._bot is None:
            logger.info(f"[TELEGRAM] Creating bot instance with token: {settings.BOT_TOKEN[:10]}...")
            cls._bot = Bot(
                token=settings.BOT_TOKEN,
                default=DefaultBotProperties(parse_mode=ParseMode.HTML)
            )

        return cls._bot

    @classmethod
    async def send_message(cls, chat_id: int, text: str) -> bool:
        """
        Отправляет сообщение в Telegram.

        Returns:
            bool: True если сообщение отправлено успешно
        """
        bot = cls.get_bot()
        if not bot:
            logger.debug(f"[TELEGRAM] BOT_TOKEN not configured, message not sent to {chat_id}")
            return False

        try:
            await bot.send_message(chat_id=chat_id, text=text)
            return True
        except TelegramAPIError as e:
            logger.error(f"[TELEGRAM] Failed to send message to {chat_id}: {e}")
            return False

    @classmethod
    async def notify_shop_pending(cls, shop: Shop, reason: str = "new") -> bool:
        """
        Сообщает модераторам, что магазин ждёт проверки.

        Args:
            shop: Магазин в статусе pending
            reason: new - новая заявка, edited - изменены ключевые поля,
                    resubmitted - повторная отправка после отклонения
        """
        if not settings.MODERATION_CHAT_ID:
            return False

        titles = {
            "new": "🆕 <b>Новый магазин на модерации</b>",
            "edited": "✏️ <b>Магазин изменён и ждёт повторной проверки</b>",
            "resubmitted": "🔁 <b>Магазин повторно отправлен на модерацию</b>",
        }
        text = (
            f"{titles.get(reason, titles['new'])}\n\n"
            f"<b>🏪 Название:</b> {html.escape(shop.name)}\n"
            f"<b>📍 Адрес:</b> {html.escape(shop.address)}\n"
            f"<b>🏷 Категория:</b> {html.escape(shop.category or 'Не указана')}\n"
            f"<b>🌐 Координаты:</b> {shop.latitude:.6f}, {shop.longitude:.6f}\n"
            f"<b>🆔 ID:</b> {shop.id} (владелец {shop.owner_id})"
        )
        return await cls.send_message(settings.MODERATION_CHAT_ID, text)
