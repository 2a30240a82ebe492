"""
Конфигурация приложения.
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Optional


# Определяем корень проекта (где лежит .env)
PROJECT_ROOT = Path(__file__).parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Настройки приложения."""

    # Приложение
    APP_NAME: str = "Лавка"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False  # Режим разработки: трейсбеки в ответах 500
    LOG_LEVEL: str = "INFO"

    # Сервер
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # База данных
    DATABASE_PATH: Path = PROJECT_ROOT / "database" / "lavka.db"

    # Загрузка медиа
    STORAGE_BACKEND: str = "local"  # local | s3
    UPLOADS_DIR: Path = PROJECT_ROOT / "uploads"
    MEDIA_URL_PREFIX: str = "/media"
    MAX_FILE_SIZE: int = 5 * 1024 * 1024  # 5 MB
    ALLOWED_IMAGE_TYPES: list = ["image/jpeg", "image/jpg", "image/png", "image/webp"]

    # S3
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_S3_BUCKET: str = ""
    AWS_S3_ENDPOINT: Optional[str] = None  # Для S3-совместимых хранилищ

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Безопасность
    SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # Вход по коду из SMS
    OTP_TTL_SECONDS: int = 600
    OTP_MAX_ATTEMPTS: int = 5
    SMS_GATEWAY_URL: str = ""  # Пусто - код пишется в лог (dev режим)
    SMS_GATEWAY_TOKEN: str = ""

    # Google
    GOOGLE_CLIENT_ID: str = ""  # Audience для проверки Google ID token
    GOOGLE_MAPS_API_KEY: str = ""  # Ключ Geocoding API

    # Поиск магазинов рядом (все расстояния в метрах)
    SEARCH_DEFAULT_RADIUS_METERS: float = 5000
    SEARCH_DEFAULT_LIMIT: int = 20
    SEARCH_MAX_LIMIT: int = 50

    # Telegram Bot для модерации
    BOT_TOKEN: str = ""
    MODERATION_CHAT_ID: Optional[int] = None  # Чат модераторов для новых заявок

    class Config:
        env_file = str(ENV_FILE)
        env_file_encoding = "utf-8"


# Глобальный экземпляр настроек
settings = Settings()
