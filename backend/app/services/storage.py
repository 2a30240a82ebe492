"""
Хранилище изображений: локальный диск или S3.
"""

import asyncio
from abc import ABC, abstractmethod
import logging
import os
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import aiofiles
import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from ..config import settings
from ..errors import AppError, InvalidArgument, Unavailable


logger = logging.getLogger(__name__)


EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


class PayloadTooLarge(AppError):
    status_code = 413
    code = "payload_too_large"


def build_key(key_prefix: str, content_type: str) -> str:
    """Уникальный ключ объекта: {prefix}/{uuid}{ext}."""
    extension = EXTENSIONS.get(content_type, ".bin")
    return f"{key_prefix.strip('/')}/{uuid.uuid4().hex}{extension}"


async def read_image(
    file: UploadFile,
    max_size: int = settings.MAX_FILE_SIZE,
    allowed_types: Optional[list] = None,
) -> bytes:
    """
    Читает загруженное изображение с проверкой типа и размера.

    Raises:
        InvalidArgument: файла нет или тип не поддерживается
        PayloadTooLarge: файл больше max_size
    """
    allowed = allowed_types or settings.ALLOWED_IMAGE_TYPES
    if not file or not file.filename:
        raise InvalidArgument("Image file is required")
    if file.content_type not in allowed:
        raise InvalidArgument(
            f"Unsupported file type: {file.content_type}. Allowed: {', '.join(allowed)}"
        )

    content = await file.read()
    if not content:
        raise InvalidArgument("Image file is empty")
    if len(content) > max_size:
        raise PayloadTooLarge(
            f"File is too large. Maximum size: {max_size / 1024 / 1024:.1f} MB"
        )
    return content


class ObjectStorage(ABC):
    """Интерфейс хранилища объектов."""

    @abstractmethod
    async def upload(self, data: bytes, key_prefix: str, content_type: str) -> str:
        """Сохраняет объект и возвращает публичный URL."""
        ...

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """Удаляет объект по URL. False - если объект не из этого хранилища."""
        ...


class LocalStorage(ObjectStorage):
    """Файлы на диске, раздаются приложением по MEDIA_URL_PREFIX."""

    def __init__(self, root: Path = settings.UPLOADS_DIR, url_prefix: str = settings.MEDIA_URL_PREFIX):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for_url(self, url: str) -> Optional[Path]:
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        relative = url[len(self.url_prefix) + 1:]
        path = (self.root / relative).resolve()
        # Не выходим за пределы каталога загрузок
        if self.root.resolve() not in path.parents:
            return None
        return path

    async def upload(self, data: bytes, key_prefix: str, content_type: str) -> str:
        key = build_key(key_prefix, content_type)
        file_path = self.root / key
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"[STORAGE] Failed to write {file_path}: {e}")
            raise Unavailable("Failed to store image") from e
        return f"{self.url_prefix}/{key}"

    async def delete(self, url: str) -> bool:
        file_path = self._path_for_url(url)
        if file_path is None or not file_path.exists():
            return False
        try:
            os.remove(file_path)
        except OSError as e:
            logger.error(f"[STORAGE] Failed to delete {file_path}: {e}")
            raise Unavailable("Failed to delete image") from e
        return True


class S3Storage(ObjectStorage):
    """Объекты в бакете S3 (или S3-совместимом хранилище)."""

    def __init__(
        self,
        bucket: str = settings.AWS_S3_BUCKET,
        region: str = settings.AWS_REGION,
        endpoint_url: Optional[str] = settings.AWS_S3_ENDPOINT,
        client=None,
    ):
        if not bucket:
            raise ValueError("AWS_S3_BUCKET is not configured")
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self.client = client or boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            config=Config(signature_version="s3v4"),
            region_name=region,
        )

    def public_url(self, key: str) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def key_from_url(self, url: str) -> Optional[str]:
        if not url:
            return None
        if self.endpoint_url:
            prefix = f"{self.endpoint_url}/{self.bucket}/"
            return url[len(prefix):] if url.startswith(prefix) else None
        parsed = urlparse(url)
        if parsed.netloc != f"{self.bucket}.s3.{self.region}.amazonaws.com":
            return None
        return parsed.path.lstrip("/") or None

    async def upload(self, data: bytes, key_prefix: str, content_type: str) -> str:
        key = build_key(key_prefix, content_type)
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL="public-read",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"[STORAGE] S3 upload failed for {key}: {e}")
            raise Unavailable("Failed to upload image") from e
        return self.public_url(key)

    async def delete(self, url: str) -> bool:
        key = self.key_from_url(url)
        if not key:
            return False
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"[STORAGE] S3 delete failed for {key}: {e}")
            raise Unavailable("Failed to delete image") from e
        return True


async def discard_image(storage: ObjectStorage, url: Optional[str]) -> None:
    """Удаляет ненужное изображение. Ошибка хранилища только логируется."""
    if not url:
        return
    try:
        await storage.delete(url)
    except Unavailable as e:
        logger.warning(f"[STORAGE] Image {url} was not deleted: {e.message}")


# Глобальный экземпляр хранилища
_storage: Optional[ObjectStorage] = None


def get_storage() -> ObjectStorage:
    """Возвращает хранилище согласно STORAGE_BACKEND."""
    global _storage
    if _storage is None:
        if settings.STORAGE_BACKEND == "s3":
            _storage = S3Storage()
        elif settings.STORAGE_BACKEND == "local":
            _storage = LocalStorage()
        else:
            raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
        logger.info(f"[STORAGE] Using {type(_storage).__name__}")
    return _storage
