"""
Аутентификация: пароли, JWT, коды из SMS и вход через Google.
"""

import hmac
from abc import ABC, abstractmethod
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx
from jose import jwt, JWTError
from passlib.context import CryptContext

from ..config import settings
from ..errors import InvalidArgument, Unauthenticated, Unavailable
from .verification import VerificationStore


logger = logging.getLogger(__name__)


# ==================== Пароли ====================

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    # У пользователей из Google или SMS пароля нет
    if not password_hash:
        return False
    return pwd_context.verify(plain_password, password_hash)


# ==================== JWT ====================

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def _encode(claims: Dict[str, Any], expires_delta: timedelta) -> str:
    to_encode = claims.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: int, user_type: str) -> str:
    return _encode(
        {"sub": str(user_id), "user_type": user_type, "type": ACCESS_TOKEN},
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(user_id: int) -> str:
    return _encode(
        {"sub": str(user_id), "type": REFRESH_TOKEN, "jti": uuid.uuid4().hex},
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> int:
    """
    Проверяет токен и возвращает ID пользователя.

    Raises:
        Unauthenticated: подпись неверна, срок истёк или тип токена другой
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.debug(f"[AUTH] Token rejected: {e}")
        raise Unauthenticated("Invalid or expired token")

    if payload.get("type") != expected_type:
        raise Unauthenticated("Invalid token type")
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise Unauthenticated("Invalid token subject")


# ==================== Коды подтверждения ====================

OTP_LENGTH = 6


def generate_otp() -> str:
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


class CodeSender(ABC):
    """Доставка кода пользователю."""

    @abstractmethod
    async def send(self, phone: str, code: str) -> None:
        ...


class LogCodeSender(CodeSender):
    """Режим разработки: код пишется в лог."""

    async def send(self, phone: str, code: str) -> None:
        logger.info(f"[AUTH] Verification code for {phone}: {code}")


class SmsGatewaySender(CodeSender):
    """Отправка через HTTP API SMS шлюза."""

    def __init__(self, url: str, token: str = "", transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.token = token
        self.transport = transport

    async def send(self, phone: str, code: str) -> None:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        payload = {"to": phone, "text": f"Код подтверждения: {code}"}
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[AUTH] SMS gateway failed for {phone}: {e}")
            raise Unavailable("Failed to send verification code") from e


def get_code_sender() -> CodeSender:
    """Dependency для FastAPI."""
    if settings.SMS_GATEWAY_URL:
        return SmsGatewaySender(settings.SMS_GATEWAY_URL, settings.SMS_GATEWAY_TOKEN)
    return LogCodeSender()


async def start_phone_verification(
    store: VerificationStore,
    sender: CodeSender,
    phone: str,
) -> str:
    """Создаёт и отправляет код. Возвращает verification_id."""
    verification_id = uuid.uuid4().hex
    code = generate_otp()
    await store.put(
        verification_id,
        {"phone": phone, "otp": code, "attempts": 0},
        settings.OTP_TTL_SECONDS,
    )
    try:
        await sender.send(phone, code)
    except Unavailable:
        await store.delete(verification_id)
        raise
    return verification_id


async def check_phone_verification(
    store: VerificationStore,
    verification_id: str,
    otp: str,
    max_attempts: int = settings.OTP_MAX_ATTEMPTS,
) -> str:
    """
    Проверяет код и возвращает подтверждённый телефон.
    Код одноразовый: удаляется после успеха или исчерпания попыток.

    Raises:
        InvalidArgument: код неверный
        Unauthenticated: кода нет, он истёк или попытки кончились
    """
    entry = await store.get(verification_id)
    if entry is None:
        raise Unauthenticated("Verification code expired or not found")

    if hmac.compare_digest(entry["otp"].encode(), otp.encode()):
        await store.delete(verification_id)
        return entry["phone"]

    entry["attempts"] = entry.get("attempts", 0) + 1
    if entry["attempts"] >= max_attempts:
        await store.delete(verification_id)
        logger.warning(f"[AUTH] Too many attempts for verification {verification_id}")
        raise Unauthenticated("Too many attempts, request a new code")

    await store.replace(verification_id, entry)
    raise InvalidArgument("Invalid verification code")


# ==================== Google ====================

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass
class GoogleIdentity:
    uid: str
    email: Optional[str]
    name: Optional[str]


class GoogleIdentityProvider:
    """Проверка Google ID token через tokeninfo."""

    def __init__(
        self,
        client_id: str = settings.GOOGLE_CLIENT_ID,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.transport = transport

    async def verify(self, id_token: str) -> GoogleIdentity:
        if not self.client_id:
            raise Unavailable("Google sign-in is not configured")

        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
                response = await client.get(GOOGLE_TOKENINFO_URL, params={"id_token": id_token})
        except httpx.HTTPError as e:
            logger.error(f"[AUTH] Google tokeninfo request failed: {e}")
            raise Unavailable("Google sign-in is temporarily unavailable") from e

        if response.status_code >= 500:
            raise Unavailable("Google sign-in is temporarily unavailable")
        if response.status_code != 200:
            raise Unauthenticated("Invalid Google token")

        claims = response.json()
        if claims.get("aud") != self.client_id:
            raise Unauthenticated("Google token was issued for another client")
        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise Unauthenticated("Invalid Google token issuer")
        if not claims.get("sub"):
            raise Unauthenticated("Invalid Google token")

        email = claims.get("email")
        if email and str(claims.get("email_verified")).lower() != "true":
            email = None

        return GoogleIdentity(uid=claims["sub"], email=email, name=claims.get("name"))


def get_identity_provider() -> GoogleIdentityProvider:
    """Dependency для FastAPI."""
    return GoogleIdentityProvider()
