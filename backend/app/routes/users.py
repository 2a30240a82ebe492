"""
API Routes для аутентификации и профиля пользователя.
"""

import logging
from fastapi import APIRouter, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from ..errors import NotFound, Unauthenticated, Forbidden
from ..models.user import (
    User,
    UserCreate,
    UserUpdate,
    UserType,
    UserTypeUpdate,
    LoginRequest,
    PasswordChange,
    OtpRequest,
    OtpVerify,
    GoogleLogin,
    RefreshRequest,
    TokenPair,
    OtpSent,
)
from ..config import settings
from ..services.auth import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    CodeSender,
    GoogleIdentityProvider,
    check_phone_verification,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_code_sender,
    get_identity_provider,
    start_phone_verification,
)
from ..services.database import DatabaseService, get_db
from ..services.users import UserService
from ..services.verification import VerificationStore, get_verification_store

logger = logging.getLogger(__name__)

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


async def _load_active_user(db: DatabaseService, user_id: int) -> User:
    try:
        user = await UserService(db).get(user_id)
    except NotFound:
        raise Unauthenticated("User not found")
    if not user.is_active:
        raise Unauthenticated("Account is deactivated")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: DatabaseService = Depends(get_db)
) -> User:
    """Получает текущего пользователя по токену из заголовка Authorization."""
    if credentials is None:
        raise Unauthenticated("Authorization header is missing")
    user_id = decode_token(credentials.credentials, ACCESS_TOKEN)
    return await _load_active_user(db, user_id)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: DatabaseService = Depends(get_db)
) -> Optional[User]:
    """Текущий пользователь, если токен передан (для публичных endpoints).
    Переданный, но неверный токен всё равно даёт 401.
    """
    if credentials is None:
        return None
    user_id = decode_token(credentials.credentials, ACCESS_TOKEN)
    return await _load_active_user(db, user_id)


def require_roles(*user_types: UserType):
    """Dependency: пропускает только пользователей с одной из ролей."""
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.user_type not in user_types:
            allowed = ", ".join(t.value for t in user_types)
            raise Forbidden(f"This action requires one of the roles: {allowed}")
        return current_user
    return checker


require_admin = require_roles(UserType.ADMIN)
require_shopkeeper = require_roles(UserType.SHOPKEEPER)


def token_response(user: User) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user.id, user.user_type.value),
        refresh_token=create_refresh_token(user.id),
        user=user,
    )


# ==================== Вход и регистрация ====================

@router.post("/register", response_model=TokenPair, status_code=201)
async def register(
    user_data: UserCreate,
    db: DatabaseService = Depends(get_db)
):
    """Регистрирует покупателя или продавца."""
    user = await UserService(db).register(user_data)
    return token_response(user)


@router.post("/login", response_model=TokenPair)
async def login(
    credentials: LoginRequest,
    db: DatabaseService = Depends(get_db)
):
    """Вход по email или телефону и паролю."""
    user = await UserService(db).authenticate(credentials.email, credentials.phone, credentials.password)
    logger.info(f"[AUTH] User {user.id} logged in")
    return token_response(user)


@router.post("/send-otp", response_model=OtpSent)
async def send_otp(
    request: OtpRequest,
    db: DatabaseService = Depends(get_db),
    store: VerificationStore = Depends(get_verification_store),
    sender: CodeSender = Depends(get_code_sender)
):
    """Отправляет одноразовый код на телефон."""
    existing = await UserService(db).find(phone=request.phone)
    verification_id = await start_phone_verification(store, sender, request.phone)
    return OtpSent(
        verification_id=verification_id,
        is_new_user=existing is None,
        expires_in=settings.OTP_TTL_SECONDS,
    )


@router.post("/verify-otp", response_model=TokenPair)
async def verify_otp(
    request: OtpVerify,
    db: DatabaseService = Depends(get_db),
    store: VerificationStore = Depends(get_verification_store)
):
    """Проверяет код; при первом входе создаёт покупателя."""
    phone = await check_phone_verification(store, request.verification_id, request.otp)
    user, _created = await UserService(db).get_or_create_by_phone(phone)
    return token_response(user)


@router.post("/google", response_model=TokenPair)
async def google_login(
    request: GoogleLogin,
    db: DatabaseService = Depends(get_db),
    provider: GoogleIdentityProvider = Depends(get_identity_provider)
):
    """Вход по Google ID token."""
    identity = await provider.verify(request.id_token)
    user = await UserService(db).get_or_create_google(identity)
    return token_response(user)


@router.post("/refresh-token", response_model=TokenPair)
async def refresh_token(
    request: RefreshRequest,
    db: DatabaseService = Depends(get_db)
):
    """Выдаёт новую пару токенов по refresh token."""
    user_id = decode_token(request.refresh_token, REFRESH_TOKEN)
    user = await _load_active_user(db, user_id)
    return token_response(user)


# ==================== Профиль ====================

@router.get("/me", response_model=User)
async def get_me(current_user: User = Depends(get_current_user)):
    """Получает данные текущего пользователя."""
    return current_user


@router.put("/me", response_model=User)
async def update_me(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: DatabaseService = Depends(get_db)
):
    """Обновляет данные текущего пользователя."""
    return await UserService(db).update_profile(current_user, user_update)


@router.put("/me/type", response_model=User)
async def update_my_type(
    type_update: UserTypeUpdate,
    current_user: User = Depends(get_current_user),
    db: DatabaseService = Depends(get_db)
):
    """Переключает роль между покупателем и продавцом."""
    return await UserService(db).set_type(current_user, type_update.user_type)


@router.put("/change-password")
async def change_password(
    passwords: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: DatabaseService = Depends(get_db)
):
    await UserService(db).change_password(current_user, passwords.current_password, passwords.new_password)
    return {"success": True, "message": "Password changed"}
