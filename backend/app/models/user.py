"""
Модели пользователя.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class UserType(str, Enum):
    """Тип пользователя. Закрытый набор ролей."""
    CUSTOMER = "customer"
    SHOPKEEPER = "shopkeeper"
    ADMIN = "admin"


# Роли, которые можно выбрать самостоятельно
SELF_ASSIGNABLE_TYPES = (UserType.CUSTOMER, UserType.SHOPKEEPER)


class UserBase(BaseModel):
    """Базовая модель пользователя."""
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    phone: Optional[str] = Field(None, pattern=r"^\+?[0-9]{10,15}$")


class UserCreate(UserBase):
    """Модель для регистрации пользователя."""
    name: str = Field(..., min_length=2, max_length=255)
    password: str = Field(..., min_length=6, max_length=128)
    user_type: UserType = UserType.CUSTOMER

    @model_validator(mode="after")
    def check_contact_and_type(self):
        if not self.email and not self.phone:
            raise ValueError("Either email or phone is required")
        if self.user_type not in SELF_ASSIGNABLE_TYPES:
            raise ValueError("User type must be either 'customer' or 'shopkeeper'")
        return self


class UserUpdate(BaseModel):
    """Модель для обновления профиля."""
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[str] = Field(None, pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    phone: Optional[str] = Field(None, pattern=r"^\+?[0-9]{10,15}$")


class UserTypeUpdate(BaseModel):
    user_type: UserType


class UserStatusUpdate(BaseModel):
    is_active: bool


class User(UserBase):
    """Полная модель пользователя."""
    id: int
    user_type: UserType = UserType.CUSTOMER
    auth_provider: str = "password"
    provider_uid: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    """Вход по email или телефону и паролю."""
    email: Optional[str] = None
    phone: Optional[str] = None
    password: str = Field(..., min_length=6)

    @model_validator(mode="after")
    def check_login(self):
        if not self.email and not self.phone:
            raise ValueError("Either email or phone is required")
        return self


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)


class OtpRequest(BaseModel):
    phone: str = Field(..., pattern=r"^\+?[0-9]{10,15}$")


class OtpVerify(BaseModel):
    verification_id: str
    otp: str = Field(..., pattern=r"^[0-9]{4,6}$")


class GoogleLogin(BaseModel):
    id_token: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenPair(BaseModel):
    """Токены и пользователь после входа."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: User


class OtpSent(BaseModel):
    verification_id: str
    is_new_user: bool
    expires_in: int
