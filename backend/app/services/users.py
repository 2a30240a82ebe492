"""
Сервис пользователей.
"""

import logging
import sqlite3
from typing import Optional, List, Tuple, Dict

from ..errors import Conflict, Forbidden, InvalidArgument, NotFound, Unauthenticated
from ..models.user import User, UserCreate, UserUpdate, UserType, SELF_ASSIGNABLE_TYPES
from .auth import GoogleIdentity, hash_password, verify_password
from .database import DatabaseService, WhereBuilder, now


logger = logging.getLogger(__name__)


class UserService:
    """Операции с пользователями поверх DatabaseService."""

    def __init__(self, db: DatabaseService):
        self.db = db

    async def get(self, user_id: int) -> User:
        row = await self.db.fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        if not row:
            raise NotFound("User not found")
        return User(**row)

    async def find(self, email: Optional[str] = None, phone: Optional[str] = None) -> Optional[dict]:
        """Строка пользователя по email или телефону (вместе с password_hash)."""
        if email:
            return await self.db.fetch_one("SELECT * FROM users WHERE email = ?", (email.lower(),))
        if phone:
            return await self.db.fetch_one("SELECT * FROM users WHERE phone = ?", (phone,))
        return None

    async def _ensure_unique(self, email: Optional[str], phone: Optional[str], exclude_id: Optional[int] = None):
        for field, value in (("email", email), ("phone", phone)):
            if not value:
                continue
            row = await self.db.fetch_one(f"SELECT id FROM users WHERE {field} = ?", (value,))
            if row and row["id"] != exclude_id:
                raise Conflict(f"User with this {field} already exists")

    async def _insert(self, data: dict) -> User:
        try:
            user_id = await self.db.insert("users", data)
        except sqlite3.IntegrityError as e:
            # Гонка между проверкой и вставкой
            raise Conflict("User with this email or phone already exists") from e
        return await self.get(user_id)

    async def register(self, user_data: UserCreate) -> User:
        email = user_data.email.lower() if user_data.email else None
        await self._ensure_unique(email, user_data.phone)

        user = await self._insert({
            "name": user_data.name,
            "email": email,
            "phone": user_data.phone,
            "password_hash": hash_password(user_data.password),
            "user_type": user_data.user_type.value,
        })
        logger.info(f"[AUTH] Registered user {user.id} as {user.user_type.value}")
        return user

    async def authenticate(self, email: Optional[str], phone: Optional[str], password: str) -> User:
        row = await self.find(email=email, phone=phone)
        if not row or not verify_password(password, row["password_hash"]):
            raise Unauthenticated("Invalid credentials")
        if not row["is_active"]:
            raise Forbidden("Account is deactivated")
        return User(**row)

    async def get_or_create_by_phone(self, phone: str) -> Tuple[User, bool]:
        """Пользователь с подтверждённым телефоном; новый создаётся покупателем."""
        row = await self.find(phone=phone)
        if row:
            if not row["is_active"]:
                raise Forbidden("Account is deactivated")
            return User(**row), False

        user = await self._insert({
            "phone": phone,
            "user_type": UserType.CUSTOMER.value,
            "auth_provider": "phone",
        })
        logger.info(f"[AUTH] Created user {user.id} from phone sign-in")
        return user, True

    async def get_or_create_google(self, identity: GoogleIdentity) -> User:
        """Находит пользователя по Google ID или email, иначе создаёт."""
        row = await self.db.fetch_one(
            "SELECT * FROM users WHERE auth_provider = 'google' AND provider_uid = ?",
            (identity.uid,)
        )
        if not row and identity.email:
            row = await self.find(email=identity.email)
            if row and not row["provider_uid"]:
                await self.db.update(
                    "users",
                    {"provider_uid": identity.uid, "updated_at": now()},
                    "id = ?",
                    (row["id"],)
                )

        if row:
            if not row["is_active"]:
                raise Forbidden("Account is deactivated")
            return await self.get(row["id"])

        if not identity.email:
            raise InvalidArgument("Google account has no verified email")

        user = await self._insert({
            "name": identity.name,
            "email": identity.email.lower(),
            "user_type": UserType.CUSTOMER.value,
            "auth_provider": "google",
            "provider_uid": identity.uid,
        })
        logger.info(f"[AUTH] Created user {user.id} from Google sign-in")
        return user

    async def update_profile(self, user: User, user_data: UserUpdate) -> User:
        update_data = user_data.model_dump(exclude_unset=True)
        if "email" in update_data and update_data["email"]:
            update_data["email"] = update_data["email"].lower()

        email = update_data.get("email", user.email)
        phone = update_data.get("phone", user.phone)
        if not email and not phone:
            raise InvalidArgument("Either email or phone is required")
        await self._ensure_unique(update_data.get("email"), update_data.get("phone"), exclude_id=user.id)

        if update_data:
            update_data["updated_at"] = now()
            try:
                await self.db.update("users", update_data, "id = ?", (user.id,))
            except sqlite3.IntegrityError as e:
                raise Conflict("User with this email or phone already exists") from e
        return await self.get(user.id)

    async def set_type(self, user: User, user_type: UserType) -> User:
        """Покупатель может стать продавцом и обратно. Роль admin так не меняется."""
        if user.user_type not in SELF_ASSIGNABLE_TYPES or user_type not in SELF_ASSIGNABLE_TYPES:
            raise Forbidden("User type can only be switched between customer and shopkeeper")
        await self.db.update(
            "users",
            {"user_type": user_type.value, "updated_at": now()},
            "id = ?",
            (user.id,)
        )
        return await self.get(user.id)

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        row = await self.db.fetch_one("SELECT password_hash FROM users WHERE id = ?", (user.id,))
        if row and row["password_hash"]:
            if not verify_password(current_password, row["password_hash"]):
                raise InvalidArgument("Current password is incorrect")
        await self.db.update(
            "users",
            {"password_hash": hash_password(new_password), "updated_at": now()},
            "id = ?",
            (user.id,)
        )

    async def set_active(self, user_id: int, is_active: bool, actor: User) -> User:
        if user_id == actor.id and not is_active:
            raise InvalidArgument("You cannot deactivate your own account")
        user = await self.get(user_id)
        await self.db.update(
            "users",
            {"is_active": is_active, "updated_at": now()},
            "id = ?",
            (user.id,)
        )
        logger.info(f"[ADMIN] User {user.id} is_active={is_active} set by {actor.id}")
        return await self.get(user.id)

    async def list_admin(
        self,
        page: int,
        limit: int,
        user_type: Optional[UserType] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        where = WhereBuilder()
        where.add_if(user_type.value if user_type else None, "user_type = ?")
        where.add_if(
            search,
            "(name LIKE ? OR email LIKE ? OR phone LIKE ?)",
            f"%{search}%", f"%{search}%", f"%{search}%",
        )
        clause, params = where.build()
        total = await self.db.count("users", clause, params)
        rows = await self.db.fetch_all(
            f"SELECT * FROM users WHERE {clause} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
            params + (limit, (page - 1) * limit)
        )
        return [User(**row) for row in rows], total

    async def count_by_type(self) -> Dict[str, int]:
        rows = await self.db.fetch_all("SELECT user_type, COUNT(*) AS cnt FROM users GROUP BY user_type")
        counts = {user_type.value: 0 for user_type in UserType}
        counts.update({row["user_type"]: row["cnt"] for row in rows})
        return counts
