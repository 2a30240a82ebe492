"""
Общие фикстуры: временная база, локальное хранилище и HTTP клиент к приложению.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

import httpx
import pytest

from backend.app.main import app
from backend.app.services import database
from backend.app.services.auth import CodeSender, create_access_token, get_code_sender, hash_password
from backend.app.services.database import DatabaseService
from backend.app.services.storage import LocalStorage, get_storage


PASSWORD = "secret123"


@dataclass
class Account:
    id: int
    user_type: str
    email: str

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(self.id, self.user_type)}"}


class RecordingSender(CodeSender):
    """Запоминает отправленные коды вместо SMS."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    async def send(self, phone: str, code: str) -> None:
        self.sent.append((phone, code))


@pytest.fixture
async def db(tmp_path):
    service = DatabaseService(tmp_path / "test.db")
    await service.connect()
    await service.init_schema()
    database._db_service = service
    yield service
    await service.disconnect()
    database._db_service = None


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(root=tmp_path / "uploads", url_prefix="/media")


@pytest.fixture
def code_sender():
    return RecordingSender()


@pytest.fixture
async def client(db, storage, code_sender):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_code_sender] = lambda: code_sender
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_account(db):
    counter = {"n": 0}

    async def factory(user_type: str = "customer", with_password: bool = False) -> Account:
        counter["n"] += 1
        email = f"{user_type}{counter['n']}@example.com"
        user_id = await db.insert("users", {
            "name": f"{user_type.title()} {counter['n']}",
            "email": email,
            "password_hash": hash_password(PASSWORD) if with_password else None,
            "user_type": user_type,
        })
        return Account(id=user_id, user_type=user_type, email=email)

    return factory


@pytest.fixture
async def customer(make_account):
    return await make_account("customer")


@pytest.fixture
async def shopkeeper(make_account):
    return await make_account("shopkeeper")


@pytest.fixture
async def other_shopkeeper(make_account):
    return await make_account("shopkeeper")


@pytest.fixture
async def admin(make_account):
    return await make_account("admin")


@pytest.fixture
def make_shop(db):
    async def factory(owner: Account, latitude: float = 37.7750, longitude: float = -122.4190,
                      status: str = "approved", **fields) -> int:
        data = {
            "owner_id": owner.id,
            "name": "Corner Grocery",
            "address": "1 Market Street",
            "category": "grocery",
            "latitude": latitude,
            "longitude": longitude,
            "status": status,
        }
        data.update(fields)
        return await db.insert("shops", data)

    return factory


@pytest.fixture
def make_product(db):
    async def factory(shop_id: int, title: str = "Milk", price: float = 2.5, stock: int = 10, **fields) -> int:
        data = {"shop_id": shop_id, "title": title, "price": price, "stock": stock}
        data.update(fields)
        return await db.insert("products", data)

    return factory
