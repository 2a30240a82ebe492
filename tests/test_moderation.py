from datetime import datetime

import pytest

from backend.app.errors import Forbidden, InvalidArgument
from backend.app.models.shop import Shop, ShopStatus
from backend.app.models.user import User, UserType
from backend.app.services.moderation import (
    changed_critical_fields,
    ensure_can_moderate,
    ensure_transition,
    status_after_edit,
)


def user(user_type: UserType, user_id: int = 1) -> User:
    return User(
        id=user_id,
        name="Test",
        email=f"user{user_id}@example.com",
        user_type=user_type,
        created_at=datetime(2024, 1, 1),
        updated_at=datetime(2024, 1, 1),
    )


def shop(status: ShopStatus) -> Shop:
    return Shop(
        id=10,
        owner_id=1,
        name="Corner Grocery",
        address="1 Market Street",
        category="grocery",
        latitude=37.775,
        longitude=-122.419,
        status=status,
        created_at=datetime(2024, 1, 1),
        updated_at=datetime(2024, 1, 1),
    )


OWNER = user(UserType.SHOPKEEPER)
ADMIN = user(UserType.ADMIN, user_id=2)


@pytest.mark.parametrize("current, target", [
    (ShopStatus.PENDING, ShopStatus.APPROVED),
    (ShopStatus.PENDING, ShopStatus.REJECTED),
    (ShopStatus.APPROVED, ShopStatus.PENDING),
    (ShopStatus.REJECTED, ShopStatus.PENDING),
])
def test_allowed_transitions(current, target):
    ensure_transition(current, target)


@pytest.mark.parametrize("current, target", [
    (ShopStatus.APPROVED, ShopStatus.APPROVED),
    (ShopStatus.APPROVED, ShopStatus.REJECTED),
    (ShopStatus.REJECTED, ShopStatus.APPROVED),
    (ShopStatus.PENDING, ShopStatus.PENDING),
])
def test_forbidden_transitions(current, target):
    with pytest.raises(InvalidArgument):
        ensure_transition(current, target)


@pytest.mark.parametrize("target", [ShopStatus.APPROVED, ShopStatus.REJECTED])
def test_only_admin_approves_or_rejects(target):
    ensure_can_moderate(ADMIN, target)
    with pytest.raises(Forbidden):
        ensure_can_moderate(OWNER, target)


def test_owner_may_return_shop_to_pending():
    ensure_can_moderate(OWNER, ShopStatus.PENDING)


@pytest.mark.parametrize("field, value", [
    ("name", "Corner Market"),
    ("address", "2 Market Street"),
    ("category", "bakery"),
])
def test_owner_critical_edit_returns_to_pending(field, value):
    assert status_after_edit(shop(ShopStatus.APPROVED), {field: value}, OWNER) == ShopStatus.PENDING
    assert status_after_edit(shop(ShopStatus.REJECTED), {field: value}, OWNER) == ShopStatus.PENDING


@pytest.mark.parametrize("changes", [
    {"description": "Fresh bread every morning"},
    {"contact_phone": "+14155550100"},
    {"latitude": 37.776, "longitude": -122.418},
    {"name": "Corner Grocery"},
])
def test_non_critical_edit_keeps_status(changes):
    assert status_after_edit(shop(ShopStatus.APPROVED), changes, OWNER) == ShopStatus.APPROVED


def test_admin_edit_keeps_status():
    assert status_after_edit(shop(ShopStatus.APPROVED), {"name": "Renamed"}, ADMIN) == ShopStatus.APPROVED


def test_pending_shop_stays_pending():
    assert status_after_edit(shop(ShopStatus.PENDING), {"address": "Elsewhere 5"}, OWNER) == ShopStatus.PENDING


def test_changed_critical_fields_ignores_same_values():
    current = shop(ShopStatus.APPROVED)
    assert changed_critical_fields(current, {"name": current.name, "category": "bakery"}) == ["category"]
