"""
Статусы модерации магазина и переходы между ними.

    pending  -> approved   (администратор)
    pending  -> rejected   (администратор)
    approved -> pending    (владелец изменил название, адрес или категорию)
    rejected -> pending    (владелец исправил заявку или отправил повторно)

Конечного состояния нет.
"""

from typing import Any, Dict

from ..errors import Forbidden, InvalidArgument
from ..models.shop import Shop, ShopStatus
from ..models.user import User, UserType


# Поля, изменение которых требует повторной проверки
CRITICAL_FIELDS = ("name", "address", "category")

ALLOWED_TRANSITIONS = {
    ShopStatus.PENDING: {ShopStatus.APPROVED, ShopStatus.REJECTED},
    ShopStatus.APPROVED: {ShopStatus.PENDING},
    ShopStatus.REJECTED: {ShopStatus.PENDING},
}

# Переходы, которые выполняет только администратор
ADMIN_TARGETS = {ShopStatus.APPROVED, ShopStatus.REJECTED}


def ensure_transition(current: ShopStatus, target: ShopStatus) -> None:
    """Проверяет, что переход current -> target разрешён."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidArgument(
            f"Cannot change shop status from '{current.value}' to '{target.value}'"
        )


def ensure_can_moderate(actor: User, target: ShopStatus) -> None:
    """В approved и rejected переводит только администратор."""
    if target in ADMIN_TARGETS and actor.user_type != UserType.ADMIN:
        raise Forbidden("Only administrators can approve or reject shops")


def changed_critical_fields(shop: Shop, changes: Dict[str, Any]) -> list:
    """Критичные поля, значения которых действительно меняются."""
    return [
        field for field in CRITICAL_FIELDS
        if field in changes and changes[field] != getattr(shop, field)
    ]


def status_after_edit(shop: Shop, changes: Dict[str, Any], editor: User) -> ShopStatus:
    """
    Статус магазина после правки.

    Правка владельцем критичного поля одобренного или отклонённого магазина
    возвращает его на модерацию. Правки администратора статус не меняют.
    """
    if editor.user_type == UserType.ADMIN:
        return shop.status
    if shop.status == ShopStatus.PENDING:
        return shop.status
    if changed_critical_fields(shop, changes):
        ensure_transition(shop.status, ShopStatus.PENDING)
        return ShopStatus.PENDING
    return shop.status
