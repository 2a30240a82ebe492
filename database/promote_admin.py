"""
Назначает роль администратора существующему пользователю.
Администраторы не регистрируются через API.

    python -m database.promote_admin --email admin@example.com
    python -m database.promote_admin --phone +79990001122
"""

import sqlite3
import sys
from pathlib import Path

from backend.app.config import settings


def promote(db_path: Path, email: str = None, phone: str = None) -> bool:
    """Возвращает True, если пользователь найден и повышен."""
    conn = sqlite3.connect(db_path)
    try:
        if email:
            cursor = conn.execute(
                "UPDATE users SET user_type = 'admin', updated_at = CURRENT_TIMESTAMP WHERE email = ?",
                (email.lower(),)
            )
        else:
            cursor = conn.execute(
                "UPDATE users SET user_type = 'admin', updated_at = CURRENT_TIMESTAMP WHERE phone = ?",
                (phone,)
            )
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Назначение администратора")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--email", help="Email пользователя")
    group.add_argument("--phone", help="Телефон пользователя")
    parser.add_argument("--db", type=Path, default=settings.DATABASE_PATH, help="Путь к файлу базы")

    args = parser.parse_args()

    if promote(args.db, email=args.email, phone=args.phone):
        print(f"[OK] Пользователь {args.email or args.phone} теперь администратор")
    else:
        print(f"[ERROR] Пользователь {args.email or args.phone} не найден")
        sys.exit(1)
