"""
Скрипт инициализации базы данных SQLite.

Запуск из корня проекта:

    python -m database.init_db [--reset]
"""

import sqlite3
import os
from pathlib import Path

from backend.app.config import settings
from backend.app.services.schema import SCHEMA_SQL, TABLES


def init_database(db_path: Path = settings.DATABASE_PATH, reset: bool = False) -> None:
    """
    Инициализирует базу данных.

    Args:
        db_path: Путь к файлу базы
        reset: Если True, удаляет существующую базу и создаёт новую.
    """
    if reset and db_path.exists():
        os.remove(db_path)
        print(f"[OK] Удалена существующая база данных: {db_path}")

    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")

    try:
        print("[...] Создание схемы базы данных...")
        cursor.executescript(SCHEMA_SQL)
        conn.commit()
        print(f"\n[OK] База данных готова: {db_path}")

        print_statistics(cursor)
    except sqlite3.Error as e:
        conn.rollback()
        print(f"[ERROR] Ошибка: {e}")
        raise
    finally:
        conn.close()


def print_statistics(cursor: sqlite3.Cursor) -> None:
    """Выводит статистику базы данных."""
    print("\n=== Статистика базы данных ===")
    print("-" * 40)

    for table in TABLES:
        cursor.execute(f"SELECT COUNT(*) FROM {table}")
        count = cursor.fetchone()[0]
        print(f"  {table}: {count}")

    cursor.execute("SELECT status, COUNT(*) FROM shops GROUP BY status ORDER BY status")
    rows = cursor.fetchall()
    if rows:
        print("\n=== Магазины по статусам ===")
        print("-" * 40)
        for status, count in rows:
            print(f"  * {status}: {count}")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Инициализация базы данных")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Удалить существующую базу и создать новую"
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=settings.DATABASE_PATH,
        help="Путь к файлу базы (по умолчанию из настроек)"
    )

    args = parser.parse_args()

    print("=" * 50)
    print(f"  {settings.APP_NAME} - Инициализация БД")
    print("=" * 50)
    print()

    init_database(db_path=args.db, reset=args.reset)
