"""
Конфигурация Gunicorn для production.

    gunicorn backend.app.main:app -c gunicorn_config.py
"""

import multiprocessing
import os
from pathlib import Path

# Количество воркеров
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))

# Класс воркера (для async приложений)
worker_class = "uvicorn.workers.UvicornWorker"

# Биндинг
bind = os.getenv("BIND", "127.0.0.1:8000")

# Логи
log_dir = Path(__file__).parent / "logs"
log_dir.mkdir(exist_ok=True)

accesslog = str(log_dir / "access.log")
errorlog = str(log_dir / "error.log")
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Таймауты
timeout = 120
keepalive = 5

# Перезагрузка воркеров
max_requests = 1000
max_requests_jitter = 50

capture_output = True


def on_starting(server):
    """Схема создаётся один раз в мастер-процессе, до запуска воркеров."""
    from backend.app.config import settings
    from database.init_db import init_database

    server.log.info(f"[DB] Preparing schema in {settings.DATABASE_PATH}")
    init_database(db_path=settings.DATABASE_PATH)
