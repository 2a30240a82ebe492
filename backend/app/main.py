"""
Лавка - FastAPI Backend маркетплейса магазинов рядом.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import settings
from .errors import register_exception_handlers
from .services import database
from .services.database import DatabaseService, get_db
from .routes import (
    users_router,
    shops_router,
    products_router,
    catalog_router,
    geocode_router,
    admin_router,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle управление приложением."""
    # Startup
    settings.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
    database._db_service = DatabaseService(db_path=settings.DATABASE_PATH)
    await database._db_service.connect()
    await database._db_service.init_schema()
    logger.info(f"[OK] Database connected: {settings.DATABASE_PATH}")

    yield

    # Shutdown
    if database._db_service:
        await database._db_service.disconnect()
        database._db_service = None
        logger.info("[OK] Database disconnected")


# Создаём приложение
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="API маркетплейса: магазины рядом, товары, модерация",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Подключаем роутеры
app.include_router(users_router, prefix="/api/auth", tags=["Auth"])
app.include_router(shops_router, prefix="/api/shops", tags=["Shops"])
app.include_router(products_router, prefix="/api/products", tags=["Products"])
app.include_router(catalog_router, prefix="/api/catalog", tags=["Catalog"])
app.include_router(geocode_router, prefix="/api/geocode", tags=["Geocode"])
app.include_router(admin_router, prefix="/api/admin", tags=["Admin"])


@app.get("/health")
@app.get("/api/health")
async def health_check(db: DatabaseService = Depends(get_db)):
    """Проверка здоровья сервиса и доступности базы."""
    await db.fetch_one("SELECT 1")
    return {"status": "healthy"}


# Раздача загруженных изображений для локального хранилища
if settings.STORAGE_BACKEND == "local":
    settings.UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    app.mount(settings.MEDIA_URL_PREFIX, StaticFiles(directory=settings.UPLOADS_DIR), name="media")
