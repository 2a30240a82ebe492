"""
API Routes маркетплейса.
"""

from .users import router as users_router
from .shops import router as shops_router
from .products import router as products_router
from .catalog import router as catalog_router
from .geocode import router as geocode_router
from .admin import router as admin_router

__all__ = [
    "users_router",
    "shops_router",
    "products_router",
    "catalog_router",
    "geocode_router",
    "admin_router",
]
