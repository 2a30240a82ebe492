"""
Модели данных маркетплейса.
"""

from .user import User, UserCreate, UserUpdate, UserType
from .shop import Shop, ShopCreate, ShopUpdate, ShopStatus, NearbyShop, Distance
from .product import Product, ProductCreate, ProductUpdate, ProductWithDetails
from .catalog import CatalogItem, CatalogItemCreate, CatalogItemUpdate

__all__ = [
    # User
    "User", "UserCreate", "UserUpdate", "UserType",
    # Shop
    "Shop", "ShopCreate", "ShopUpdate", "ShopStatus", "NearbyShop", "Distance",
    # Product
    "Product", "ProductCreate", "ProductUpdate", "ProductWithDetails",
    # Catalog
    "CatalogItem", "CatalogItemCreate", "CatalogItemUpdate",
]
