# Database modules

from .products import ProductDatabase, default_catalog
from .carts import CartDatabase, COUPONS, SHIPPING_OPTIONS

__all__ = [
    "ProductDatabase",
    "default_catalog",
    "CartDatabase",
    "COUPONS",
    "SHIPPING_OPTIONS",
]
