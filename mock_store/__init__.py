"""Mock cart API for storefront development and tests"""

from .main import create_app

__all__ = ["create_app"]
