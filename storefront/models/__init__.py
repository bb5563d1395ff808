"""
models/__init__.py
------------------
Re-export all models so create_tables.py (and Alembic, if added) can import
Base and discover all tables via a single import:

    from storefront.models import Base
"""

from storefront.db.base import Base
from storefront.models.user import User
from storefront.models.login_session import LoginSession
from storefront.models.magic_link import MagicLinkToken
from storefront.models.customer import Customer
from storefront.models.order import Order
from storefront.models.product import Product

__all__ = [
    "Base",
    "User",
    "LoginSession",
    "MagicLinkToken",
    "Customer",
    "Order",
    "Product",
]
