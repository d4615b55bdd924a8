"""
API routers, one module per resource. ``storefront.api.app`` mounts them.
"""

from . import auth, clients, orders, payments, products, system

__all__ = ["auth", "clients", "orders", "payments", "products", "system"]
