"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.inventory_matrix import router as inventory_matrix_router
from routes.cart_inventory import router as cart_inventory_router

__all__ = [
    "inventory_matrix_router",
    "cart_inventory_router",
]
