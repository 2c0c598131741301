"""
==============================================================================
Catalog Package - Product Lookup
==============================================================================

Product catalog loaded from JSON, resolved by scanned barcode.

Classes:
--------
- Product: Pydantic model for products
- ProductCatalog: Catalog manager with barcode lookup

==============================================================================
"""

from .models import Product
from .catalog import ProductCatalog, get_catalog, init_catalog

__all__ = [
    "Product",
    "ProductCatalog",
    "get_catalog",
    "init_catalog",
]
