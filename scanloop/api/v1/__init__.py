"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- products: Barcode lookup and catalog stats
- scanner: Scan loop control

==============================================================================
"""

from . import health, products, scanner

__all__ = ["health", "products", "scanner"]
