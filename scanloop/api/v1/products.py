"""
==============================================================================
Product Lookup Endpoints
==============================================================================

Barcode → product record resolution, used by the scanner's lookup client.

Response contract:
------------------
    GET /products/lookup/{code}   (code may contain "/", e.g. QR URLs)
      200 {"success": true, "product": {...}}
      404 {"success": false, "error": {"code": "PRODUCT_NOT_FOUND", ...}}

==============================================================================
"""

from fastapi import APIRouter, Depends

from scanloop.catalog.catalog import ProductCatalog
from scanloop.core import exceptions
from scanloop.core.dependencies import get_product_catalog


router = APIRouter(prefix="/products", tags=["Products"])


class ProductController:
    """Controller for product catalog operations."""

    def __init__(self, catalog: ProductCatalog):
        self._catalog = catalog

    def lookup(self, code: str) -> dict:
        """Get product by scanned code."""
        product = self._catalog.find_by_upc(code)

        if not product:
            raise exceptions.product_not_found(code)

        return {
            "success": True,
            "product": product.to_record()
        }

    def get_stats(self) -> dict:
        """Get catalog statistics."""
        return {
            "success": True,
            "stats": self._catalog.get_stats()
        }


@router.get("/lookup/{code:path}")
async def lookup_product(
    code: str,
    catalog: ProductCatalog = Depends(get_product_catalog)
):
    """Look up a product by scanned barcode (exact match)."""
    controller = ProductController(catalog)
    return controller.lookup(code)


@router.get("/stats")
async def get_stats(catalog: ProductCatalog = Depends(get_product_catalog)):
    """Get catalog statistics."""
    controller = ProductController(catalog)
    return controller.get_stats()
