"""
==============================================================================
Product Catalog Module
==============================================================================

JSON product catalog backing the lookup endpoint.

Features:
---------
- JSON-based product storage with nested categories
- Exact lookup by barcode
- Category statistics

JSON Structure:
--------------
{
  "ambient": {
    "Biscuits": [
      {"name": "Product Name", "upc": "123456", "price": 4.5, "stock": 12},
      ...
    ]
  },
  "cold_chain": {
    "Dessert": [...]
  }
}

==============================================================================
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .models import Product


# Module logger
logger = logging.getLogger(__name__)


class ProductCatalog:
    """
    Product catalog manager.

    Attributes:
        products: List of all products
        categories: Nested category structure

    Example:
        >>> catalog = ProductCatalog(Path("data/products.json"))
        >>> product = catalog.find_by_upc("7891000100103")
    """

    def __init__(self, products_file: Path) -> None:
        """
        Initialize catalog from JSON file.

        Args:
            products_file: Path to products.json
        """
        self._products_file = products_file
        self._products: List[Product] = []
        self._by_upc: Dict[str, Product] = {}
        self._categories: Dict[str, Dict[str, List[Product]]] = {}

        self._load()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def products(self) -> List[Product]:
        """Get all products."""
        return self._products.copy()

    @property
    def categories(self) -> Dict[str, Dict[str, List[Product]]]:
        """Get category structure."""
        return self._categories

    # =========================================================================
    # LOADING
    # =========================================================================

    def _load(self) -> None:
        """Load products from JSON file."""
        try:
            with self._products_file.open("r", encoding="utf-8") as f:
                data = json.load(f)

            self._products.clear()
            self._categories.clear()

            for main_category, subcategories in data.items():
                if not isinstance(subcategories, dict):
                    logger.warning(f"Skipping invalid category: {main_category}")
                    continue

                self._categories[main_category] = {}

                for subcategory, products_list in subcategories.items():
                    if not isinstance(products_list, list):
                        continue

                    category_products = []

                    for item in products_list:
                        if "name" not in item or "upc" not in item:
                            continue

                        product = Product(**{
                            **item,
                            "upc": str(item["upc"]),
                            "main_category": main_category,
                            "subcategory": subcategory,
                        })

                        category_products.append(product)
                        self._products.append(product)

                    self._categories[main_category][subcategory] = category_products

            self._build_indexes()

            logger.info(f"✅ Loaded {len(self._products)} products from {len(self._categories)} categories")

        except FileNotFoundError:
            logger.error(f"Products file not found: {self._products_file}")
            raise
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON: {e}")
            raise

    def _build_indexes(self) -> None:
        """Build lookup indexes."""
        self._by_upc.clear()

        for product in self._products:
            self._by_upc[product.upc] = product

    def reload(self) -> None:
        """Reload catalog from file."""
        logger.info("Reloading product catalog...")
        self._load()

    # =========================================================================
    # SEARCH METHODS
    # =========================================================================

    def find_by_upc(self, upc: str) -> Optional[Product]:
        """
        Find product by barcode.

        Matching is exact: a scanned value only resolves to the product
        registered under that same string.

        Args:
            upc: Scanned barcode value

        Returns:
            Product or None
        """
        return self._by_upc.get(upc)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def get_stats(self) -> Dict:
        """Get catalog statistics."""
        stats = {
            "total_products": len(self._products),
            "main_categories": len(self._categories),
            "categories": {}
        }

        for main_cat, subcats in self._categories.items():
            stats["categories"][main_cat] = {
                "subcategories": len(subcats),
                "products": sum(len(prods) for prods in subcats.values())
            }

        return stats


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

_catalog_instance: Optional[ProductCatalog] = None


def get_catalog() -> Optional[ProductCatalog]:
    """Get the global catalog instance."""
    return _catalog_instance


def init_catalog(products_file: Path) -> ProductCatalog:
    """
    Initialize the global catalog instance.

    Args:
        products_file: Path to products.json

    Returns:
        ProductCatalog instance
    """
    global _catalog_instance
    _catalog_instance = ProductCatalog(products_file)
    return _catalog_instance
