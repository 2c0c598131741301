"""
==============================================================================
Product Models Module
==============================================================================

Pydantic models for product catalog items.

==============================================================================
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict


class Product(BaseModel):
    """
    Product model for catalog items.

    Attributes:
        name: Product display name
        upc: Barcode value the product is registered under
        main_category: Top-level category (e.g., "ambient", "cold_chain")
        subcategory: Sub-category (e.g., "Biscuits", "Dessert")
        price: Unit price
        stock: Units in stock
        unit: Unit of measure (defaults to "un")
    """

    model_config = ConfigDict(
        from_attributes=True,
        extra="allow",
    )

    name: str = Field(..., min_length=1, description="Product name")
    upc: str = Field(..., description="Barcode value")
    main_category: Optional[str] = Field(default=None, description="Main category")
    subcategory: Optional[str] = Field(default=None, description="Subcategory")
    price: Optional[float] = Field(default=None, ge=0, description="Unit price")
    stock: Optional[int] = Field(default=None, description="Units in stock")
    unit: str = Field(default="un", description="Unit of measure")

    def to_record(self) -> Dict[str, Any]:
        """Serialise for the lookup response."""
        return self.model_dump()
