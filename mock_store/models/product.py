"""Product models for the mock store"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from storefront_cart.models.cart import Product as ProductSnapshot


class ProductCategory(str, Enum):
    ELECTRONICS = "electronics"
    ACCESSORIES = "accessories"
    OFFICE = "office"


class CatalogProduct(BaseModel):
    """Product in the catalog"""
    id: str
    name: str
    description: str
    price: float = Field(gt=0)
    category: ProductCategory
    image_url: Optional[str] = None
    in_stock: bool = True
    stock_quantity: int = Field(ge=0, default=100)

    def snapshot(self) -> ProductSnapshot:
        """Product as embedded in a cart item"""
        return ProductSnapshot(
            id=self.id,
            name=self.name,
            price=self.price,
            description=self.description,
            image_url=self.image_url,
            in_stock=self.in_stock,
            stock_quantity=self.stock_quantity,
        )
