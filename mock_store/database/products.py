"""Mock product database"""

from typing import Optional
from ..models.product import CatalogProduct, ProductCategory


def default_catalog() -> dict[str, CatalogProduct]:
    """Fresh copy of the demo catalog"""
    products = [
        CatalogProduct(
            id="1",
            name="Logitech MX Master 3S Mouse",
            description="Quiet-click wireless mouse with 8K DPI tracking on any surface.",
            price=99.99,
            category=ProductCategory.ACCESSORIES,
            image_url="/static/images/mx-master-3s.jpg",
            stock_quantity=50,
        ),
        CatalogProduct(
            id="2",
            name="Keychron K2 Mechanical Keyboard",
            description="75% layout wireless mechanical keyboard with hot-swappable switches.",
            price=89.00,
            category=ProductCategory.ACCESSORIES,
            image_url="/static/images/keychron-k2.jpg",
            stock_quantity=20,
        ),
        CatalogProduct(
            id="3",
            name="Anker 7-in-1 USB-C Hub",
            description="4K HDMI, 100W power delivery, SD and microSD card readers.",
            price=39.99,
            category=ProductCategory.ELECTRONICS,
            image_url="/static/images/anker-hub.jpg",
            stock_quantity=2,
        ),
        CatalogProduct(
            id="4",
            name="Sony WH-1000XM5 Wireless Headphones",
            description="Industry-leading noise cancellation with 30-hour battery life.",
            price=349.99,
            category=ProductCategory.ELECTRONICS,
            image_url="/static/images/sony-headphones.jpg",
            stock_quantity=10,
        ),
        CatalogProduct(
            id="5",
            name="Rain Design mStand Laptop Stand",
            description="Single-piece aluminium stand that raises the screen to eye level.",
            price=45.00,
            category=ProductCategory.OFFICE,
            image_url="/static/images/mstand.jpg",
            in_stock=False,
            stock_quantity=0,
        ),
        CatalogProduct(
            id="6",
            name="Moleskine Classic Notebook",
            description="Large ruled hardcover notebook, 240 pages.",
            price=8.50,
            category=ProductCategory.OFFICE,
            image_url="/static/images/moleskine.jpg",
            stock_quantity=200,
        ),
    ]
    return {product.id: product for product in products}


class ProductDatabase:
    """In-memory product database for the mock store"""

    def __init__(self, products: Optional[dict[str, CatalogProduct]] = None):
        self.products = products if products is not None else default_catalog()

    def get_product(self, product_id: str) -> Optional[CatalogProduct]:
        """Get a product by ID"""
        return self.products.get(str(product_id))

    def set_stock(self, product_id: str, stock_quantity: int) -> bool:
        """
        Overwrite product stock.

        Returns:
            True if the product exists
        """
        product = self.get_product(product_id)
        if not product or stock_quantity < 0:
            return False

        product.stock_quantity = stock_quantity
        product.in_stock = stock_quantity > 0
        return True

    def set_price(self, product_id: str, price: float) -> bool:
        """Change a product's current price"""
        product = self.get_product(product_id)
        if not product or price <= 0:
            return False

        product.price = price
        return True
