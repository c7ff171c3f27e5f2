"""
Mock Store Application

In-memory cart API speaking the storefront's JSON contract.
Used for local development and for end-to-end tests of the cart client.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from storefront_cart.core.config import Settings, settings as default_settings
from .database import CartDatabase, ProductDatabase
from .errors import register_error_handlers
from .routes import cart_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Mock Store starting up...")
    logger.info(f"Catalog size: {len(app.state.product_db.products)} products")
    yield
    logger.info("Mock Store shutting down...")


def create_app(
    settings: Optional[Settings] = None,
    product_db: Optional[ProductDatabase] = None,
) -> FastAPI:
    """Build a mock store with its own in-memory databases"""
    settings = settings or default_settings

    app = FastAPI(
        title="Mock Store",
        description="In-memory cart API for storefront development",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Development backend only
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.product_db = product_db or ProductDatabase()
    app.state.cart_db = CartDatabase(
        app.state.product_db,
        free_shipping_threshold=settings.free_shipping_threshold,
    )

    register_error_handlers(app)
    app.include_router(cart_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "mock-store",
            "carts": len(app.state.cart_db.carts),
        }

    return app


app = create_app()


def run() -> None:
    """Serve the mock store with uvicorn"""
    import uvicorn

    # Load environment variables
    load_dotenv()
    run_settings = Settings()

    logging.basicConfig(
        level=logging.DEBUG if run_settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "mock_store.main:app",
        host=run_settings.mock_store_host,
        port=run_settings.mock_store_port,
        reload=run_settings.debug,
    )


if __name__ == "__main__":
    run()
