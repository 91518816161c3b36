"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from cartsync.config import settings
from cartsync.cart import CartStore
from cartsync.data.database import LocalStorage, init_db
from cartsync.gateway import HttpCartGateway
from cartsync.routes.cart import router as cart_router
from cartsync.utils.events import AddEventChannel

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the cart store at startup and release its gateway at shutdown."""
    init_db()
    store = CartStore(
        gateway=HttpCartGateway(),
        storage=LocalStorage(),
        events=AddEventChannel(clear_delay=settings.add_event_clear_delay)
    )
    app.state.cart_store = store
    logger.info(f"[CART] Store hydrated with {len(store.items)} lines")
    try:
        yield
    finally:
        await store.aclose()


# Initialize FastAPI app
app = FastAPI(
    title=settings.project_name,
    version=settings.api_version,
    description="Optimistic cart synchronization API",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(cart_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Cart Sync API",
        "version": settings.api_version,
        "docs": "/docs"
    }


@app.head("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
