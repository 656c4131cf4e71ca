import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from agrotrace.core.db import init_db, close_db
from agrotrace.api.v1.orders import router as orders_router
from agrotrace.api.v1.inventory import router as inventory_router
from agrotrace.api.v1.notifications import router as notifications_router
from agrotrace.api.v1.catalog import router as catalog_router
from agrotrace.core.config import PROJECT_NAME, VERSION
from agrotrace.core.exception_handlers import setup_exception_handlers

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("agrotrace")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db() # Connect to DB and generate schemas
    yield
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")

app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.include_router(orders_router, prefix="/api/v1/orders", tags=["Orders"])
app.include_router(inventory_router, prefix="/api/v1/inventory", tags=["Inventory"])
app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["Notifications"])
app.include_router(catalog_router, prefix="/api/v1/catalog", tags=["Batches & Products"])


setup_exception_handlers(app)

@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
