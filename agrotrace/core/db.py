from typing import Optional
from tortoise import Tortoise
from agrotrace.core.config import DB_URL
import logging
from logging import INFO

# Set logging level for Tortoise ORM
logging.getLogger('tortoise').setLevel(INFO)
log = logging.getLogger("agrotrace.db")

# Define all models modules for the ORM
MODELS_MODULES = [
    "agrotrace.models.order",
    "agrotrace.models.inventory",
    "agrotrace.models.notification",
    "agrotrace.models.catalog",
    "agrotrace.models.traceability",
    "agrotrace.models.outbox",
    "agrotrace.models.processed_event",
]

async def init_db(db_url: Optional[str] = None):
    """Initializes the Tortoise ORM connection and generates schemas."""
    db_url = db_url or DB_URL
    try:
        await Tortoise.init(
            db_url=db_url,
            modules={"models": MODELS_MODULES},
        )
        # Generate the database schema (create tables)
        await Tortoise.generate_schemas()
        log.info("Database connection established and schemas generated.")
    except Exception as e:
        log.critical(f"Could not connect to database at {db_url}. Error: {e}")
        # Re-raise to prevent the application from starting without a database
        raise

async def close_db():
    """Closes all database connections."""
    await Tortoise.close_connections()
    log.info("Database connections closed.")
