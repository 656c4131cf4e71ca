# scripts/seed_data.py
import asyncio
import logging
from decimal import Decimal
from agrotrace.core.db import init_db, close_db
from agrotrace.models.catalog import Batch, Product
from agrotrace.services.inventory_service import sync_inventory_with_existing_items
from agrotrace.services.traceability_service import initialize_traceability_for_existing_batches

log = logging.getLogger("seed_data")

DEMO_FARMER = "farmer-demo"
DEMO_PROCESSOR = "processor-demo"
DEMO_DISTRIBUTOR = "distributor-demo"


async def seed():
    """Demo farmer batches and processor/distributor products, then starts tracking their stock."""
    b1, _ = await Batch.get_or_create(
        id="BTH-DEMO-0001",
        defaults={"farmer_id": DEMO_FARMER, "farmer_name": "Demo Farm", "variety": "French Horn", "quantity": 500},
    )
    b2, _ = await Batch.get_or_create(
        id="BTH-DEMO-0002",
        defaults={"farmer_id": DEMO_FARMER, "farmer_name": "Demo Farm", "variety": "False Horn", "quantity": 8},
    )
    p1, _ = await Product.get_or_create(
        id="PRD-DEMO-0001",
        defaults={
            "name": "Plantain Flour 1kg", "processor_id": DEMO_PROCESSOR, "processor_name": "Demo Mill",
            "source_batch_id": b1.id, "quantity": 120, "price": Decimal("2500.00"),
        },
    )
    p2, _ = await Product.get_or_create(
        id="PRD-DEMO-0002",
        defaults={
            "name": "Plantain Chips 200g", "distributor_id": DEMO_DISTRIBUTOR, "distributor_name": "Demo Foods",
            "quantity": 40, "price": Decimal("800.00"),
        },
    )
    log.info(f"Batches: {b1.id}, {b2.id}; products: {p1.id}, {p2.id}")

    # Existing records are left alone, so re-running is safe
    created = await sync_inventory_with_existing_items()
    await initialize_traceability_for_existing_batches()
    log.info(f"Inventory seeded: {len(created)} new record(s).")
    return created


async def main():
    await init_db()
    try:
        await seed()
    finally:
        await close_db()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
