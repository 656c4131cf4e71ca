import logging
from typing import Any, Dict, List, Optional, Tuple

from tortoise import timezone
from tortoise.transactions import in_transaction

from agrotrace.models.catalog import Batch, Product
from agrotrace.models.order import Role
from agrotrace.models.traceability import TraceEventType
from agrotrace.services.blockchain import (
    BlockchainRecorder,
    ChainRecordResult,
    DisconnectedRecorder,
    explorer_tx_url,
    format_batch_for_chain,
    not_connected_result,
)
from agrotrace.services.traceability_service import add_trace_event, created_event_data

log = logging.getLogger("catalog_service")

BATCH_FIELDS = (
    "farmer_name", "crop_type", "variety", "quantity", "unit",
    "harvest_date", "location", "quality_notes", "certifications",
)
PRODUCT_FIELDS = (
    "name", "processor_id", "processor_name", "distributor_id", "distributor_name",
    "source_batch_id", "quantity", "unit", "price",
)


async def record_batch_on_chain(
    batch: Batch, user: Optional[Dict[str, Any]], recorder: Optional[BlockchainRecorder]
) -> ChainRecordResult:
    """
    Records an already-saved batch on chain. Failures are reported in the result
    and never undo the local batch.
    """
    recorder = recorder or DisconnectedRecorder()
    if not recorder.is_connected:
        log.info(f"Wallet not connected, batch {batch.id} saved locally only")
        return not_connected_result()

    try:
        result = await recorder.record_batch_on_chain(batch.id, format_batch_for_chain(batch, user))
    except Exception as e:
        log.error(f"Blockchain recording failed for batch {batch.id}: {e}")
        return ChainRecordResult(success=False, error=str(e))

    if result.success and result.tx_hash:
        batch.chain_batch_id = result.batch_id
        batch.chain_tx_hash = result.tx_hash
        batch.chain_explorer_url = result.explorer_url or explorer_tx_url(result.tx_hash)
        batch.chain_recorded_at = timezone.now()
        await batch.save(update_fields=[
            "chain_batch_id", "chain_tx_hash", "chain_explorer_url", "chain_recorded_at",
        ])
        log.info(f"Batch {batch.id} recorded on chain, tx {result.tx_hash}")
        if not result.explorer_url:
            result = result.model_copy(update={"explorer_url": batch.chain_explorer_url})
    elif not result.success:
        log.warning(f"Batch {batch.id} not recorded on chain: {result.error or result.reason}")
    return result


async def create_batch(
    farmer_id: str,
    data: Dict[str, Any],
    recorder: Optional[BlockchainRecorder] = None,
    user: Optional[Dict[str, Any]] = None,
) -> Tuple[Batch, ChainRecordResult]:
    """
    Saves a harvest batch together with its 'created' trace event, then attempts
    chain recording.
    """
    values = {k: v for k, v in data.items() if k in BATCH_FIELDS and v is not None}
    async with in_transaction() as conn:
        batch = await Batch.create(farmer_id=farmer_id, using_db=conn, **values)
        await add_trace_event(
            batch.id, TraceEventType.CREATED,
            created_event_data(batch, (user or {}).get("name")),
            farmer_id, Role.FARMER, conn=conn,
        )
    log.info(f"Batch {batch.id} created by farmer {farmer_id}")
    result = await record_batch_on_chain(batch, user, recorder)
    return batch, result


async def get_batch(batch_id: str) -> Optional[Batch]:
    return await Batch.get_or_none(id=batch_id)


async def list_batches(farmer_id: Optional[str] = None) -> List[Batch]:
    query = Batch.all()
    if farmer_id:
        query = query.filter(farmer_id=farmer_id)
    return await query.order_by("-created_at")


async def create_product(data: Dict[str, Any]) -> Product:
    product = await Product.create(**{k: v for k, v in data.items() if k in PRODUCT_FIELDS and v is not None})
    log.info(f"Product {product.id} created")
    return product


async def list_products(processor_id: Optional[str] = None, distributor_id: Optional[str] = None) -> List[Product]:
    query = Product.all()
    if processor_id:
        query = query.filter(processor_id=processor_id)
    if distributor_id:
        query = query.filter(distributor_id=distributor_id)
    return await query.order_by("-created_at")
