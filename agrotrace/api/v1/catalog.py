import logging
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from agrotrace.core.deps import get_chain_recorder
from agrotrace.schemas.catalog import (
    BatchCreateRequest,
    BatchCreatedResponse,
    BatchResponse,
    ChainRecordRequest,
    ProductCreateRequest,
    ProductResponse,
)
from agrotrace.models.order import Role
from agrotrace.schemas.response import SuccessResponse, NOT_FOUND
from agrotrace.schemas.traceability import (
    BatchHistorySummary,
    BatchQRData,
    TraceEventCreate,
    TraceEventResponse,
    TraceEventVerify,
)
from agrotrace.services import catalog_service, traceability_service
from agrotrace.services.blockchain import BlockchainRecorder

log = logging.getLogger("agrotrace.api.catalog")

router = APIRouter()


@router.post("/batches", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_batch_endpoint(
    payload: BatchCreateRequest, recorder: BlockchainRecorder = Depends(get_chain_recorder)
):
    """
    Saves a harvest batch and, if requested, records it on chain. The batch is
    kept even when on-chain recording fails; the outcome is reported in `chain`.
    """
    data = payload.model_dump(exclude={"farmer_id", "record_on_chain", "user"})
    batch, result = await catalog_service.create_batch(
        payload.farmer_id,
        data,
        recorder=recorder if payload.record_on_chain else None,
        user=payload.user,
    )
    body = BatchCreatedResponse(batch=BatchResponse.model_validate(batch), chain=result)
    return SuccessResponse(data=body.model_dump())


@router.get("/batches", response_model=SuccessResponse)
async def list_batches_endpoint(farmer_id: Optional[str] = None):
    batches = await catalog_service.list_batches(farmer_id)
    return SuccessResponse(data=[BatchResponse.model_validate(b).model_dump() for b in batches])


@router.post("/batches/{batch_id}/chain", response_model=SuccessResponse, responses=NOT_FOUND)
async def record_batch_endpoint(
    batch_id: str, payload: ChainRecordRequest, recorder: BlockchainRecorder = Depends(get_chain_recorder)
):
    """Retries on-chain recording for a batch saved earlier."""
    batch = await catalog_service.get_batch(batch_id)
    if not batch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    result = await catalog_service.record_batch_on_chain(batch, payload.user, recorder)
    body = BatchCreatedResponse(batch=BatchResponse.model_validate(batch), chain=result)
    return SuccessResponse(data=body.model_dump())


@router.post("/products", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_product_endpoint(payload: ProductCreateRequest):
    if not payload.processor_id and not payload.distributor_id:
        raise HTTPException(status_code=400, detail="A product needs a processor_id or distributor_id.")
    product = await catalog_service.create_product(payload.model_dump())
    return SuccessResponse(data=ProductResponse.model_validate(product).model_dump())


@router.get("/products", response_model=SuccessResponse)
async def list_products_endpoint(processor_id: Optional[str] = None, distributor_id: Optional[str] = None):
    products = await catalog_service.list_products(processor_id, distributor_id)
    return SuccessResponse(data=[ProductResponse.model_validate(p).model_dump() for p in products])


# ----------- Traceability -----------

async def _existing_batch(batch_id: str):
    batch = await catalog_service.get_batch(batch_id)
    if not batch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    return batch


@router.get("/batches/{batch_id}/trace", response_model=SuccessResponse, responses=NOT_FOUND)
async def get_batch_trace_endpoint(batch_id: str):
    """The batch's journey, oldest event first."""
    await _existing_batch(batch_id)
    events = await traceability_service.get_batch_traceability(batch_id)
    return SuccessResponse(data=[TraceEventResponse.model_validate(e).model_dump() for e in events])


@router.post("/batches/{batch_id}/trace", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse,
             responses=NOT_FOUND)
async def add_trace_event_endpoint(batch_id: str, payload: TraceEventCreate):
    """Records a step for the batch. Each role may only record its own kinds of events (403 otherwise)."""
    await _existing_batch(batch_id)
    try:
        event = await traceability_service.add_trace_event(
            batch_id,
            payload.event_type,
            payload.model_dump(exclude={"event_type", "user_id", "user_role"}),
            payload.user_id,
            payload.user_role,
        )
    except traceability_service.TracePermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return SuccessResponse(data=TraceEventResponse.model_validate(event).model_dump())


@router.get("/batches/{batch_id}/trace/summary", response_model=SuccessResponse, responses=NOT_FOUND)
async def get_batch_trace_summary_endpoint(batch_id: str):
    summary = await traceability_service.get_batch_history_summary(batch_id)
    if not summary:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No trace events for batch")
    return SuccessResponse(data=BatchHistorySummary(**summary).model_dump())


@router.get("/batches/{batch_id}/trace/qr", response_model=SuccessResponse, responses=NOT_FOUND)
async def get_batch_qr_endpoint(batch_id: str):
    """Payload for the batch's QR label."""
    await _existing_batch(batch_id)
    qr = await traceability_service.generate_batch_qr_data(batch_id)
    return SuccessResponse(data=BatchQRData(**qr).model_dump())


@router.post("/trace/{event_id}/verify", response_model=SuccessResponse, responses=NOT_FOUND)
async def verify_trace_event_endpoint(event_id: UUID, payload: TraceEventVerify):
    event = await traceability_service.verify_trace_event(event_id, payload.verifier_id, payload.verifier_role)
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trace event not found")
    return SuccessResponse(data=TraceEventResponse.model_validate(event).model_dump())


@router.get("/trace/users/{user_id}", response_model=SuccessResponse)
async def get_user_trace_events_endpoint(user_id: str, role: Role = Query(...)):
    events = await traceability_service.get_user_trace_events(user_id, role)
    return SuccessResponse(data=[TraceEventResponse.model_validate(e).model_dump() for e in events])


@router.post("/trace/sync", response_model=SuccessResponse)
async def sync_traceability_endpoint():
    """Writes the 'created' event for batches recorded before traceability existed."""
    created = await traceability_service.initialize_traceability_for_existing_batches()
    return SuccessResponse(data={"events_created": len(created)})
