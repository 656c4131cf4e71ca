import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Query, status
from agrotrace.models.order import Role
from agrotrace.schemas.inventory import (
    AddStockRequest,
    AvailableQuantityResponse,
    InitializeItemRequest,
    InventoryItemResponse,
    InventoryStats,
    ReservationRequest,
    SaleRequest,
    SyncResponse,
)
from agrotrace.schemas.response import SuccessResponse, NOT_FOUND
from agrotrace.services import inventory_service

log = logging.getLogger("agrotrace.api.inventory")

router = APIRouter()


def _item_data(item) -> dict:
    return InventoryItemResponse.model_validate(item).model_dump()


def _found(item, item_id: str) -> dict:
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Inventory not found for item {item_id}.")
    return _item_data(item)


@router.post("/items", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def initialize_item_endpoint(payload: InitializeItemRequest):
    """Starts tracking an item for an owner. Re-initializing replaces the record and its history."""
    item = await inventory_service.initialize_item(
        payload.item_id, payload.item_type, payload.initial_quantity, payload.owner_id, payload.owner_role
    )
    return SuccessResponse(data=_item_data(item))


@router.post("/sync", response_model=SuccessResponse)
async def sync_inventory_endpoint():
    """Tracks untracked batches/products, then applies sale effects of confirmed orders not yet applied."""
    created = await inventory_service.sync_inventory_with_existing_items()
    applied = await inventory_service.sync_inventory_with_orders()
    return SuccessResponse(data=SyncResponse(items_created=len(created), sales_applied=len(applied)).model_dump())


@router.get("/users/{owner_id}", response_model=SuccessResponse)
async def get_user_inventory_endpoint(owner_id: str, role: Role = Query(...)):
    """Owner's tracked items. Missing batch/product records are created first."""
    await inventory_service.sync_inventory_with_existing_items()
    items = await inventory_service.get_user_inventory(owner_id, role)
    return SuccessResponse(data=[_item_data(i) for i in items])


@router.get("/users/{owner_id}/low-stock", response_model=SuccessResponse)
async def get_low_stock_endpoint(owner_id: str, role: Role = Query(...)):
    items = await inventory_service.get_low_stock_items(owner_id, role)
    return SuccessResponse(data=[_item_data(i) for i in items])


@router.get("/users/{owner_id}/stats", response_model=SuccessResponse)
async def get_inventory_stats_endpoint(owner_id: str, role: Role = Query(...)):
    stats = await inventory_service.get_inventory_stats(owner_id, role)
    return SuccessResponse(data=InventoryStats(**stats).model_dump())


@router.get("/{item_id}/available", response_model=SuccessResponse)
async def get_available_quantity_endpoint(item_id: str, owner_id: Optional[str] = None):
    """Current minus reserved stock; 0 for untracked items."""
    available = await inventory_service.get_available_quantity(item_id, owner_id)
    data = AvailableQuantityResponse(item_id=item_id, owner_id=owner_id, available_quantity=available)
    return SuccessResponse(data=data.model_dump())


@router.post("/{item_id}/add", response_model=SuccessResponse, responses=NOT_FOUND)
async def add_stock_endpoint(item_id: str, payload: AddStockRequest):
    item = await inventory_service.add_stock(item_id, payload.quantity, payload.reason, owner_id=payload.owner_id)
    return SuccessResponse(data=_found(item, item_id))


@router.post("/{item_id}/sale", response_model=SuccessResponse, responses=NOT_FOUND)
async def record_sale_endpoint(item_id: str, payload: SaleRequest):
    item = await inventory_service.update_stock_on_sale(
        item_id, payload.quantity, payload.buyer_id, payload.sale_reference, owner_id=payload.owner_id
    )
    return SuccessResponse(data=_found(item, item_id))


@router.post("/{item_id}/reserve", response_model=SuccessResponse, responses=NOT_FOUND)
async def reserve_stock_endpoint(item_id: str, payload: ReservationRequest):
    item = await inventory_service.reserve_stock(item_id, payload.quantity, payload.order_id, owner_id=payload.owner_id)
    return SuccessResponse(data=_found(item, item_id))


@router.post("/{item_id}/release", response_model=SuccessResponse, responses=NOT_FOUND)
async def release_stock_endpoint(item_id: str, payload: ReservationRequest):
    item = await inventory_service.release_reserved_stock(
        item_id, payload.quantity, payload.order_id, owner_id=payload.owner_id
    )
    return SuccessResponse(data=_found(item, item_id))
