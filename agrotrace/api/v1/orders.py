import logging
from fastapi import APIRouter, HTTPException, Query, status
from agrotrace.models.order import Role
from agrotrace.schemas.response import SuccessResponse, NOT_FOUND
from agrotrace.schemas.order import (
    ConsumerOrderRequest,
    DistributionOrderRequest,
    OrderResponse,
    OrdersByUserResponse,
    OrderStatistics,
    OrderStatusUpdate,
    ProcessingOrderRequest,
    TrackingRequest,
)
from agrotrace.services import order_service
from uuid import UUID

router = APIRouter()
log = logging.getLogger("agrotrace.api.orders")


def _order_data(order) -> dict:
    return OrderResponse.model_validate(order).model_dump()


@router.post("/processing", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_processing_order_endpoint(request_data: ProcessingOrderRequest):
    """A processor orders a harvest batch from a farmer. Starts as pending."""
    order = await order_service.create_processing_order(
        farmer_id=request_data.farmer_id,
        processor_id=request_data.processor_id,
        batch=request_data.batch.model_dump(),
        total_amount=request_data.total_amount,
        delivery_info=request_data.delivery.model_dump(),
    )
    return SuccessResponse(data=_order_data(order))


@router.post("/distribution", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_distribution_order_endpoint(request_data: DistributionOrderRequest):
    """A distributor orders processed product from a processor. Starts as pending."""
    order = await order_service.create_distribution_order(
        processor_id=request_data.processor_id,
        distributor_id=request_data.distributor_id,
        product=request_data.product.model_dump(),
        total_amount=request_data.total_amount,
        delivery_info=request_data.delivery.model_dump(),
    )
    return SuccessResponse(data=_order_data(order))


@router.post("/consumer", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_consumer_order_endpoint(request_data: ConsumerOrderRequest):
    """Paid consumer checkout. Returns one confirmed order per cart line."""
    orders = await order_service.create_consumer_order(
        distributor_id=request_data.distributor_id,
        consumer_id=request_data.consumer_id,
        cart_items=[item.model_dump() for item in request_data.items],
        delivery_info=request_data.delivery.model_dump(),
        payment_reference=request_data.payment_reference,
    )
    log.info(f"Consumer {request_data.consumer_id} checked out {len(orders)} order(s)")
    return SuccessResponse(data=[_order_data(o) for o in orders])


@router.get("/", response_model=SuccessResponse)
async def list_orders_endpoint():
    orders = await order_service.get_all_orders()
    return SuccessResponse(data=[_order_data(o) for o in orders])


@router.get("/users/{user_id}", response_model=SuccessResponse)
async def get_user_orders_endpoint(user_id: str, role: Role = Query(...)):
    """Incoming (purchases) and outgoing (sales) orders for a user in a role."""
    views = await order_service.get_orders_by_user(user_id, role)
    data = OrdersByUserResponse(
        incoming=[OrderResponse.model_validate(o) for o in views["incoming"]],
        outgoing=[OrderResponse.model_validate(o) for o in views["outgoing"]],
    ).model_dump()
    return SuccessResponse(data=data)


@router.get("/users/{user_id}/statistics", response_model=SuccessResponse)
async def get_order_statistics_endpoint(user_id: str, role: Role = Query(...)):
    stats = await order_service.get_order_statistics(user_id, role)
    return SuccessResponse(data=OrderStatistics(**stats).model_dump())


@router.get("/{order_id}", response_model=SuccessResponse, responses=NOT_FOUND)
async def get_order_endpoint(order_id: UUID):
    order = await order_service.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return SuccessResponse(data=_order_data(order))


@router.patch("/{order_id}/status", response_model=SuccessResponse, responses=NOT_FOUND)
async def update_status_endpoint(order_id: UUID, payload: OrderStatusUpdate):
    """Sets any status; no transition rules are applied."""
    order = await order_service.update_order_status(order_id, payload.status, payload.extra)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return SuccessResponse(data=_order_data(order))


@router.post("/{order_id}/tracking", response_model=SuccessResponse, responses=NOT_FOUND)
async def add_tracking_endpoint(order_id: UUID, payload: TrackingRequest):
    """Marks the order shipped with a tracking number (generated when not supplied)."""
    tracking_number = payload.tracking_number or order_service.generate_tracking_number()
    order = await order_service.add_tracking_info(order_id, tracking_number, payload.estimated_delivery)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return SuccessResponse(data=_order_data(order))
