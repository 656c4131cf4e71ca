import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agrotrace.models.order import OrderStatus, OrderType


class DeliveryInfo(BaseModel):
    address: Optional[str] = None
    phone: Optional[str] = None
    customer_name: Optional[str] = None
    instructions: Optional[str] = None


class BatchRef(BaseModel):
    """The harvest batch a processor is buying."""
    id: str
    name: Optional[str] = None
    crop_type: Optional[str] = None
    quantity: int = Field(..., ge=0)
    unit: Optional[str] = None
    farmer_name: Optional[str] = None


class ProductRef(BaseModel):
    """The processed product a distributor is buying."""
    id: str
    name: Optional[str] = None
    quantity: int = Field(..., ge=0)
    unit: Optional[str] = None
    processor_name: Optional[str] = None


class CartItem(BaseModel):
    id: str
    name: Optional[str] = None
    quantity: int = Field(..., gt=0)
    unit: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    distributor_name: Optional[str] = None


class ProcessingOrderRequest(BaseModel):
    farmer_id: str
    processor_id: str
    batch: BatchRef
    total_amount: Decimal = Field(..., ge=0)
    delivery: DeliveryInfo = Field(default_factory=DeliveryInfo)


class DistributionOrderRequest(BaseModel):
    processor_id: str
    distributor_id: str
    product: ProductRef
    total_amount: Decimal = Field(..., ge=0)
    delivery: DeliveryInfo = Field(default_factory=DeliveryInfo)


class ConsumerOrderRequest(BaseModel):
    """Checkout of a paid cart; one order is created per line."""
    distributor_id: str
    consumer_id: str
    items: List[CartItem] = Field(..., min_length=1)
    delivery: DeliveryInfo = Field(default_factory=DeliveryInfo)
    payment_reference: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    extra: Dict[str, Any] = Field(default_factory=dict, description="Merged into the order record.")


class TrackingRequest(BaseModel):
    tracking_number: Optional[str] = Field(None, description="Generated when omitted.")
    estimated_delivery: Optional[str] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: OrderType
    status: OrderStatus
    farmer_id: Optional[str] = None
    processor_id: Optional[str] = None
    distributor_id: Optional[str] = None
    consumer_id: Optional[str] = None
    batch_id: Optional[str] = None
    batch_name: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int
    unit: str
    unit_price: Optional[Decimal] = None
    total_amount: Decimal
    delivery_address: Optional[str] = None
    contact_phone: Optional[str] = None
    customer_name: Optional[str] = None
    supplier_name: Optional[str] = None
    special_instructions: Optional[str] = None
    payment_reference: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[str] = None
    shipped_at: Optional[datetime] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class OrdersByUserResponse(BaseModel):
    incoming: List[OrderResponse]
    outgoing: List[OrderResponse]


class OrderStatistics(BaseModel):
    total: int
    pending: int
    processing: int
    shipped: int
    delivered: int
    total_revenue: Decimal
    total_purchases: Decimal
