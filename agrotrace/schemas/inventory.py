import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agrotrace.models.inventory import ItemType
from agrotrace.models.order import Role


class InitializeItemRequest(BaseModel):
    """Starts (or restarts) tracking an item for one owner."""
    item_id: str = Field(..., description="Batch or product id.")
    item_type: ItemType
    initial_quantity: int = Field(..., ge=0)
    owner_id: str
    owner_role: Role


class AddStockRequest(BaseModel):
    quantity: int = Field(..., gt=0)
    reason: str = Field("restocked", description="Free-text note kept in the stock history.")
    owner_id: Optional[str] = Field(None, description="Scope to one owner's record.")


class SaleRequest(BaseModel):
    quantity: int = Field(..., gt=0)
    buyer_id: str
    sale_reference: Optional[str] = None
    owner_id: Optional[str] = None


class ReservationRequest(BaseModel):
    quantity: int = Field(..., gt=0)
    order_id: str
    owner_id: Optional[str] = None


class StockHistoryEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    action: str
    quantity: int
    timestamp: str
    note: str


class InventoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    item_id: str
    item_type: ItemType
    owner_id: str
    owner_role: Role
    initial_quantity: int
    current_quantity: int
    reserved_quantity: int
    sold_quantity: int
    available_quantity: int
    low_stock_alert: bool
    stock_history: List[StockHistoryEntry]
    last_updated: datetime


class InventoryStats(BaseModel):
    total_items: int
    total_current_stock: int
    total_sold: int
    total_reserved: int
    low_stock_items: int
    out_of_stock_items: int
    total_value: int


class AvailableQuantityResponse(BaseModel):
    item_id: str
    owner_id: Optional[str] = None
    available_quantity: int


class SyncResponse(BaseModel):
    items_created: int
    sales_applied: int
