from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agrotrace.models.catalog import BatchStatus
from agrotrace.services.blockchain import ChainRecordResult


class BatchCreateRequest(BaseModel):
    farmer_id: str
    farmer_name: Optional[str] = None
    crop_type: str = "plantain"
    variety: Optional[str] = None
    quantity: int = Field(..., ge=0)
    unit: str = "kg"
    harvest_date: Optional[date] = None
    location: Optional[str] = None
    quality_notes: Optional[str] = None
    certifications: List[str] = Field(default_factory=list)
    record_on_chain: bool = Field(True, description="Attempt on-chain recording after saving.")
    user: Dict[str, Any] = Field(default_factory=dict, description="Recording user's profile, e.g. location.")


class ChainRecordRequest(BaseModel):
    user: Dict[str, Any] = Field(default_factory=dict)


class BatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    farmer_id: str
    farmer_name: Optional[str] = None
    crop_type: str
    variety: Optional[str] = None
    quantity: int
    unit: str
    harvest_date: Optional[date] = None
    location: Optional[str] = None
    quality_notes: Optional[str] = None
    certifications: List[str] = Field(default_factory=list)
    status: BatchStatus
    chain_batch_id: Optional[str] = None
    chain_tx_hash: Optional[str] = None
    chain_explorer_url: Optional[str] = None
    chain_recorded_at: Optional[datetime] = None
    created_at: datetime


class BatchCreatedResponse(BaseModel):
    batch: BatchResponse
    chain: ChainRecordResult


class ProductCreateRequest(BaseModel):
    name: str
    processor_id: Optional[str] = None
    processor_name: Optional[str] = None
    distributor_id: Optional[str] = None
    distributor_name: Optional[str] = None
    source_batch_id: Optional[str] = None
    quantity: int = Field(..., ge=0)
    unit: str = "units"
    price: Decimal = Field(Decimal("0"), ge=0)


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    processor_id: Optional[str] = None
    processor_name: Optional[str] = None
    distributor_id: Optional[str] = None
    distributor_name: Optional[str] = None
    source_batch_id: Optional[str] = None
    quantity: int
    unit: str
    price: Decimal
    created_at: datetime
