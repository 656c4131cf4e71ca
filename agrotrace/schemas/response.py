from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
import uuid


def _rid():
    return uuid.uuid4().hex


class SuccessResponse(BaseModel):
    """Envelope for every successful API response."""
    success: bool = Field(default=True)
    request_id: str = Field(default_factory=_rid)
    data: Optional[Any] = None


class ErrorDetail(BaseModel):
    code: str
    message: Any
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Shape produced by the exception handlers; used to document error responses."""
    success: bool = False
    error: ErrorDetail
    request_id: str


NOT_FOUND: Dict[int, Dict[str, Any]] = {404: {"model": ErrorResponse}}
