from pydantic import BaseModel, Field
from typing import Generic, TypeVar, Optional, Any, Dict, List

DataType = TypeVar("DataType")


class APIResponse(BaseModel, Generic[DataType]):
    """Envelope for every successful response."""
    message: str = Field(..., description="Human-readable summary of what happened.")
    data: Optional[DataType] = Field(None, description="Payload of the response, if any.")


class Page(BaseModel, Generic[DataType]):
    """One page of a listing plus the total number of matching rows."""
    items: List[DataType]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    size: int = Field(..., ge=1)


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable error code, e.g. INVALID_TRANSITION")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Offending field, states involved and similar context")


class ErrorResponse(BaseModel):
    """Envelope for every error response."""
    error: ErrorDetail
    timestamp: str = Field(..., description="ISO 8601 time the error was produced")
    path: str = Field(..., description="URL of the failing request")
    request_id: Optional[str] = Field(None, description="Matches the X-Request-ID response header")
