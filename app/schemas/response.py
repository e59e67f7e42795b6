from datetime import datetime
from pydantic import BaseModel, Field
from typing import Generic, TypeVar, Optional, Any, Dict

DataType = TypeVar("DataType")

class APIResponse(BaseModel, Generic[DataType]):
    """Envelope for every successful response."""
    message: str = Field(..., description="What the operation did, for display.")
    data: Optional[DataType] = Field(None, description="The resource or result, if any.")

class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable error kind clients branch on, e.g. ALREADY_ENROLLED")
    message: str = Field(..., description="Reason the request was refused")
    details: Optional[Dict[str, Any]] = Field(None, description="Structured context, e.g. validation errors")

class ErrorResponse(BaseModel):
    """Envelope for every failed response."""
    error: ErrorDetail
    timestamp: str = Field(..., description="ISO 8601 UTC time the error was produced")
    path: str = Field(..., description="Request URL")
    request_id: Optional[str] = Field(None, description="Matches the X-Request-ID response header")

    @classmethod
    def build(cls, *, code: str, message: str, path: str, request_id: Optional[str],
              details: Optional[Dict[str, Any]] = None) -> "ErrorResponse":
        return cls(
            error=ErrorDetail(code=code, message=message, details=details),
            timestamp=datetime.utcnow().isoformat(),
            path=path,
            request_id=request_id,
        )
