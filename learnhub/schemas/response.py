from pydantic import BaseModel, Field
from typing import Generic, TypeVar, Optional, Any, Dict
from learnhub.core.constants import NoticeVariantEnum

DataType = TypeVar("DataType")

class Notice(BaseModel):
    """User-facing notification attached to the outcome of an action."""
    title: str
    description: Optional[str] = None
    variant: NoticeVariantEnum = NoticeVariantEnum.DEFAULT

    @classmethod
    def success(cls, title: str, description: Optional[str] = None) -> "Notice":
        return cls(title=title, description=description)

    @classmethod
    def failure(cls, title: str, description: Optional[str] = None) -> "Notice":
        return cls(title=title, description=description, variant=NoticeVariantEnum.DESTRUCTIVE)

class APIResponse(BaseModel, Generic[DataType]):
    """Generic API response model for consistent output."""
    message: str = Field(..., description="A human-readable message about the response.")
    data: Optional[DataType] = Field(None, description="The actual data returned by the API, if any.")
    notice: Optional[Notice] = Field(None, description="Notification to surface to the user, if any.")

class ErrorDetail(BaseModel):
    """Standardized error detail model."""
    code: str = Field(..., description="Error code for client handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: ErrorDetail = Field(..., description="Error details")
    timestamp: str = Field(..., description="ISO 8601 timestamp of error")
    path: str = Field(..., description="Request path that caused the error")
    request_id: Optional[str] = Field(None, description="Unique request identifier for debugging")
    redirect_to: Optional[str] = Field(None, description="Route the client should navigate to, if any")
