from pydantic import BaseModel, Field
from typing import Optional, List

from learnhub.core.constants import StorageBackendEnum


class StorageStatus(BaseModel):
    """Diagnostic view of the storage negotiation."""
    configured: StorageBackendEnum
    active: StorageBackendEnum
    required_tables: List[str] = Field(default_factory=list)
    missing_tables: List[str] = Field(default_factory=list)
    fallback_reason: Optional[str] = None
    lightweight_mode: bool = False
