from fastapi import APIRouter, Depends

from learnhub.core.config import settings
from learnhub.schemas.response import APIResponse
from learnhub.schemas.storage import StorageStatus
from learnhub.storage.negotiation import StorageSelector
from learnhub.utils import deps

router = APIRouter()


@router.get("/health", response_model=APIResponse[dict])
def health_check():
    return APIResponse(message="OK", data={"status": "ok", "version": settings.VERSION})


@router.get("/storage", response_model=APIResponse[StorageStatus])
def storage_status(storage: StorageSelector = Depends(deps.get_storage)):
    """Which storage backend is serving data, and why."""
    return APIResponse(
        message="Storage status retrieved successfully",
        data=storage.status(lightweight_mode=settings.LIGHTWEIGHT_MODE),
    )
