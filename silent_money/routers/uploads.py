"""Image uploads to object storage."""

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from silent_money.dependencies import get_current_active_user, get_storage_service
from silent_money.models.audit import UploadResponse
from silent_money.models.auth import CurrentUser, ErrorResponse
from silent_money.services.storage_service import StorageService

router = APIRouter(
    prefix="/uploads",
    tags=["Uploads"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        422: {"model": ErrorResponse, "description": "Unsupported or oversized file"},
        502: {"model": ErrorResponse, "description": "Storage unavailable"}
    }
)


@router.post("/images", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile = File(...),
    folder: str = Form("ideas"),
    current_user: CurrentUser = Depends(get_current_active_user),
    service: StorageService = Depends(get_storage_service),
) -> UploadResponse:
    """Store an image under `<folder>/<random>.<ext>` and return its public URL."""
    # One byte past the limit is enough for the size check to reject the file
    data = await file.read(service.settings.storage_max_upload_bytes + 1)
    return await service.upload_image(folder, file.filename, data, file.content_type)
