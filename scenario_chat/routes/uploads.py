"""File upload endpoint (character avatars)."""

from fastapi import APIRouter, Depends, UploadFile

from scenario_chat.context import Services
from scenario_chat.uploads import save_upload

from .deps import get_services

router = APIRouter()


@router.post("/uploads")
async def upload_file(file: UploadFile, services: Services = Depends(get_services)):
    """Store an uploaded file and return its public URL."""
    settings = services.settings
    content = await file.read()
    url = save_upload(
        settings.uploads_dir,
        file.filename or "",
        content,
        settings.public_base_url,
        settings.upload_max_bytes,
    )
    return [{"url": url}]
