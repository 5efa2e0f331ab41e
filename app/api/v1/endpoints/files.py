from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse
from typing import Any
import logging
import os

from app.api.deps import get_current_user
from app.utils import image_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload")
async def upload_image(
    file: UploadFile = File(...),
    image_type: str = Form(..., alias="type"),
    current_user = Depends(get_current_user)
) -> Any:
    """Store a car or driver photo and return its public URL"""
    content = await file.read()
    try:
        url = image_storage.save_image(content, file.content_type, image_type)
    except image_storage.ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.error(f"Failed to store uploaded image: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to store image")
    return {"url": url}


@router.get("/serve-image")
def serve_image(path: str) -> Any:
    """Serve a stored upload by its public path"""
    try:
        full_path = image_storage.resolve_public_path(path)
    except image_storage.ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not os.path.isfile(full_path):
        raise HTTPException(status_code=404, detail="Image not found")

    return FileResponse(
        full_path,
        media_type=image_storage.guess_content_type(full_path),
        headers={"Cache-Control": "public, max-age=31536000"},
    )
