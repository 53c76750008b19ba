"""
Image uploads for logos, venues, categories and menu items.
"""

from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from tableserve.core.security import get_current_user
from tableserve.models import User
from tableserve.schemas import UploadResponse
from tableserve.services import uploads

router = APIRouter(prefix="/api/uploads", tags=["Uploads"])


@router.post("/images", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
):
    """Store an image and return its public URL."""
    contents = await file.read()
    return uploads.save_image(contents, file.content_type)


@router.delete("/images/{filename}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_image(filename: str, user: User = Depends(get_current_user)) -> Response:
    uploads.delete_image(filename)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
