"""
ZipMetro Backend — Upload Route
=================================

What:  Accepts the photo of an identity document for age verification.
How:   Multipart upload → FileService validation and storage → relative
       path, which the client then sends to POST /api/users/me/id.
"""

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile

from zipmetro.dependencies import get_current_user, get_file_service
from zipmetro.schemas.common import ErrorResponse
from zipmetro.schemas.upload import UploadResponse
from zipmetro.services.file_service import FileService
from zipmetro.store.base import Row

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["Upload"])


@router.post(
    "/id",
    response_model=UploadResponse,
    status_code=201,
    responses={
        400: {"description": "Wrong file type, empty or too large", "model": ErrorResponse},
        401: {"description": "Authentication required", "model": ErrorResponse},
        500: {"description": "File could not be stored", "model": ErrorResponse},
    },
    summary="Upload an ID image (PNG or JPEG)",
)
async def upload_id(
    request: Request,
    file: UploadFile = File(..., description="ID photo, PNG or JPEG"),
    files: FileService = Depends(get_file_service),
    user: Row = Depends(get_current_user),
) -> UploadResponse:
    content_length = request.headers.get("content-length")
    content = await file.read()
    _, relative_path, mime_type = await files.validate_and_store(
        filename=file.filename or "",
        content=content,
        content_length=int(content_length) if content_length and content_length.isdigit() else None,
    )
    logger.info("ID image uploaded by user %s: %s", user["id"], relative_path)
    return UploadResponse(path=relative_path, size=len(content), content_type=mime_type)
