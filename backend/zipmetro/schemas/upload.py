"""
ZipMetro Backend — Upload Schemas
"""

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """
    What:  Where an uploaded ID image was stored.
    How:   Pass `path` as `id_image_path` to POST /api/users/me/id.
    """
    path: str = Field(description="Storage path relative to STORAGE_ROOT (YYYY/MM/DD/<uuid>.<ext>)")
    size: int = Field(description="Stored size in bytes")
    content_type: str = Field(description="Detected MIME type")
