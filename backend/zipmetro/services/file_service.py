"""
ZipMetro Backend — ID Image Storage Service
=============================================

What:  Validates and stores the identity-document images customers upload
       for age verification.
Why:   ID images are sensitive and arbitrary uploads are an attack surface;
       every check lives in one place.
How:   Extension check, size check, MIME sniffing of the content, then an
       async write to a date-organized directory under a UUID filename.
Who:   routes/upload.py
When:  Before POST /api/users/me/id, which stores the returned path.

Security Model:
    1. Extension check:   Fast rejection of obviously wrong files
    2. MIME type check:   libmagic inspects the header bytes
    3. Size check:        Bounded by MAX_FILE_SIZE
    4. UUID filename:     No user input reaches the file system path
    5. Storage root:      Outside any served directory
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from zipmetro.config import Settings, settings as default_settings
from zipmetro.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}


class FileService:
    """
    Upload validation and storage.

    Directory Structure:
        uploads/
        └── 2026/
            └── 10/
                └── 19/
                    └── a1b2c3d4-....jpg
    """

    def __init__(self, settings: Optional[Settings] = None, storage_root: Optional[str] = None):
        self.settings = settings or default_settings
        self.max_file_size = self.settings.max_file_size
        self.storage_root = Path(storage_root or self.settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """
        Returns the lowercase extension.

        Raises:
            ValidationError: extension not allowed
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks the declared Content-Length first, then the bytes received.

        Raises:
            ValidationError: over MAX_FILE_SIZE, or an empty file
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="file")

    def validate_mime_type(self, file_content: bytes, filename: str) -> str:
        """
        Detects the real content type from the file's magic bytes.

        Raises:
            ValidationError:  content is not PNG or JPEG
            FileStorageError: detection itself failed
        """
        try:
            import magic
            mime_type = magic.from_buffer(file_content, mime=True)
        except ImportError:
            # libmagic missing (e.g. minimal CI images): fall back to the extension
            logger.warning(
                "python-magic not available, falling back to extension-based type detection. "
                "Install libmagic for production security."
            )
            ext = Path(filename).suffix.lower()
            mime_map = {".png": "image/png", ".jpg": "image/jpeg", ".jpeg": "image/jpeg"}
            mime_type = mime_map.get(ext, "application/octet-stream")
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The file must be a valid image (PNG or JPEG)."
                ),
                field="file",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """(absolute path, path relative to the storage root) for a new file."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Raises:
            FileStorageError: directory creation or write failed
        """
        absolute_path, relative_path = self._generate_storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return str(absolute_path), relative_path

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str, str]:
        """
        Full pipeline, cheapest check first.

        Returns:
            (absolute path, relative path, detected MIME type)
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        mime_type = self.validate_mime_type(content, filename)
        absolute_path, relative_path = await self.store_file(content, ext)
        return absolute_path, relative_path, mime_type
