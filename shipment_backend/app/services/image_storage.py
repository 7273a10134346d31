"""
Storage of uploaded shipment images on the local filesystem.

Files land in the configured upload directory as
`<epoch-millis>-<random>-<original name>` and rows keep only that file name.
"""

import logging
import re
import time
import uuid
from pathlib import Path
from typing import Iterable, Optional

from fastapi import UploadFile

from shipment_backend.app.core.config import settings
from shipment_backend.app.core.exceptions import FieldValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class ImageStorage:
    """Saves and removes image files under one root directory."""
    
    def __init__(self, root: str, max_bytes: int):
        self.root = Path(root)
        self.max_bytes = max_bytes
    
    def path_for(self, name: str) -> Path:
        return self.root / Path(name).name
    
    def _stored_name(self, original: Optional[str]) -> str:
        base = _UNSAFE_CHARS.sub("_", Path(original or "image").name) or "image"
        return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{base}"
    
    async def save(self, slot: str, upload: UploadFile) -> str:
        """
        Write one uploaded image and return its stored file name.
        
        Raises:
            FieldValidationError: for non-image content or oversized files
        """
        if upload.content_type and not upload.content_type.startswith("image/"):
            raise FieldValidationError(
                f"{slot} must be an image",
                details={"field": slot, "content_type": upload.content_type}
            )
        
        data = await upload.read(self.max_bytes + 1)
        if len(data) > self.max_bytes:
            raise FieldValidationError(
                f"{slot} exceeds the {self.max_bytes} byte upload limit",
                details={"field": slot}
            )
        
        name = self._stored_name(upload.filename)
        self.root.mkdir(parents=True, exist_ok=True)
        self.path_for(name).write_bytes(data)
        logger.debug("Stored %s as %s (%d bytes)", slot, name, len(data))
        return name
    
    def remove(self, names: Iterable[Optional[str]]) -> None:
        """Delete stored files; names that no longer exist are skipped."""
        for name in names:
            if name:
                self.path_for(name).unlink(missing_ok=True)


def get_image_storage() -> ImageStorage:
    """FastAPI dependency returning storage rooted at the configured directory."""
    return ImageStorage(settings.upload_dir, settings.max_upload_bytes)
