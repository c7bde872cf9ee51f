"""Object storage for uploaded and generated images"""

import httpx
import secrets
import string
import time
from typing import Dict, Any, Optional
from dataclasses import dataclass
import structlog

from propviz.config.settings import settings
from propviz.utils.exceptions import StorageError, ConfigurationError
from propviz.utils.monitoring import track_vendor

logger = structlog.get_logger(__name__)

_NAME_ALPHABET = string.ascii_lowercase + string.digits

@dataclass
class StoredObject:
    """An object written to the bucket"""
    path: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "url": self.url}

def extension_for(content_type: str) -> str:
    """File extension from a mime type: image/jpeg -> jpeg, image/svg+xml -> svg"""
    subtype = content_type.split("/")[-1] if "/" in content_type else "bin"
    return subtype.split("+")[0].split(";")[0].strip() or "bin"

def object_name(folder: str, content_type: str) -> str:
    suffix = "".join(secrets.choice(_NAME_ALPHABET) for _ in range(6))
    return f"{folder}/{int(time.time() * 1000)}-{suffix}.{extension_for(content_type)}"

class ImageStorage:
    """Client for the Supabase storage REST API"""

    def __init__(self, bucket: Optional[str] = None):
        self.base_url = settings.SUPABASE_URL.rstrip("/")
        self.bucket = bucket or settings.STORAGE_BUCKET
        self.session = httpx.Client(timeout=settings.HTTP_TIMEOUT, follow_redirects=True)

    def close(self):
        """Close HTTP session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @track_vendor("storage")
    def put(self, data: bytes, content_type: str, folder: str = "uploads") -> StoredObject:
        """
        Upload bytes to the bucket

        Args:
            data: Object contents
            content_type: Mime type stored with the object
            folder: Prefix inside the bucket

        Returns:
            The stored object's path and public URL
        """
        if not self.base_url or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")

        path = object_name(folder, content_type)

        try:
            response = self.session.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
                content=data,
                headers={
                    "apikey": settings.SUPABASE_SERVICE_ROLE_KEY,
                    "Authorization": f"Bearer {settings.SUPABASE_SERVICE_ROLE_KEY}",
                    "Content-Type": content_type,
                    "x-upsert": "false",
                }
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Storage upload rejected", path=path, status=e.response.status_code)
            raise StorageError(f"Storage error: {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error("Storage upload failed", path=path, error=str(e))
            raise StorageError("Failed to upload image")

        logger.info("Image stored", path=path, size=len(data), content_type=content_type)
        return StoredObject(path=path, url=self.public_url(path))

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    @track_vendor("image_download")
    def fetch(self, url: str) -> bytes:
        """Download an image from any URL"""
        try:
            response = self.session.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Image download rejected", url=url, status=e.response.status_code)
            raise StorageError(f"Failed to fetch image: {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error("Image download failed", url=url, error=str(e))
            raise StorageError("Failed to fetch image")

        logger.info("Image downloaded", url=url, size=len(response.content))
        return response.content

def detect_content_type(data: bytes, default: str = "image/jpeg") -> str:
    """Mime type from the leading bytes of an image"""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return default
