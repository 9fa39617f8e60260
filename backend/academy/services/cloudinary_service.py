"""
Cloudinary adapter: course video uploads and signed delivery URLs.
"""

import asyncio
import io
import re
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.uploader
import cloudinary.utils

from academy.core.config import settings
from academy.core.exceptions import ServiceNotConfiguredError, StorageError
from academy.core.logging_config import logger

_UPLOAD_PATH = re.compile(r"/(?:image|video|raw)/(?:upload|authenticated|private)/(?:s--[^/]+--/)?(?:v\d+/)?(.+)$")


def public_id_from_url(url: Optional[str]) -> Optional[str]:
    """Extract the public id (with extension) from a Cloudinary delivery URL"""
    if not url or "res.cloudinary.com" not in url:
        return None
    match = _UPLOAD_PATH.search(url.split("?", 1)[0])
    return match.group(1) if match else None


class CloudinaryService:
    def __init__(self):
        self._configured = False

    def _configure(self) -> None:
        if not settings.cloudinary_configured():
            raise ServiceNotConfiguredError("Video storage")
        if not self._configured:
            cloudinary.config(
                cloud_name=settings.CLOUDINARY_CLOUD_NAME,
                api_key=settings.CLOUDINARY_API_KEY,
                api_secret=settings.CLOUDINARY_API_SECRET,
                secure=True,
            )
            self._configured = True

    async def upload_video(self, content: bytes, filename: str, folder: Optional[str] = None) -> Dict[str, Any]:
        """Upload a video in 6MB chunks; returns url, public_id and duration (seconds)"""
        self._configure()
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                io.BytesIO(content),
                resource_type="video",
                folder=folder or settings.CLOUDINARY_VIDEO_FOLDER,
                filename=filename,
                use_filename=True,
                unique_filename=True,
                overwrite=False,
                chunk_size=6_000_000,
            )
        except Exception as e:
            logger.log_upstream_failure("Cloudinary", "upload", e, upload_name=filename)
            raise StorageError("Video upload failed", detail=str(e), provider="cloudinary")

        logger.info(f"[Storage] Uploaded video to Cloudinary: {result.get('public_id')}")
        return {
            "url": result["secure_url"],
            "public_id": result["public_id"],
            "duration": int(round(result.get("duration") or 0)),
        }

    def thumbnail_url(self, public_id: str) -> str:
        self._configure()
        url, _ = cloudinary.utils.cloudinary_url(
            public_id,
            resource_type="video",
            format="jpg",
            transformation=[
                {"width": 640, "height": 360, "crop": "fill", "gravity": "center"},
                {"quality": "auto"},
            ],
        )
        return url

    def delivery_url(self, public_id: str, resource_type: str = "video", signed: bool = True) -> str:
        """Delivery URL for an uploaded asset; signed URLs carry an s--sig-- component"""
        self._configure()
        url, _ = cloudinary.utils.cloudinary_url(
            public_id,
            resource_type=resource_type,
            type="upload",
            sign_url=signed,
            secure=True,
        )
        return url


cloudinary_service = CloudinaryService()
