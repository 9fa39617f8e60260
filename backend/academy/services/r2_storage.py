"""
R2 Storage - course documents in Cloudflare R2 (S3-compatible API)
With retry logic for resilient operations
"""

import asyncio
import re
import time
from functools import wraps
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from academy.core.config import settings
from academy.core.exceptions import ServiceNotConfiguredError, StorageError
from academy.core.logging_config import logger


def retry_with_backoff(max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 30.0):
    """
    Decorator for retry logic with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except (ClientError, ConnectionError, TimeoutError) as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        logger.warning(f"[R2-Retry] Attempt {attempt + 1}/{max_retries} failed: {e}. Retrying in {delay:.1f}s...")
                        await asyncio.sleep(delay)
                    else:
                        logger.error(f"[R2-Retry] All {max_retries} attempts failed: {e}")
            raise StorageError(detail=str(last_exception))
        return wrapper
    return decorator


def document_key(course_id: str, original_name: str, timestamp_ms: Optional[int] = None) -> str:
    """documents/{courseId}/{ts}-{name}, with path separators and spaces flattened"""
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    safe_name = re.sub(r"[\\/\s]+", "_", original_name.strip()) or "file"
    return f"documents/{course_id}/{ts}-{safe_name}"


class R2Storage:
    def __init__(self):
        self._client = None

    @property
    def bucket(self) -> str:
        return settings.CLOUDFLARE_R2_BUCKET_NAME

    def _get_client(self):
        """Lazy initialization of the R2 client"""
        if not settings.r2_configured():
            raise ServiceNotConfiguredError("Document storage")

        if self._client is None:
            self._client = boto3.client(
                's3',
                endpoint_url=settings.CLOUDFLARE_R2_ENDPOINT,
                aws_access_key_id=settings.CLOUDFLARE_R2_ACCESS_KEY_ID,
                aws_secret_access_key=settings.CLOUDFLARE_R2_SECRET_ACCESS_KEY,
                config=Config(signature_version='s3v4'),
                region_name='auto',
            )
        return self._client

    @retry_with_backoff()
    async def upload_file(self, key: str, content: bytes, content_type: str = 'application/octet-stream') -> dict:
        client = self._get_client()
        await asyncio.to_thread(
            client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=content,
            ContentType=content_type,
        )
        logger.info(f"[Storage] Uploaded: {key} ({len(content)} bytes)")
        url = f"{settings.CLOUDFLARE_R2_ENDPOINT.rstrip('/')}/{self.bucket}/{key}"
        return {"key": key, "url": url, "size_bytes": len(content)}

    @retry_with_backoff()
    async def get_presigned_url(self, key: str, expiration: Optional[int] = None) -> str:
        """Presigned GET for direct download; one hour by default"""
        client = self._get_client()
        return await asyncio.to_thread(
            client.generate_presigned_url,
            'get_object',
            Params={'Bucket': self.bucket, 'Key': key},
            ExpiresIn=expiration or settings.R2_URL_EXPIRY,
        )


# Singleton instance
r2_storage = R2Storage()
