"""
Proxied document download.

Documents may live in R2 (current uploads) or Cloudinary (older uploads,
stored either as raw or image assets). Candidate URLs come from a ranked
list of strategies; each is probed in turn under one total deadline and
the first HTTP 200 is streamed back to the caller.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from academy.core.config import settings
from academy.core.exceptions import AcademyError, DocumentUnavailableError
from academy.core.logging_config import logger
from academy.models.catalog import Document
from academy.services.cloudinary_service import cloudinary_service, public_id_from_url
from academy.services.r2_storage import r2_storage

Strategy = Tuple[str, Callable[[Document], Awaitable[Optional[str]]]]


@dataclass
class OpenedDocument:
    """A successful probe whose body has not been read yet"""
    strategy: str
    response: httpx.Response
    client: httpx.AsyncClient
    attempts: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def content_type(self) -> str:
        return self.response.headers.get("content-type", "application/octet-stream")

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes():
                yield chunk
        finally:
            await self.close()

    async def close(self) -> None:
        await self.response.aclose()
        await self.client.aclose()


async def _r2_presigned(document: Document) -> Optional[str]:
    if not settings.r2_configured() or not document.file_name:
        return None
    return await r2_storage.get_presigned_url(document.file_name)


def _cloudinary_public_id(document: Document) -> Optional[str]:
    return public_id_from_url(document.file_url) or document.file_name or None


def _cloudinary(resource_type: str, signed: bool) -> Callable[[Document], Awaitable[Optional[str]]]:
    async def build(document: Document) -> Optional[str]:
        public_id = _cloudinary_public_id(document)
        if not settings.cloudinary_configured() or not public_id:
            return None
        return cloudinary_service.delivery_url(public_id, resource_type=resource_type, signed=signed)
    return build


async def _stored_url(document: Document) -> Optional[str]:
    return document.file_url or None


DEFAULT_STRATEGIES: List[Strategy] = [
    ("r2_presigned", _r2_presigned),
    ("cloudinary_signed_raw", _cloudinary("raw", signed=True)),
    ("cloudinary_signed_image", _cloudinary("image", signed=True)),
    ("cloudinary_unsigned_raw", _cloudinary("raw", signed=False)),
    ("stored_url", _stored_url),
]


class DocumentDelivery:
    def __init__(
        self,
        strategies: Optional[List[Strategy]] = None,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.strategies = strategies if strategies is not None else DEFAULT_STRATEGIES
        self.timeout = timeout if timeout is not None else settings.OUTBOUND_HTTP_TIMEOUT
        self.deadline = deadline if deadline is not None else settings.DOCUMENT_PROBE_DEADLINE
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=self.transport,
        )

    async def open(self, document: Document) -> OpenedDocument:
        """
        Probe strategies in rank order and return the first 200 response, unread.

        Raises DocumentUnavailableError carrying every attempt when none succeeds.
        The caller owns the returned client; OpenedDocument.iter_bytes closes it.
        """
        loop = asyncio.get_running_loop()
        ends_at = loop.time() + self.deadline
        attempts: List[Dict[str, Any]] = []
        client = self._client()

        try:
            for name, build_url in self.strategies:
                remaining = ends_at - loop.time()
                if remaining <= 0:
                    attempts.append({"strategy": name, "outcome": "deadline exceeded"})
                    break

                try:
                    url = await build_url(document)
                except AcademyError as e:
                    attempts.append({"strategy": name, "outcome": f"url error: {e.message}"})
                    continue
                if not url:
                    continue

                try:
                    request = client.build_request("GET", url)
                    response = await asyncio.wait_for(client.send(request, stream=True), remaining)
                except asyncio.TimeoutError:
                    attempts.append({"strategy": name, "outcome": "deadline exceeded"})
                    break
                except httpx.HTTPError as e:
                    attempts.append({"strategy": name, "outcome": f"{type(e).__name__}: {e}"})
                    continue

                if response.status_code == 200:
                    attempts.append({"strategy": name, "outcome": "200"})
                    logger.info(f"[Documents] Serving document {document.id} via {name}")
                    return OpenedDocument(strategy=name, response=response, client=client, attempts=attempts)

                attempts.append({"strategy": name, "outcome": str(response.status_code)})
                await response.aclose()
        except BaseException:
            await client.aclose()
            raise

        await client.aclose()
        error = DocumentUnavailableError(attempts)
        logger.log_upstream_failure("Documents", f"stream {document.id}", error.detail,
                                    document_id=document.id, attempts=attempts)
        raise error


document_delivery = DocumentDelivery()
