"""Turn image sources into base64 text plus a MIME type for the oracle."""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Dict, Optional

import httpx
from PIL import Image, UnidentifiedImageError

from .errors import EncodingError, FetchError
from .models import EncodedImage, ImageSource

logger = logging.getLogger(__name__)

EXTENSION_MEDIA_TYPES: Dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

_MEDIA_TYPE_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}


def _normalise_media_type(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    media_type = value.split(";", 1)[0].strip().lower()
    media_type = _MEDIA_TYPE_ALIASES.get(media_type, media_type)
    return media_type or None


def sniff_media_type(raw: bytes) -> Optional[str]:
    """Identify the image format from its header bytes, if Pillow knows it."""

    try:
        with Image.open(io.BytesIO(raw)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError, ValueError):
        return None
    if not image_format:
        return None
    return Image.MIME.get(image_format.upper())


def resolve_media_type(raw: bytes, declared: Optional[str], origin: str) -> str:
    """Pick the MIME type to send alongside *raw*.

    A sniffed image format wins over a conflicting declaration so the
    encoded payload always describes its own bytes.
    """

    declared_type = _normalise_media_type(declared)
    sniffed = sniff_media_type(raw)
    if sniffed:
        if declared_type and declared_type != sniffed:
            logger.warning(
                "Declared media type %s for %s does not match content (%s); using %s",
                declared_type,
                origin,
                sniffed,
                sniffed,
            )
        return sniffed
    if declared_type and declared_type.startswith("image/"):
        return declared_type
    raise EncodingError(f"Could not determine an image media type for {origin}")


def encode_bytes(raw: bytes, declared: Optional[str] = None, *, origin: str = "upload") -> EncodedImage:
    if not raw:
        raise EncodingError(f"Image content from {origin} is empty")
    media_type = resolve_media_type(raw, declared, origin)
    data = base64.b64encode(raw).decode("ascii")
    return EncodedImage(data=data, media_type=media_type)


def decode_base64_image(data: str, media_type: Optional[str]) -> EncodedImage:
    """Validate base64 text supplied by a caller and re-encode it canonically."""

    text = (data or "").strip()
    if text.startswith("data:") and "," in text:
        header, text = text.split(",", 1)
        media_type = media_type or header[5:].split(";", 1)[0]
    if not text:
        raise EncodingError("Image data is empty")
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EncodingError("Image data is not valid base64") from exc
    return encode_bytes(raw, media_type, origin="request body")


class ImageCodec:
    """Encode image sources, fetching URLs with a shared async HTTP client.

    With ``cache_references`` enabled, roster images encoded through
    :meth:`encode_reference` are kept for the life of the codec.
    """

    def __init__(
        self,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        cache_references: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self._http_client = http_client
        self._owns_client = http_client is None
        self._client_lock = asyncio.Lock()
        self._timeout = timeout
        self.cache_references = cache_references
        self._reference_cache: Dict[str, EncodedImage] = {}

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        async with self._client_lock:
            if self._http_client is None:
                self._http_client = httpx.AsyncClient(
                    timeout=self._timeout, follow_redirects=True
                )
        return self._http_client

    async def encode(self, source: ImageSource) -> EncodedImage:
        if source.data is not None:
            return encode_bytes(source.data, source.media_type, origin=source.describe())
        if source.path is not None:
            raw = await self._read_file(source.path)
            declared = source.media_type or EXTENSION_MEDIA_TYPES.get(
                source.path.suffix.lower()
            )
            return encode_bytes(raw, declared, origin=str(source.path))
        if source.url is not None:
            raw, content_type = await self._fetch(source.url)
            return encode_bytes(raw, source.media_type or content_type, origin=source.url)
        raise EncodingError("Image source has no content")

    async def encode_reference(self, source: ImageSource) -> EncodedImage:
        key = source.cache_key
        if not self.cache_references or key is None:
            return await self.encode(source)
        cached = self._reference_cache.get(key)
        if cached is not None:
            return cached
        encoded = await self.encode(source)
        # Concurrent misses for the same key store equal values.
        self._reference_cache[key] = encoded
        return encoded

    def clear_cache(self) -> None:
        self._reference_cache.clear()

    async def _read_file(self, path: Path) -> bytes:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise FetchError(str(path), reason=exc.strerror or type(exc).__name__) from exc

    async def _fetch(self, url: str) -> tuple[bytes, Optional[str]]:
        client = await self._get_http_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            raise FetchError(url, reason=type(exc).__name__) from exc
        if not response.is_success:
            raise FetchError(url, status=response.status_code)
        return response.content, response.headers.get("content-type")

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
