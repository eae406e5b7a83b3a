"""Async client for an OpenAI-compatible multimodal oracle."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

import httpx

from .errors import OracleResponseError, OracleUnavailableError
from .schema import OutputSchema

logger = logging.getLogger(__name__)


class InlineImage(Protocol):
    """Anything carrying base64 image text and its MIME type."""

    data: str
    media_type: str


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_content(self) -> Dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImagePart:
    image: InlineImage

    def to_content(self) -> Dict[str, Any]:
        url = f"data:{self.image.media_type};base64,{self.image.data}"
        return {"type": "image_url", "image_url": {"url": url}}


Part = Union[TextPart, ImagePart]


class Oracle(Protocol):
    """Single-method capability every oracle implementation provides."""

    async def evaluate(
        self, parts: Sequence[Part], schema: OutputSchema
    ) -> Dict[str, Any]: ...


def _strip_code_fence(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def _extract_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise OracleResponseError("Oracle reply has no message content") from exc
    if isinstance(content, list):
        # Some gateways return content as a list of typed text chunks.
        content = "".join(
            str(item.get("text", "")) for item in content if isinstance(item, dict)
        )
    if not isinstance(content, str) or not content.strip():
        raise OracleResponseError("Oracle returned an empty message")
    return content


def parse_structured_reply(content: str, schema: OutputSchema) -> Dict[str, Any]:
    """Decode the oracle's textual reply and validate it against *schema*."""

    try:
        payload = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as exc:
        raise OracleResponseError(
            f"Oracle reply for '{schema.name}' is not valid JSON: {exc.msg}"
        ) from exc
    return schema.validate(payload)


class OpenAICompatibleOracle:
    """Oracle backed by a ``/chat/completions`` endpoint with JSON-schema output.

    The underlying :class:`httpx.AsyncClient` is created on first use and
    shared by every later call. Creation is guarded by a lock so concurrent
    first calls build exactly one client.
    """

    def __init__(
        self,
        *,
        base_url: str,
        model_name: str,
        api_key: str = "",
        timeout: float = 120,
        temperature: float = 0.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model_name = model_name
        self.api_key = api_key
        self.timeout = timeout
        self.temperature = temperature
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        async with self._client_lock:
            if self._client is None:
                headers = {"Content-Type": "application/json"}
                if self.api_key:
                    headers["Authorization"] = f"Bearer {self.api_key}"
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    headers=headers,
                    timeout=self.timeout,
                    transport=self._transport,
                )
                logger.debug("Created oracle HTTP client for %s", self.base_url)
        return self._client

    def build_payload(
        self, parts: Sequence[Part], schema: OutputSchema
    ) -> Dict[str, Any]:
        content: List[Dict[str, Any]] = [part.to_content() for part in parts]
        return {
            "model": self.model_name,
            "messages": [{"role": "user", "content": content}],
            "temperature": max(0.0, self.temperature),
            "stream": False,
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": schema.name,
                    "schema": schema.to_json_schema(),
                    "strict": True,
                },
            },
        }

    async def evaluate(
        self, parts: Sequence[Part], schema: OutputSchema
    ) -> Dict[str, Any]:
        if not parts:
            raise ValueError("At least one prompt part is required")

        payload = self.build_payload(parts, schema)
        client = await self._get_client()
        try:
            response = await client.post("/chat/completions", json=payload)
        except httpx.HTTPError as exc:
            logger.error("Oracle request for '%s' failed: %s", schema.name, exc)
            raise OracleUnavailableError(
                f"Oracle request failed: {type(exc).__name__}"
            ) from exc

        if not response.is_success:
            logger.error(
                "Oracle returned HTTP %s for model '%s': %s",
                response.status_code,
                self.model_name,
                response.text[:600],
            )
            raise OracleResponseError(f"Oracle returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise OracleResponseError("Oracle reply body is not JSON") from exc

        content = _extract_content(data)
        try:
            return parse_structured_reply(content, schema)
        except OracleResponseError as exc:
            logger.error(
                "Oracle reply rejected for '%s': %s | raw=%s",
                schema.name,
                exc,
                content[:600],
            )
            raise

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
