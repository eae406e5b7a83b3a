"""HTTP boundary for the cat matcher."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core.codec import decode_base64_image
from ..core.config import load_config
from ..core.errors import CatMatcherError, EncodingError, OracleResponseError
from ..core.models import EncodedImage
from ..core.service import CatMatcherService
from .errors import (
    ApiError,
    err_bad_request,
    err_payload_too_large,
    err_unavailable,
    err_upstream,
)

logger = logging.getLogger(__name__)

MATCH_FAILED_MESSAGE = "Could not get a valid match response from the AI model."
IDENTIFY_FAILED_MESSAGE = "Could not get a valid response from the AI model."
INVALID_IMAGE_MESSAGE = "Image data is not a valid image."


class MatchRequest(BaseModel):
    userImageBase64: str = Field(..., min_length=1)
    userImageMimeType: str = Field(..., min_length=1, max_length=128)


class IdentifyRequest(BaseModel):
    base64Image: str = Field(..., min_length=1)
    mimeType: str = Field(..., min_length=1, max_length=128)


def _estimated_size(base64_text: str) -> int:
    return (len(base64_text) * 3) // 4


def create_app(service: Optional[CatMatcherService] = None) -> FastAPI:
    """Build the API; without *service* one is created from config at startup.

    Startup fails (ConfigurationError) when the oracle credential or roster
    is missing.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = app.state.service is None
        if owned:
            app.state.service = CatMatcherService(load_config())
        try:
            yield
        finally:
            if owned and app.state.service is not None:
                await app.state.service.aclose()
                app.state.service = None

    app = FastAPI(title="Meowtion Sensor - Cat Matcher API", version="0.1.0", lifespan=lifespan)
    app.state.service = service

    def _service() -> CatMatcherService:
        current = app.state.service
        if current is None:
            raise err_unavailable()
        return current

    def _decode(data: str, media_type: str) -> EncodedImage:
        limit = _service().config.max_image_bytes
        if _estimated_size(data) > limit:
            raise err_payload_too_large(limit)
        try:
            return decode_base64_image(data, media_type)
        except EncodingError as exc:
            logger.info("Rejected request image: %s", exc)
            raise err_bad_request(INVALID_IMAGE_MESSAGE) from exc

    @app.exception_handler(ApiError)
    async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Image data is required."})

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/cats")
    def list_cats():
        return {"cats": [cat.to_json() for cat in _service().roster]}

    @app.post("/match")
    async def match(body: MatchRequest):
        image = _decode(body.userImageBase64, body.userImageMimeType)
        try:
            result = await _service().find_match(image)
        except (CatMatcherError, OracleResponseError) as exc:
            logger.error("Match request failed: %s", exc, exc_info=True)
            raise err_upstream(MATCH_FAILED_MESSAGE) from exc
        return result.to_json()

    @app.post("/identify")
    async def identify(body: IdentifyRequest):
        image = _decode(body.base64Image, body.mimeType)
        try:
            analysis = await _service().identify(image)
        except (CatMatcherError, OracleResponseError) as exc:
            logger.error("Breed identification failed: %s", exc, exc_info=True)
            raise err_upstream(IDENTIFY_FAILED_MESSAGE) from exc
        return analysis.to_json()

    return app


app = create_app()


def run(host: str = "127.0.0.1", port: int = 8787, reload: bool = False):
    import uvicorn

    uvicorn.run(
        "meowtion.apps.cat_matcher.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )
