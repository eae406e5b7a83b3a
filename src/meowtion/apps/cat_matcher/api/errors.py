from __future__ import annotations

from fastapi import HTTPException


class ApiError(HTTPException):
    """HTTP error rendered as ``{"error": message}``."""

    def __init__(self, status_code: int, message: str):
        self.message = message
        super().__init__(status_code=status_code, detail={"error": message})


def err_bad_request(message: str) -> ApiError:
    return ApiError(400, message)


def err_payload_too_large(limit: int) -> ApiError:
    return ApiError(413, f"Image payload exceeds limit {limit} bytes")


def err_upstream(message: str) -> ApiError:
    return ApiError(502, message)


def err_unavailable() -> ApiError:
    return ApiError(503, "Cat matcher is not ready")
