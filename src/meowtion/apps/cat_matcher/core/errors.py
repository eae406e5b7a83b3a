"""Exception hierarchy for the cat matcher."""

from __future__ import annotations

from typing import Optional

from meowtion.libs.oracle import OracleResponseError


class CatMatcherError(RuntimeError):
    """Base class for cat matcher failures."""


class ConfigurationError(CatMatcherError):
    """Startup configuration is missing or inconsistent."""


class FetchError(CatMatcherError):
    """An image source could not be retrieved."""

    def __init__(self, source: str, status: Optional[int] = None, reason: str = ""):
        self.source = source
        self.status = status
        detail = f"status {status}" if status is not None else (reason or "unreachable")
        super().__init__(f"Failed to fetch image from {source} ({detail})")


class EncodingError(CatMatcherError):
    """Image bytes could not be encoded or decoded consistently."""


class AggregationFailure(CatMatcherError):
    """A candidate evaluation failed, so no match decision was made."""

    def __init__(self, cat_name: Optional[str], cause: BaseException):
        self.cat_name = cat_name
        self.cause = cause
        target = f"candidate '{cat_name}'" if cat_name else "user image"
        # Bypass cooperative init: mixed-in kinds (FetchError) take other args.
        RuntimeError.__init__(self, f"Match aborted while evaluating {target}: {cause}")


class AggregationTimeout(AggregationFailure):
    """The overall match deadline elapsed before every candidate finished."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        CatMatcherError.__init__(
            self, f"Match did not complete within {timeout:g} seconds"
        )
        self.cat_name = None
        self.cause = None


class CandidateFetchFailure(AggregationFailure, FetchError):
    """Aggregation aborted because a reference or user image fetch failed."""

    def __init__(self, cat_name: Optional[str], cause: FetchError):
        self.source = cause.source
        self.status = cause.status
        AggregationFailure.__init__(self, cat_name, cause)


class CandidateEncodingFailure(AggregationFailure, EncodingError):
    """Aggregation aborted because an image could not be encoded."""


class CandidateOracleFailure(AggregationFailure, OracleResponseError):
    """Aggregation aborted because the oracle reply was unusable."""


def wrap_candidate_failure(
    cat_name: Optional[str], exc: BaseException
) -> AggregationFailure:
    """Wrap *exc* so it is both an :class:`AggregationFailure` and its own kind."""

    if isinstance(exc, AggregationFailure):
        return exc
    if isinstance(exc, FetchError):
        return CandidateFetchFailure(cat_name, exc)
    if isinstance(exc, EncodingError):
        return CandidateEncodingFailure(cat_name, exc)
    if isinstance(exc, OracleResponseError):
        return CandidateOracleFailure(cat_name, exc)
    return AggregationFailure(cat_name, exc)


__all__ = [
    "CatMatcherError",
    "ConfigurationError",
    "FetchError",
    "EncodingError",
    "OracleResponseError",
    "AggregationFailure",
    "AggregationTimeout",
    "CandidateFetchFailure",
    "CandidateEncodingFailure",
    "CandidateOracleFailure",
    "wrap_candidate_failure",
]
