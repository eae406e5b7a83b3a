"""Core known-cat matching pipeline."""

from .aggregator import MatchAggregator, MatchPolicy, decide, rank_evaluations
from .breed import BreedIdentifier
from .codec import ImageCodec, decode_base64_image, encode_bytes
from .config import MatcherConfig, MatcherSettings, build_runtime_config, load_config
from .errors import (
    AggregationFailure,
    AggregationTimeout,
    CatMatcherError,
    ConfigurationError,
    EncodingError,
    FetchError,
    OracleResponseError,
)
from .evaluator import CandidateEvaluator
from .models import (
    BreedAnalysis,
    CandidateEvaluation,
    CatSighting,
    EncodedImage,
    ImageSource,
    MatchResult,
    ReferenceCat,
)
from .roster import ReferenceRoster, builtin_roster, load_roster
from .service import CatMatcherService

__all__ = [
    "MatchAggregator",
    "MatchPolicy",
    "decide",
    "rank_evaluations",
    "BreedIdentifier",
    "ImageCodec",
    "decode_base64_image",
    "encode_bytes",
    "MatcherConfig",
    "MatcherSettings",
    "build_runtime_config",
    "load_config",
    "AggregationFailure",
    "AggregationTimeout",
    "CatMatcherError",
    "ConfigurationError",
    "EncodingError",
    "FetchError",
    "OracleResponseError",
    "CandidateEvaluator",
    "BreedAnalysis",
    "CandidateEvaluation",
    "CatSighting",
    "EncodedImage",
    "ImageSource",
    "MatchResult",
    "ReferenceCat",
    "ReferenceRoster",
    "builtin_roster",
    "load_roster",
    "CatMatcherService",
]
