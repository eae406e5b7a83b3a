"""Data models for known-cat matching."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import EncodingError


@dataclass(frozen=True)
class ImageSource:
    """Where an image comes from: a local file, a URL, or an in-memory blob."""

    path: Optional[Path] = None
    url: Optional[str] = None
    data: Optional[bytes] = None
    media_type: Optional[str] = None

    def __post_init__(self) -> None:
        provided = [value for value in (self.path, self.url, self.data) if value is not None]
        if len(provided) != 1:
            raise ValueError("ImageSource requires exactly one of path, url or data")

    @classmethod
    def from_reference(cls, value: str, *, base_dir: Optional[Path] = None) -> "ImageSource":
        """Interpret a roster entry as a URL or a path relative to *base_dir*."""

        text = value.strip()
        if text.startswith(("http://", "https://")):
            return cls(url=text)
        path = Path(text).expanduser()
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        return cls(path=path)

    @property
    def cache_key(self) -> Optional[str]:
        if self.url is not None:
            return self.url
        if self.path is not None:
            return str(self.path)
        return None

    def describe(self) -> str:
        if self.url is not None:
            return self.url
        if self.path is not None:
            return str(self.path)
        return f"<{len(self.data or b'')} byte upload>"


@dataclass(frozen=True)
class EncodedImage:
    """Base64 image text plus the MIME type of the original bytes."""

    data: str
    media_type: str

    def __post_init__(self) -> None:
        if not self.data:
            raise EncodingError("Encoded image data is empty")
        if not self.media_type or "/" not in self.media_type:
            raise EncodingError(f"Invalid media type: {self.media_type!r}")

    def decode(self) -> bytes:
        try:
            raw = base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise EncodingError("Encoded image data is not valid base64") from exc
        if not raw:
            raise EncodingError("Encoded image data decodes to nothing")
        return raw


@dataclass(frozen=True)
class CatSighting:
    """Where on campus a known cat is usually spotted."""

    lat: float
    lng: float
    description: str = ""

    def to_json(self) -> Dict[str, object]:
        return {"lat": self.lat, "lng": self.lng, "description": self.description}


@dataclass(frozen=True)
class ReferenceCat:
    name: str
    reference_images: Tuple[ImageSource, ...]
    location: Optional[CatSighting] = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Reference cat name must not be blank")
        if not self.reference_images:
            raise ValueError(f"Reference cat '{self.name}' has no reference images")

    def to_json(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "referenceImageCount": len(self.reference_images),
            "location": self.location.to_json() if self.location else None,
        }


@dataclass(frozen=True)
class CandidateEvaluation:
    """Oracle judgement of the user image against one roster cat."""

    cat_name: str
    similarity: float
    matched_features: Tuple[str, ...] = field(default_factory=tuple)
    mismatched_features: Tuple[str, ...] = field(default_factory=tuple)
    summary: str = ""

    @property
    def conflicts(self) -> Tuple[str, ...]:
        """Mismatched features with blank entries removed."""

        return tuple(item for item in self.mismatched_features if item.strip())

    def to_json(self) -> Dict[str, object]:
        return {
            "catName": self.cat_name,
            "similarity": float(self.similarity),
            "matchedFeatures": list(self.matched_features),
            "mismatchedFeatures": list(self.mismatched_features),
            "summary": self.summary,
        }


@dataclass(frozen=True)
class MatchResult:
    is_match: bool
    matched_cat_name: str
    confidence: float
    reasoning: str
    evaluations: Tuple[CandidateEvaluation, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.is_match != bool(self.matched_cat_name):
            raise ValueError("matched_cat_name must be set exactly when is_match is true")

    def to_json(self) -> Dict[str, object]:
        evaluations: List[Dict[str, object]] = [item.to_json() for item in self.evaluations]
        return {
            "isMatch": self.is_match,
            "matchedCatName": self.matched_cat_name,
            "confidence": float(self.confidence),
            "reasoning": self.reasoning,
            "evaluations": evaluations,
        }


@dataclass(frozen=True)
class BreedAnalysis:
    is_cat: bool
    breed: str
    confidence: float
    description: str

    def to_json(self) -> Dict[str, object]:
        return {
            "isCat": self.is_cat,
            "breed": self.breed,
            "confidence": float(self.confidence),
            "description": self.description,
        }
