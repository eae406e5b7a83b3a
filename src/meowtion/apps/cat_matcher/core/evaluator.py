"""Compare the user image against a single reference cat."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from meowtion.libs.oracle import ImagePart, Oracle, OracleResponseError, Part, TextPart

from .codec import ImageCodec
from .models import CandidateEvaluation, EncodedImage, ReferenceCat
from .prompts import (
    CANDIDATE_PROMPT,
    CANDIDATE_SCHEMA,
    REFERENCE_LABEL_TEMPLATE,
    USER_IMAGE_LABEL,
)

logger = logging.getLogger(__name__)


def clamp_score(value: Optional[float]) -> float:
    """Clamp an oracle score into [0, 1]; unusable values become 0."""

    if value is None or isinstance(value, bool):
        return 0.0
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(numeric):
        return 0.0
    return max(0.0, min(1.0, numeric))


def _as_features(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return tuple()
    return tuple(str(item).strip() for item in value if item is not None)


def build_candidate_parts(
    user_image: EncodedImage,
    cat: ReferenceCat,
    references: Sequence[EncodedImage],
) -> List[Part]:
    """Instruction, user image, then every reference image of *cat*, in order."""

    parts: List[Part] = [
        TextPart(CANDIDATE_PROMPT.render(cat_name=cat.name)),
        TextPart(USER_IMAGE_LABEL),
        ImagePart(user_image),
        TextPart(REFERENCE_LABEL_TEMPLATE.format(cat_name=cat.name)),
    ]
    parts.extend(ImagePart(reference) for reference in references)
    return parts


def normalise_evaluation(cat: ReferenceCat, payload: Mapping[str, Any]) -> CandidateEvaluation:
    """Build a trusted evaluation from a schema-valid oracle payload.

    The roster name always replaces whatever name the oracle echoed back.
    """

    echoed = payload.get("catName")
    if isinstance(echoed, str) and echoed.strip().casefold() != cat.name.casefold():
        logger.debug("Oracle echoed cat name %r for candidate %s", echoed, cat.name)

    summary = payload.get("summary")
    return CandidateEvaluation(
        cat_name=cat.name,
        similarity=clamp_score(payload.get("similarity")),
        matched_features=_as_features(payload.get("matchedFeatures")),
        mismatched_features=_as_features(payload.get("mismatchedFeatures")),
        summary=summary.strip() if isinstance(summary, str) else "",
    )


class CandidateEvaluator:
    """Ask the oracle how closely the user image resembles one roster cat."""

    def __init__(self, oracle: Oracle, codec: ImageCodec) -> None:
        self.oracle = oracle
        self.codec = codec

    async def encode_references(self, cat: ReferenceCat) -> List[EncodedImage]:
        """Encode every reference image of *cat*; one failure cancels the rest."""

        tasks = [
            asyncio.create_task(self.codec.encode_reference(source))
            for source in cat.reference_images
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def evaluate_candidate(
        self, user_image: EncodedImage, cat: ReferenceCat
    ) -> CandidateEvaluation:
        references = await self.encode_references(cat)
        parts = build_candidate_parts(user_image, cat, references)
        payload = await self.oracle.evaluate(parts, CANDIDATE_SCHEMA)
        if not isinstance(payload, Mapping):
            raise OracleResponseError(
                f"Oracle returned {type(payload).__name__} for candidate {cat.name}"
            )

        evaluation = normalise_evaluation(cat, payload)
        logger.info(
            "candidate_evaluated",
            extra={
                "event_type": "candidate_evaluated",
                "cat_name": cat.name,
                "similarity": evaluation.similarity,
                "conflicts": len(evaluation.conflicts),
                "references": len(references),
            },
        )
        return evaluation
