"""Single-shot breed identification through the shared oracle client."""

from __future__ import annotations

import logging
from typing import Union

from meowtion.libs.oracle import ImagePart, Oracle, TextPart

from .codec import ImageCodec
from .evaluator import clamp_score
from .models import BreedAnalysis, EncodedImage, ImageSource
from .prompts import BREED_PROMPT, BREED_SCHEMA

logger = logging.getLogger(__name__)


class BreedIdentifier:
    def __init__(self, oracle: Oracle, codec: ImageCodec) -> None:
        self.oracle = oracle
        self.codec = codec

    async def identify(self, image: Union[ImageSource, EncodedImage]) -> BreedAnalysis:
        encoded = image if isinstance(image, EncodedImage) else await self.codec.encode(image)
        payload = await self.oracle.evaluate(
            [TextPart(BREED_PROMPT.render()), ImagePart(encoded)], BREED_SCHEMA
        )
        is_cat = bool(payload["isCat"])
        analysis = BreedAnalysis(
            is_cat=is_cat,
            breed=str(payload["breed"]).strip() or ("Unknown" if is_cat else "Not a cat"),
            confidence=clamp_score(payload["confidence"]) if is_cat else 0.0,
            description=str(payload["description"]).strip(),
        )
        logger.info(
            "breed_identified",
            extra={
                "event_type": "breed_identified",
                "is_cat": analysis.is_cat,
                "breed": analysis.breed,
                "confidence": analysis.confidence,
            },
        )
        return analysis
