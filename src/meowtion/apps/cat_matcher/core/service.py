"""Wire the roster, codec, oracle and aggregator together from a config."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from meowtion.libs.oracle import OpenAICompatibleOracle, Oracle

from .aggregator import MatchAggregator, MatchPolicy
from .breed import BreedIdentifier
from .codec import ImageCodec
from .config import MatcherConfig
from .evaluator import CandidateEvaluator
from .models import BreedAnalysis, EncodedImage, ImageSource, MatchResult, ReferenceCat

logger = logging.getLogger(__name__)


class CatMatcherService:
    """Entry point shared by the HTTP API and the CLI.

    The oracle is an explicit dependency; pass a stub in tests.
    """

    def __init__(
        self,
        config: MatcherConfig,
        *,
        oracle: Optional[Oracle] = None,
        codec: Optional[ImageCodec] = None,
        roster: Optional[Sequence[ReferenceCat]] = None,
    ) -> None:
        self.config = config
        self.roster = tuple(roster) if roster is not None else tuple(config.load_roster())
        self.oracle = oracle or OpenAICompatibleOracle(
            base_url=config.base_url,
            model_name=config.model,
            api_key=config.api_key,
            timeout=config.timeout,
            temperature=config.temperature,
        )
        self.codec = codec or ImageCodec(cache_references=config.cache_references)
        self.evaluator = CandidateEvaluator(self.oracle, self.codec)
        self.aggregator = MatchAggregator(
            self.roster,
            self.evaluator,
            codec=self.codec,
            policy=MatchPolicy(
                threshold=config.match_threshold, max_conflicts=config.max_conflicts
            ),
            concurrent=config.concurrent,
            timeout=config.match_timeout,
        )
        self.breed_identifier = BreedIdentifier(self.oracle, self.codec)
        logger.info(
            "cat_matcher_ready",
            extra={
                "event_type": "service_ready",
                "model": config.model,
                "roster": [cat.name for cat in self.roster],
                "threshold": config.match_threshold,
                "max_conflicts": config.max_conflicts,
                "concurrent": config.concurrent,
            },
        )

    async def find_match(self, image: Union[ImageSource, EncodedImage]) -> MatchResult:
        return await self.aggregator.find_match(image)

    async def identify(self, image: Union[ImageSource, EncodedImage]) -> BreedAnalysis:
        return await self.breed_identifier.identify(image)

    async def aclose(self) -> None:
        await self.codec.aclose()
        close = getattr(self.oracle, "aclose", None)
        if close is not None:
            await close()
