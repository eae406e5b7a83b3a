"""Fan out candidate evaluations over the roster and decide on a match."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from .codec import ImageCodec
from .errors import (
    AggregationFailure,
    AggregationTimeout,
    ConfigurationError,
    wrap_candidate_failure,
)
from .evaluator import CandidateEvaluator
from .models import CandidateEvaluation, EncodedImage, ImageSource, MatchResult, ReferenceCat

logger = logging.getLogger(__name__)

NO_CONFLICTS_REASON = "there were insufficient distinctive matches"


@dataclass(frozen=True)
class MatchPolicy:
    """Thresholds that turn the best candidate into a yes/no decision.

    A high similarity is not enough on its own: if the oracle listed more
    than ``max_conflicts`` concrete conflicts the match is rejected.
    """

    threshold: float = 0.75
    max_conflicts: int = 1

    def __post_init__(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError("threshold must be in the range [0, 1]")
        if self.max_conflicts < 0:
            raise ValueError("max_conflicts must not be negative")

    def accepts(self, evaluation: CandidateEvaluation) -> bool:
        return (
            evaluation.similarity >= self.threshold
            and len(evaluation.conflicts) <= self.max_conflicts
        )


def rank_evaluations(
    evaluations: Sequence[CandidateEvaluation],
) -> List[CandidateEvaluation]:
    """Sort by similarity, highest first.

    *evaluations* must be in roster order; the sort is stable, so equal
    similarities keep the earlier-registered cat first.
    """

    return sorted(evaluations, key=lambda item: item.similarity, reverse=True)


def decide(ranked: Sequence[CandidateEvaluation], policy: MatchPolicy) -> MatchResult:
    if not ranked:
        raise ValueError("Cannot decide a match without candidate evaluations")

    best = ranked[0]
    if policy.accepts(best):
        reasoning = best.summary or (
            f"{best.cat_name} matched with similarity {best.similarity:.2f}."
        )
        return MatchResult(
            is_match=True,
            matched_cat_name=best.cat_name,
            confidence=best.similarity,
            reasoning=reasoning,
            evaluations=tuple(ranked),
        )

    conflicts = best.conflicts
    if conflicts:
        reasoning = (
            f"Closest match is {best.cat_name}, but conflicts include: "
            f"{'; '.join(conflicts)}."
        )
    else:
        reasoning = f"Closest match is {best.cat_name}, but {NO_CONFLICTS_REASON}."
    return MatchResult(
        is_match=False,
        matched_cat_name="",
        confidence=best.similarity,
        reasoning=reasoning,
        evaluations=tuple(ranked),
    )


class MatchAggregator:
    """Evaluate every reference cat and apply the match policy.

    Evaluations run concurrently by default. Either way the operation is
    fail-fast: the first candidate failure cancels the rest and is raised as
    an :class:`~.errors.AggregationFailure`; no partial result is returned.
    ``timeout`` bounds the whole fan-out, not individual oracle calls.
    """

    def __init__(
        self,
        roster: Sequence[ReferenceCat],
        evaluator: CandidateEvaluator,
        *,
        codec: Optional[ImageCodec] = None,
        policy: Optional[MatchPolicy] = None,
        concurrent: bool = True,
        timeout: Optional[float] = None,
    ) -> None:
        if not roster:
            raise ConfigurationError("Cannot match against an empty roster")
        self.roster = tuple(roster)
        self.evaluator = evaluator
        self.codec = codec or evaluator.codec
        self.policy = policy or MatchPolicy()
        self.concurrent = concurrent
        self.timeout = timeout

    async def find_match(self, user_image: Union[ImageSource, EncodedImage]) -> MatchResult:
        start = time.perf_counter()
        if isinstance(user_image, EncodedImage):
            encoded = user_image
        else:
            encoded = await self.codec.encode(user_image)

        if self.concurrent:
            evaluations = await self._evaluate_concurrently(encoded)
        else:
            evaluations = await self._evaluate_sequentially(encoded)

        result = decide(rank_evaluations(evaluations), self.policy)
        logger.info(
            "match_decided",
            extra={
                "event_type": "match_decided",
                "is_match": result.is_match,
                "matched_cat": result.matched_cat_name,
                "confidence": result.confidence,
                "candidates": len(evaluations),
                "elapsed_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return result

    async def _evaluate(self, user_image: EncodedImage, cat: ReferenceCat) -> CandidateEvaluation:
        try:
            return await self.evaluator.evaluate_candidate(user_image, cat)
        except Exception as exc:  # noqa: BLE001 - re-raised with candidate context
            logger.error("Candidate %s failed: %s", cat.name, exc)
            raise wrap_candidate_failure(cat.name, exc) from exc

    async def _evaluate_sequentially(self, user_image: EncodedImage) -> List[CandidateEvaluation]:
        async def run_all() -> List[CandidateEvaluation]:
            return [await self._evaluate(user_image, cat) for cat in self.roster]

        if self.timeout is None:
            return await run_all()
        try:
            return await asyncio.wait_for(run_all(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise AggregationTimeout(self.timeout) from exc

    async def _evaluate_concurrently(self, user_image: EncodedImage) -> List[CandidateEvaluation]:
        tasks = [
            asyncio.create_task(self._evaluate(user_image, cat), name=f"candidate:{cat.name}")
            for cat in self.roster
        ]
        try:
            done, pending = await asyncio.wait(
                tasks, timeout=self.timeout, return_when=asyncio.FIRST_EXCEPTION
            )
        except asyncio.CancelledError:
            await self._cancel(tasks)
            raise

        failures: List[BaseException] = []
        for cat, task in zip(self.roster, tasks):
            if task not in done:
                continue
            if task.cancelled():
                # Cancelled from inside the evaluation, not by this method.
                failures.append(AggregationFailure(cat.name, asyncio.CancelledError()))
            elif task.exception() is not None:
                failures.append(task.exception())
        if failures or pending:
            await self._cancel(pending)
            if failures:
                raise failures[0]
            raise AggregationTimeout(self.timeout or 0.0)

        # Task list is in roster order, which the stable ranking relies on.
        return [task.result() for task in tasks]

    @staticmethod
    async def _cancel(tasks) -> None:
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
