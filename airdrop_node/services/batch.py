from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from airdrop_node.entities.airdrop import Participant
from airdrop_node.interfaces import ActivityStore, SocialGraphProvider
from airdrop_node.multipliers import BatchContext, MultiplierCalculator
from airdrop_node.schemas import BatchError, BatchResult
from airdrop_node.services.aggregator import ScoreAggregator
from airdrop_node.services.leaderboard import LeaderboardCache

logger = logging.getLogger(__name__)


class BatchOrchestrator:
    """Scores the top cohort in sequential batches.

    Participants inside a batch are scored concurrently; one participant's
    failure is recorded and never aborts the run.
    """

    def __init__(
        self,
        activity: ActivityStore,
        social: SocialGraphProvider,
        calculator: MultiplierCalculator,
        aggregator: ScoreAggregator,
        *,
        cohort_size: int = 1111,
        batch_size: int = 50,
        cooldown_seconds: float = 2.0,
        excluded_fids: Iterable[int] = (),
        profile_timeout_seconds: float = 30.0,
        leaderboard: LeaderboardCache | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.activity = activity
        self.social = social
        self.calculator = calculator
        self.aggregator = aggregator
        self.cohort_size = cohort_size
        self.batch_size = batch_size
        self.cooldown_seconds = cooldown_seconds
        self.excluded_fids = tuple(excluded_fids)
        self.profile_timeout_seconds = profile_timeout_seconds
        self.leaderboard = leaderboard
        self._sleep = sleep

    async def run(self, cohort_size: int | None = None, batch_size: int | None = None) -> BatchResult:
        cohort_size = self.cohort_size if cohort_size is None else cohort_size
        batch_size = self.batch_size if batch_size is None else batch_size
        if cohort_size <= 0 or batch_size <= 0:
            raise ValueError(
                f"cohort_size and batch_size must be positive, got {cohort_size} and {batch_size}"
            )

        participants = self.activity.top_participants(cohort_size, self.excluded_fids)
        fids = [participant.fid for participant in participants]
        logger.info(
            "Airdrop batch run: %d participants, batch size %d, %d excluded fids",
            len(participants), batch_size, len(self.excluded_fids),
        )

        vote_targets = self.activity.bulk_distinct_vote_targets(fids)
        share_counts = self.activity.bulk_share_counts(fids)

        result = BatchResult(cohort_size=len(participants), processed=0, successful=0, failed=0)
        batches = [participants[i:i + batch_size] for i in range(0, len(participants), batch_size)]

        for index, batch in enumerate(batches, start=1):
            context = BatchContext(
                profiles=await self._prefetch_profiles([p.fid for p in batch]),
                profiles_loaded=True,
                vote_targets=vote_targets,
                share_counts=share_counts,
            )
            outcomes = await asyncio.gather(*(self._process(participant, context) for participant in batch))

            for participant, error in zip(batch, outcomes):
                result.processed += 1
                if error is None:
                    result.successful += 1
                else:
                    result.failed += 1
                    result.errors.append(BatchError(fid=participant.fid, error=error))

            logger.info(
                "Batch %d/%d done: %d/%d processed, %d failed",
                index, len(batches), result.processed, result.cohort_size, result.failed,
            )
            if index < len(batches) and self.cooldown_seconds > 0:
                await self._sleep(self.cooldown_seconds)

        if self.leaderboard is not None:
            self.leaderboard.invalidate()

        logger.info(
            "Airdrop batch run complete: %d successful, %d failed", result.successful, result.failed,
        )
        return result

    async def _prefetch_profiles(self, fids: list[int]) -> dict:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.social.fetch_profiles, fids),
                timeout=self.profile_timeout_seconds,
            )
        except Exception as exc:
            logger.warning(
                "Profile prefetch failed for a batch of %d: %s", len(fids), str(exc) or type(exc).__name__,
            )
            return {}

    async def _process(self, participant: Participant, context: BatchContext) -> str | None:
        """Score one participant; returns the error message on failure."""
        try:
            multipliers = await self.calculator.calculate(participant.fid, context)
            self.aggregator.save(participant.fid, participant.base_points, multipliers.multipliers)
        except Exception as exc:
            logger.error("Scoring fid=%s failed: %s", participant.fid, exc)
            return str(exc) or type(exc).__name__
        return None
