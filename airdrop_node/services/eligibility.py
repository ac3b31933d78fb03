from __future__ import annotations

import logging

from airdrop_node.db.repositories import DBAirdropScoreRepository
from airdrop_node.interfaces import ActivityStore
from airdrop_node.multipliers import BatchContext, MultiplierCalculator
from airdrop_node.schemas import AirdropCalculation
from airdrop_node.services.aggregator import ScoreAggregator
from airdrop_node.services.leaderboard import LeaderboardCache

logger = logging.getLogger(__name__)


class EligibilityService:
    """Scores a single participant on demand and reports where they stand."""

    def __init__(
        self,
        activity: ActivityStore,
        calculator: MultiplierCalculator,
        aggregator: ScoreAggregator,
        score_repository: DBAirdropScoreRepository,
        leaderboard: LeaderboardCache,
    ):
        self.activity = activity
        self.calculator = calculator
        self.aggregator = aggregator
        self.score_repo = score_repository
        self.leaderboard = leaderboard

    def _activity_context(self, fid: int) -> BatchContext:
        # Activity reads share one DB session, so they run here and not in
        # the calculator's worker threads.
        context = BatchContext()
        try:
            context.vote_targets[fid] = self.activity.get_distinct_vote_targets(fid)
        except Exception as exc:
            logger.warning("Vote target lookup failed for fid=%s: %s", fid, str(exc) or type(exc).__name__)
            context.unavailable.add("voted_brands")
        try:
            context.share_counts[fid] = self.activity.get_share_count(fid)
        except Exception as exc:
            logger.warning("Share count lookup failed for fid=%s: %s", fid, str(exc) or type(exc).__name__)
            context.unavailable.add("shared_podiums")
        return context

    async def compute(self, fid: int) -> AirdropCalculation:
        base_points = self.activity.get_base_points(fid)
        previous = self.score_repo.get(fid)

        multipliers = await self.calculator.calculate(fid, self._activity_context(fid))
        record = self.aggregator.save(fid, base_points, multipliers.multipliers)
        self.leaderboard.invalidate()

        logger.info(
            "fid=%s eligibility: %d x %s = %d (previous %s)",
            fid, base_points, record.total_multiplier, record.final_score,
            previous.final_score if previous else None,
        )
        return AirdropCalculation(
            fid=fid,
            base_points=base_points,
            multipliers={name: float(value) for name, value in record.multipliers.items()},
            total_multiplier=float(record.total_multiplier),
            final_score=record.final_score,
            challenges=multipliers.breakdown(),
            degraded_dimensions=multipliers.degraded,
            leaderboard_position=self.leaderboard.position(record.final_score),
            token_allocation=record.token_allocation,
            percentage=record.percentage,
            previous_score=previous.final_score if previous else None,
        )
