"""Read-only reports over stored allocations and voting activity."""
from __future__ import annotations

import logging

from airdrop_node.db.activity_store import DBActivityStore
from airdrop_node.db.repositories import DBAirdropScoreRepository, DBAirdropSnapshotRepository
from airdrop_node.entities.airdrop import AirdropScoreRecord
from airdrop_node.schemas import (
    AirdropAnalytics,
    AllocationEntry,
    AllocationExtreme,
    AnalyticsSummary,
    DatabaseSummary,
    UserCount,
)
from airdrop_node.services.distribution import usd_buckets

logger = logging.getLogger(__name__)


def _average(total: int, count: int) -> float:
    return round(total / count, 2) if count else 0.0


class AnalyticsService:
    """Summaries of the current allocation and the activity behind it.

    Nothing here writes, so reports keep working once a snapshot is frozen.
    """

    def __init__(
        self,
        activity: DBActivityStore,
        score_repository: DBAirdropScoreRepository,
        snapshot_repository: DBAirdropSnapshotRepository,
        *,
        token_usd_price: float | None = None,
        extremes_size: int = 20,
        summary_top_size: int = 10,
    ):
        self.activity = activity
        self.score_repo = score_repository
        self.snapshot_repo = snapshot_repository
        self.token_usd_price = token_usd_price
        self.extremes_size = extremes_size
        self.summary_top_size = summary_top_size

    def _usd(self, tokens: int) -> float | None:
        if not self.token_usd_price:
            return None
        return round(tokens * self.token_usd_price, 2)

    def _entry(self, rank: int, record: AirdropScoreRecord) -> AllocationEntry:
        return AllocationEntry(
            rank=rank,
            fid=record.fid,
            final_score=record.final_score,
            token_allocation=record.token_allocation,
            percentage=record.percentage,
            usd_value=self._usd(record.token_allocation),
        )

    def _extreme(self, record: AirdropScoreRecord | None) -> AllocationExtreme | None:
        if record is None:
            return None
        return AllocationExtreme(
            fid=record.fid, tokens=record.token_allocation, usd_value=self._usd(record.token_allocation),
        )

    def analytics(self) -> AirdropAnalytics:
        records = sorted(self.score_repo.fetch_all(), key=lambda r: (-r.final_score, r.fid))
        ranked = [self._entry(rank, record) for rank, record in enumerate(records, start=1)]

        count = len(records)
        total_tokens = sum(r.token_allocation for r in records)
        summary = AnalyticsSummary(
            total_participants=count,
            total_tokens=total_tokens,
            # half up
            average_tokens=(2 * total_tokens + count) // (2 * count) if count else 0,
            token_usd_price=self.token_usd_price,
        )
        if self.token_usd_price:
            total_usd = total_tokens * self.token_usd_price
            summary.total_usd = round(total_usd, 2)
            summary.average_usd = round(total_usd / count, 2) if count else 0.0

        funded = [r for r in records if r.token_allocation > 0]
        highest = max(funded, key=lambda r: (r.token_allocation, -r.fid), default=None)
        lowest = min(funded, key=lambda r: (r.token_allocation, r.fid), default=None)

        result = AirdropAnalytics(
            summary=summary,
            usd_buckets=(
                usd_buckets((r.token_allocation for r in records), self.token_usd_price)
                if self.token_usd_price else {}
            ),
            top=ranked[:self.extremes_size],
            bottom=list(reversed(ranked[-self.extremes_size:])) if ranked else [],
            highest_allocation=self._extreme(highest),
            lowest_allocation=self._extreme(lowest),
            snapshot_frozen=self.snapshot_repo.has_frozen(),
        )
        logger.info(
            "Airdrop analytics: %d participants, %d tokens allocated", count, total_tokens,
        )
        return result

    def database_summary(self) -> DatabaseSummary:
        total_users = self.activity.count_users()
        total_votes = self.activity.count_votes()
        total_shared = self.activity.count_votes(shared_only=True)
        limit = self.summary_top_size

        summary = DatabaseSummary(
            total_users=total_users,
            users_with_votes=self.activity.count_users_with_votes(),
            users_with_shared_podiums=self.activity.count_users_with_votes(shared_only=True),
            total_votes=total_votes,
            total_shared_podiums=total_shared,
            average_votes_per_user=_average(total_votes, total_users),
            average_shared_podiums_per_user=_average(total_shared, total_users),
            average_brands_voted_per_user=_average(self.activity.total_distinct_vote_targets(), total_users),
            existing_airdrop_scores=self.score_repo.count(),
            top_users_by_points=[
                UserCount(fid=fid, username=username, count=points)
                for fid, username, points in self.activity.top_by_points(limit)
            ],
            top_users_by_votes=[
                UserCount(fid=fid, username=username, count=votes)
                for fid, username, votes in self.activity.top_by_votes(limit)
            ],
            top_users_by_shared_podiums=[
                UserCount(fid=fid, username=username, count=shares)
                for fid, username, shares in self.activity.top_by_votes(limit, shared_only=True)
            ],
        )
        logger.info(
            "Database summary: %d users, %d votes, %d shared podiums, %d airdrop scores",
            total_users, total_votes, total_shared, summary.existing_airdrop_scores,
        )
        return summary
