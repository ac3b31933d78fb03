from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from airdrop_node.db.repositories import DBAirdropScoreRepository
from airdrop_node.schemas import LeaderboardEntry, LeaderboardPage

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LeaderboardCache:
    """Top participants by final score, cached with a TTL.

    Writers (batch runs, distribution) call ``invalidate()`` so readers never
    see a page older than the last write.
    """

    def __init__(
        self,
        score_repository: DBAirdropScoreRepository,
        *,
        ttl_seconds: float = 300.0,
        now: Callable[[], datetime] = _utc_now,
    ):
        self.score_repo = score_repository
        self.ttl = timedelta(seconds=ttl_seconds)
        self._now = now
        self.data: list[LeaderboardEntry] = []
        self.last_refreshed: datetime | None = None
        self._cached_limit = 0

    def is_stale(self, limit: int) -> bool:
        if self.last_refreshed is None or limit > self._cached_limit:
            return True
        return self._now() - self.last_refreshed >= self.ttl

    def get(self, limit: int = 100) -> LeaderboardPage:
        limit = int(limit)
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        if self.is_stale(limit):
            self.refresh(limit)
        return LeaderboardPage(entries=self.data[:limit], last_refreshed=self.last_refreshed)

    def refresh(self, limit: int) -> None:
        records = self.score_repo.top_by_final_score(limit)
        self.data = [
            LeaderboardEntry(
                rank=rank,
                fid=record.fid,
                base_points=record.base_points,
                total_multiplier=float(record.total_multiplier),
                final_score=record.final_score,
                token_allocation=record.token_allocation,
                percentage=record.percentage,
            )
            for rank, record in enumerate(records, start=1)
        ]
        self._cached_limit = limit
        self.last_refreshed = self._now()
        logger.debug("Leaderboard refreshed with %d entries", len(self.data))

    def invalidate(self) -> None:
        self.data = []
        self.last_refreshed = None
        self._cached_limit = 0

    def position(self, final_score: int) -> int:
        """1-based position: participants with a strictly higher score, plus one."""
        return self.score_repo.count_higher(final_score) + 1
