from __future__ import annotations

import logging
from fractions import Fraction
from typing import Iterable

from airdrop_node.db.repositories import DBAirdropScoreRepository, DBAirdropSnapshotRepository
from airdrop_node.schemas import DistributionResult
from airdrop_node.services.leaderboard import LeaderboardCache

logger = logging.getLogger(__name__)

TOTAL_POOL = 1_500_000_000

USD_BUCKETS: tuple[tuple[str, float | None], ...] = (
    ("under_1", 1.0),
    ("1_to_5", 5.0),
    ("5_to_10", 10.0),
    ("10_to_20", 20.0),
    ("20_to_30", 30.0),
    ("over_30", None),
)


def allocate(scores: Iterable[tuple[int, int]], total_pool: int = TOTAL_POOL) -> dict[int, tuple[int, float]]:
    """Split ``total_pool`` proportionally to positive scores.

    Each share is rounded half up in exact arithmetic. When rounding pushes
    the sum past the pool, the rows rounded up the most (ties by fid) give
    back one unit each until the sum fits. Non-positive scores get (0, 0.0).
    """
    rows = list(scores)
    positive = [(fid, score) for fid, score in rows if score > 0]
    total = sum(score for _, score in positive)

    allocations: dict[int, tuple[int, float]] = {fid: (0, 0.0) for fid, score in rows if score <= 0}
    if total == 0:
        return allocations

    amounts: dict[int, int] = {}
    rounded_up: list[tuple[Fraction, int]] = []
    for fid, score in positive:
        exact = Fraction(score * total_pool, total)
        amount = int((2 * exact.numerator + exact.denominator) // (2 * exact.denominator))
        amounts[fid] = amount
        if amount > exact:
            rounded_up.append((amount - exact, fid))

    overshoot = sum(amounts.values()) - total_pool
    if overshoot > 0:
        rounded_up.sort(key=lambda item: (-item[0], item[1]))
        for _, fid in rounded_up[:overshoot]:
            amounts[fid] -= 1

    for fid, score in positive:
        allocations[fid] = (amounts[fid], float(Fraction(score * 100, total)))
    return allocations


def usd_buckets(allocations: Iterable[int], token_usd_price: float) -> dict[str, int]:
    buckets = {name: 0 for name, _ in USD_BUCKETS}
    for amount in allocations:
        value = amount * token_usd_price
        for name, upper in USD_BUCKETS:
            if upper is None or value < upper:
                buckets[name] += 1
                break
    return buckets


class DistributionEngine:
    def __init__(
        self,
        score_repository: DBAirdropScoreRepository,
        snapshot_repository: DBAirdropSnapshotRepository,
        *,
        total_pool: int = TOTAL_POOL,
        token_usd_price: float | None = None,
        leaderboard: LeaderboardCache | None = None,
    ):
        self.score_repo = score_repository
        self.snapshot_repo = snapshot_repository
        self.total_pool = total_pool
        self.token_usd_price = token_usd_price
        self.leaderboard = leaderboard

    def recalculate(self) -> DistributionResult:
        """Recompute every allocation from the current scores. Idempotent."""
        if self.snapshot_repo.has_frozen():
            logger.warning("Frozen airdrop snapshot exists; allocations are final, skipping redistribution")
            return DistributionResult(skipped=True, reason="frozen snapshot exists")

        records = self.score_repo.fetch_all()
        allocations = allocate(((r.fid, r.final_score) for r in records), self.total_pool)
        updated = self.score_repo.update_allocations(allocations)

        if self.leaderboard is not None:
            self.leaderboard.invalidate()

        positive = [r for r in records if r.final_score > 0]
        total_allocated = sum(amount for amount, _ in allocations.values())
        result = DistributionResult(
            total_participants=len(positive),
            total_points=sum(r.final_score for r in positive),
            total_allocated=total_allocated,
            zero_score_participants=len(records) - len(positive),
            usd_buckets=(
                usd_buckets((allocations[r.fid][0] for r in positive), self.token_usd_price)
                if self.token_usd_price else {}
            ),
        )
        logger.info(
            "Distribution: %d participants, %d points, %d/%d tokens allocated, %d rows updated",
            result.total_participants, result.total_points, total_allocated, self.total_pool, updated,
        )
        return result
