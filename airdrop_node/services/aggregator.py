from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

from airdrop_node.db.repositories import DBAirdropScoreRepository
from airdrop_node.entities.airdrop import MULTIPLIER_NAMES, NEUTRAL_MULTIPLIER, AirdropScoreRecord

logger = logging.getLogger(__name__)


def total_multiplier(multipliers: Mapping[str, Decimal]) -> Decimal:
    product = NEUTRAL_MULTIPLIER
    for name in MULTIPLIER_NAMES:
        product *= multipliers.get(name, NEUTRAL_MULTIPLIER)
    return product


def final_score(base_points: int, multiplier: Decimal) -> int:
    """Round half up, so 12.5 becomes 13."""
    return int((Decimal(base_points) * multiplier).quantize(Decimal(1), rounding=ROUND_HALF_UP))


class ScoreAggregator:
    def __init__(self, score_repository: DBAirdropScoreRepository):
        self.score_repo = score_repository

    def compose(self, fid: int, base_points: int, multipliers: Mapping[str, Decimal]) -> AirdropScoreRecord:
        complete = {name: multipliers.get(name, NEUTRAL_MULTIPLIER) for name in MULTIPLIER_NAMES}
        total = total_multiplier(complete)
        return AirdropScoreRecord(
            fid=fid,
            base_points=base_points,
            multipliers=complete,
            total_multiplier=total,
            final_score=final_score(base_points, total),
        )

    def save(self, fid: int, base_points: int, multipliers: Mapping[str, Decimal]) -> AirdropScoreRecord:
        record = self.score_repo.save(self.compose(fid, base_points, multipliers))
        logger.debug(
            "fid=%s base=%d x %s = %d", fid, base_points, record.total_multiplier, record.final_score,
        )
        return record
