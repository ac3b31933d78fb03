"""Packages the top cohort into a frozen, contract-verifiable Merkle snapshot."""
from __future__ import annotations

import logging

from airdrop_node.db.repositories import DBAirdropScoreRepository, DBAirdropSnapshotRepository
from airdrop_node.entities.airdrop import LeafRecord
from airdrop_node.errors import EmptyCohortError
from airdrop_node.merkle.hasher import from_hex, leaf_hash, to_hex
from airdrop_node.merkle.tree import compute_root
from airdrop_node.schemas import SnapshotResult

logger = logging.getLogger(__name__)


class SnapshotBuilder:
    """Builds and persists the airdrop snapshot.

    - build_leaves(): top-K positive scores, ranked, hashed, sorted by fid.
    - generate(): replaces any prior snapshot in one transaction, then
      freezes it in a second one. A failed freeze removes the unfrozen
      snapshot so no half-committed state is left behind.
    """

    def __init__(
        self,
        score_repository: DBAirdropScoreRepository,
        snapshot_repository: DBAirdropSnapshotRepository,
        *,
        top_participants: int = 1111,
        token_decimals: int = 0,
    ):
        self.score_repo = score_repository
        self.snapshot_repo = snapshot_repository
        self.top_participants = top_participants
        self.token_decimals = token_decimals

    def build_leaves(self) -> list[LeafRecord]:
        cohort = self.score_repo.top_by_final_score(self.top_participants, positive_only=True)
        if not cohort:
            raise EmptyCohortError("No participants with a positive final score to snapshot")

        scale = 10 ** self.token_decimals
        leaves: list[LeafRecord] = []
        for rank, score in enumerate(cohort, start=1):
            base_amount = score.token_allocation * scale
            leaves.append(LeafRecord(
                fid=score.fid,
                base_amount=base_amount,
                leaf_hash=to_hex(leaf_hash(score.fid, base_amount)),
                rank=rank,
                percentage=score.percentage,
                final_score=score.final_score,
            ))

        # Tree order is fid ascending; rank keeps the score order.
        leaves.sort(key=lambda leaf: leaf.fid)
        return leaves

    def generate(self) -> SnapshotResult:
        leaves = self.build_leaves()
        root = compute_root([from_hex(leaf.leaf_hash) for leaf in leaves])
        merkle_root = to_hex(root)
        total_tokens = sum(leaf.base_amount for leaf in leaves)
        if total_tokens == 0:
            logger.warning("Snapshot cohort has no token allocations; was the distribution run?")

        snapshot = self.snapshot_repo.replace(
            merkle_root=merkle_root,
            leaves=leaves,
            total_tokens=total_tokens,
            token_decimals=self.token_decimals,
        )
        logger.info(
            "Airdrop snapshot %s populated: %d leaves, root=%s, total_tokens=%d",
            snapshot.id, len(leaves), merkle_root, total_tokens,
        )

        try:
            snapshot = self.snapshot_repo.freeze(snapshot.id)
        except Exception:
            logger.error("Freezing snapshot %s failed; removing the unfrozen snapshot", snapshot.id)
            try:
                self.snapshot_repo.delete(snapshot.id)
            except Exception:
                logger.exception("Removing unfrozen snapshot %s failed", snapshot.id)
            raise

        logger.info("Airdrop snapshot %s frozen at %s", snapshot.id, snapshot.frozen_at)
        return SnapshotResult(
            snapshot_id=snapshot.id,
            merkle_root=merkle_root,
            total_participants=snapshot.total_participants,
            total_tokens=total_tokens,
            token_decimals=self.token_decimals,
        )
