from __future__ import annotations

import logging

from airdrop_node.clients.contract import AirdropContractReader
from airdrop_node.db.repositories import DBAirdropSnapshotRepository
from airdrop_node.errors import ContractNotConfiguredError
from airdrop_node.merkle.proof import ProofService
from airdrop_node.merkle.snapshot import SnapshotBuilder
from airdrop_node.schemas import (
    AirdropAnalytics,
    AirdropCalculation,
    BatchResult,
    ContractStatus,
    DatabaseSummary,
    DistributionResult,
    LeaderboardPage,
    ProofResult,
    SnapshotResult,
)
from airdrop_node.services.analytics import AnalyticsService
from airdrop_node.services.batch import BatchOrchestrator
from airdrop_node.services.distribution import DistributionEngine
from airdrop_node.services.eligibility import EligibilityService
from airdrop_node.services.leaderboard import LeaderboardCache

logger = logging.getLogger(__name__)


class AirdropService:
    """Single entry point over the airdrop pipeline.

    signals -> eligibility / batch -> distribution -> snapshot -> proofs
    """

    def __init__(
        self,
        eligibility: EligibilityService,
        orchestrator: BatchOrchestrator,
        distribution: DistributionEngine,
        snapshot_builder: SnapshotBuilder,
        proofs: ProofService,
        leaderboard: LeaderboardCache,
        snapshot_repository: DBAirdropSnapshotRepository,
        analytics: AnalyticsService,
        contract: AirdropContractReader | None = None,
    ):
        self.eligibility = eligibility
        self.orchestrator = orchestrator
        self.distribution = distribution
        self.snapshot_builder = snapshot_builder
        self.proofs = proofs
        self.leaderboard = leaderboard
        self.snapshot_repo = snapshot_repository
        self.analytics = analytics
        self.contract = contract

    async def compute_eligibility(self, fid: int) -> AirdropCalculation:
        return await self.eligibility.compute(fid)

    async def run_batch_calculation(
        self, cohort_size: int | None = None, batch_size: int | None = None,
    ) -> BatchResult:
        return await self.orchestrator.run(cohort_size=cohort_size, batch_size=batch_size)

    def recalculate_distribution(self) -> DistributionResult:
        return self.distribution.recalculate()

    def generate_snapshot(self) -> SnapshotResult:
        return self.snapshot_builder.generate()

    def generate_proof(self, fid: int, snapshot_id: int | None = None) -> ProofResult | None:
        return self.proofs.generate_proof(fid, snapshot_id)

    def get_leaderboard(self, limit: int = 100) -> LeaderboardPage:
        return self.leaderboard.get(limit)

    def get_analytics(self) -> AirdropAnalytics:
        return self.analytics.analytics()

    def get_database_summary(self) -> DatabaseSummary:
        return self.analytics.database_summary()

    def contract_status(self) -> ContractStatus:
        if self.contract is None:
            raise ContractNotConfiguredError()

        onchain = self.contract.get_status()
        snapshot = self.snapshot_repo.get_active()
        snapshot_root = snapshot.merkle_root.lower() if snapshot and snapshot.merkle_root else None
        if snapshot_root and onchain.root_is_set and snapshot_root != onchain.merkle_root:
            logger.warning(
                "On-chain root %s differs from frozen snapshot root %s", onchain.merkle_root, snapshot_root,
            )
        return ContractStatus(
            merkle_root=onchain.merkle_root,
            claiming_enabled=onchain.claiming_enabled,
            total_claimed=onchain.total_claimed,
            escrow_balance=onchain.escrow_balance,
            allowance=onchain.allowance,
            snapshot_root=snapshot_root,
            roots_match=snapshot_root is not None and snapshot_root == onchain.merkle_root,
        )

    def has_claimed(self, fid: int) -> bool:
        if self.contract is None:
            raise ContractNotConfiguredError()
        return self.contract.has_claimed(fid)
