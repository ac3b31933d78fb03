from airdrop_node.schemas.payload_contracts import (
    AirdropAnalytics,
    AirdropCalculation,
    AllocationEntry,
    AllocationExtreme,
    AnalyticsSummary,
    BatchError,
    BatchResult,
    ChallengeBreakdown,
    ContractStatus,
    DatabaseSummary,
    DistributionResult,
    LeaderboardEntry,
    LeaderboardPage,
    ProofResult,
    Progress,
    SnapshotResult,
    TierStatus,
    UserCount,
)

__all__ = [
    "AirdropAnalytics",
    "AirdropCalculation",
    "AllocationEntry",
    "AllocationExtreme",
    "AnalyticsSummary",
    "BatchError",
    "BatchResult",
    "ChallengeBreakdown",
    "ContractStatus",
    "DatabaseSummary",
    "DistributionResult",
    "LeaderboardEntry",
    "LeaderboardPage",
    "ProofResult",
    "Progress",
    "SnapshotResult",
    "TierStatus",
    "UserCount",
]
