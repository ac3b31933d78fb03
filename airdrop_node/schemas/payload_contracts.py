from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TierStatus(BaseModel):
    threshold: float
    multiplier: float
    achieved: bool = False


class Progress(BaseModel):
    current: float
    required: float | None = None
    unit: str = ""


class ChallengeBreakdown(BaseModel):
    """One multiplier dimension as shown to the participant."""

    name: str
    description: str
    current_value: float
    current_multiplier: float
    max_multiplier: float
    completed: bool
    progress: Progress
    tiers: list[TierStatus] = Field(default_factory=list)
    next_tier: TierStatus | None = None
    degraded: bool = False


class AirdropCalculation(BaseModel):
    fid: int
    base_points: int
    multipliers: dict[str, float]
    total_multiplier: float
    final_score: int
    challenges: list[ChallengeBreakdown] = Field(default_factory=list)
    degraded_dimensions: list[str] = Field(default_factory=list)
    leaderboard_position: int | None = None
    token_allocation: int = 0
    percentage: float = 0.0
    previous_score: int | None = None


class BatchError(BaseModel):
    fid: int
    error: str


class BatchResult(BaseModel):
    cohort_size: int
    processed: int
    successful: int
    failed: int
    errors: list[BatchError] = Field(default_factory=list)


class DistributionResult(BaseModel):
    total_participants: int = 0
    total_points: int = 0
    total_allocated: int = 0
    zero_score_participants: int = 0
    skipped: bool = False
    reason: str | None = None
    # participant counts per USD value bucket; empty without a token price
    usd_buckets: dict[str, int] = Field(default_factory=dict)


class SnapshotResult(BaseModel):
    snapshot_id: int
    merkle_root: str
    total_participants: int
    total_tokens: int
    token_decimals: int = 0


class ProofResult(BaseModel):
    fid: int
    amount: int
    proof: list[str]
    merkle_root: str
    snapshot_id: int


class LeaderboardEntry(BaseModel):
    rank: int
    fid: int
    base_points: int
    total_multiplier: float
    final_score: int
    token_allocation: int
    percentage: float


class LeaderboardPage(BaseModel):
    entries: list[LeaderboardEntry] = Field(default_factory=list)
    last_refreshed: datetime | None = None


class ContractStatus(BaseModel):
    merkle_root: str
    claiming_enabled: bool
    total_claimed: int
    escrow_balance: int
    allowance: int
    snapshot_root: str | None = None
    roots_match: bool = False

    model_config = ConfigDict(extra="allow")


class AllocationEntry(BaseModel):
    rank: int
    fid: int
    final_score: int
    token_allocation: int
    percentage: float
    usd_value: float | None = None


class AllocationExtreme(BaseModel):
    fid: int
    tokens: int
    usd_value: float | None = None


class AnalyticsSummary(BaseModel):
    total_participants: int = 0
    total_tokens: int = 0
    average_tokens: int = 0
    total_usd: float | None = None
    average_usd: float | None = None
    token_usd_price: float | None = None


class AirdropAnalytics(BaseModel):
    summary: AnalyticsSummary
    usd_buckets: dict[str, int] = Field(default_factory=dict)
    top: list[AllocationEntry] = Field(default_factory=list)
    # lowest allocations first
    bottom: list[AllocationEntry] = Field(default_factory=list)
    highest_allocation: AllocationExtreme | None = None
    # smallest non-zero allocation
    lowest_allocation: AllocationExtreme | None = None
    snapshot_frozen: bool = False


class UserCount(BaseModel):
    fid: int
    username: str | None = None
    count: int


class DatabaseSummary(BaseModel):
    total_users: int = 0
    users_with_votes: int = 0
    users_with_shared_podiums: int = 0
    total_votes: int = 0
    total_shared_podiums: int = 0
    average_votes_per_user: float = 0.0
    average_shared_podiums_per_user: float = 0.0
    average_brands_voted_per_user: float = 0.0
    existing_airdrop_scores: int = 0
    top_users_by_points: list[UserCount] = Field(default_factory=list)
    top_users_by_votes: list[UserCount] = Field(default_factory=list)
    top_users_by_shared_podiums: list[UserCount] = Field(default_factory=list)
