from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import Any


# Canonical multiplier order; also the order of columns on airdrop_scores.
MULTIPLIER_NAMES: tuple[str, ...] = (
    "follow_accounts",
    "channel_interaction",
    "token_holdings",
    "collectibles",
    "voted_brands",
    "shared_podiums",
    "reputation",
    "pro_user",
)

NEUTRAL_MULTIPLIER = Decimal("1.0")


class SnapshotStatus(StrEnum):
    EMPTY = "EMPTY"
    POPULATED = "POPULATED"
    FROZEN = "FROZEN"


@dataclass
class AirdropScoreRecord:
    """Per-participant eligibility score. Informational once a snapshot is frozen."""
    fid: int
    base_points: int
    multipliers: dict[str, Decimal] = field(default_factory=dict)
    total_multiplier: Decimal = NEUTRAL_MULTIPLIER
    final_score: int = 0
    token_allocation: int = 0
    percentage: float = 0.0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class SnapshotRecord:
    id: int
    merkle_root: str | None
    total_participants: int
    total_tokens: int
    token_decimals: int = 0
    status: SnapshotStatus = SnapshotStatus.EMPTY
    is_frozen: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    frozen_at: datetime | None = None


@dataclass
class LeafRecord:
    """One participant's committed (fid, base_amount) pair inside a snapshot."""
    fid: int
    base_amount: int
    leaf_hash: str
    rank: int
    percentage: float
    final_score: int
    snapshot_id: int | None = None


@dataclass(frozen=True)
class SocialProfile:
    fid: int
    username: str | None = None
    verified_addresses: tuple[str, ...] = ()
    reputation_score: float | None = None
    power_badge: bool = False
    subscription_status: str | None = None
    subscription_expires_at: datetime | None = None
    bio: str = ""
    collectible_count: int = 0

    def is_subscribed(self, now: datetime | None = None) -> bool:
        if self.subscription_status != "subscribed" or self.subscription_expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.subscription_expires_at > now


@dataclass(frozen=True)
class ChannelEngagement:
    following: bool = False
    published_count: int = 0


@dataclass
class Participant:
    fid: int
    base_points: int
    username: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)
