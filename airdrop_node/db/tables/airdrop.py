"""Airdrop tables: per-participant scores, snapshots and their Merkle leaves."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AirdropScoreRow(SQLModel, table=True):
    __tablename__ = "airdrop_scores"

    fid: int = Field(primary_key=True)
    base_points: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))

    follow_accounts_multiplier: float = Field(default=1.0)
    channel_interaction_multiplier: float = Field(default=1.0)
    token_holdings_multiplier: float = Field(default=1.0)
    collectibles_multiplier: float = Field(default=1.0)
    voted_brands_multiplier: float = Field(default=1.0)
    shared_podiums_multiplier: float = Field(default=1.0)
    reputation_multiplier: float = Field(default=1.0)
    pro_user_multiplier: float = Field(default=1.0)
    total_multiplier: float = Field(default=1.0)

    final_score: int = Field(
        default=0, sa_column=Column(BigInteger, nullable=False, default=0, index=True),
    )
    token_allocation: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    percentage: float = Field(default=0.0)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


class AirdropSnapshotRow(SQLModel, table=True):
    """At most one row exists; generation replaces the previous snapshot."""
    __tablename__ = "airdrop_snapshots"
    # snapshot ids are never reused
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    merkle_root: Optional[str] = Field(default=None, max_length=66)
    total_participants: int = Field(default=0)
    # uint256 totals can exceed BIGINT once scaled by token decimals
    total_tokens: str = Field(default="0")
    token_decimals: int = Field(default=0)
    status: str = Field(default="EMPTY", index=True)
    is_frozen: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    frozen_at: Optional[datetime] = Field(default=None)


class AirdropLeafRow(SQLModel, table=True):
    __tablename__ = "airdrop_leaves"
    __table_args__ = (UniqueConstraint("snapshot_id", "fid", name="uq_airdrop_leaves_snapshot_fid"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    snapshot_id: int = Field(foreign_key="airdrop_snapshots.id", index=True)
    fid: int = Field(index=True)
    base_amount: str
    leaf_hash: str = Field(max_length=66)
    rank: int
    percentage: float = Field(default=0.0)
    final_score: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    created_at: datetime = Field(default_factory=utc_now)
