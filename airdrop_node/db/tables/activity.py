"""Read-only mappings of the voting backend's user and vote tables."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, Column
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserRow(SQLModel, table=True):
    __tablename__ = "users"

    fid: int = Field(primary_key=True)
    username: Optional[str] = Field(default=None)
    points: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0, index=True))


class UserBrandVoteRow(SQLModel, table=True):
    """One podium vote: up to three brands plus an optional share cast."""
    __tablename__ = "user_brand_votes"

    id: Optional[int] = Field(default=None, primary_key=True)
    fid: int = Field(index=True)
    brand1_id: Optional[int] = Field(default=None)
    brand2_id: Optional[int] = Field(default=None)
    brand3_id: Optional[int] = Field(default=None)
    shared: bool = Field(default=False)
    cast_hash: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
