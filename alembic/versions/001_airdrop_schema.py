"""airdrop schema: scores, snapshots, leaves

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MULTIPLIER_COLUMNS = (
    "follow_accounts_multiplier",
    "channel_interaction_multiplier",
    "token_holdings_multiplier",
    "collectibles_multiplier",
    "voted_brands_multiplier",
    "shared_podiums_multiplier",
    "reputation_multiplier",
    "pro_user_multiplier",
    "total_multiplier",
)


def upgrade() -> None:
    op.create_table(
        "airdrop_scores",
        sa.Column("fid", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("base_points", sa.BigInteger(), nullable=False, server_default="0"),
        *(sa.Column(name, sa.Float(), nullable=False, server_default="1.0") for name in MULTIPLIER_COLUMNS),
        sa.Column("final_score", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("token_allocation", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_airdrop_scores_final_score", "airdrop_scores", ["final_score"])
    op.create_index("ix_airdrop_scores_updated_at", "airdrop_scores", ["updated_at"])

    op.create_table(
        "airdrop_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("merkle_root", sa.String(length=66), nullable=True),
        sa.Column("total_participants", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_tokens", sa.String(), nullable=False, server_default="0"),
        sa.Column("token_decimals", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="EMPTY"),
        sa.Column("is_frozen", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("frozen_at", sa.DateTime(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_airdrop_snapshots_status", "airdrop_snapshots", ["status"])
    op.create_index("ix_airdrop_snapshots_is_frozen", "airdrop_snapshots", ["is_frozen"])
    op.create_index("ix_airdrop_snapshots_created_at", "airdrop_snapshots", ["created_at"])

    op.create_table(
        "airdrop_leaves",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("snapshot_id", sa.Integer(), sa.ForeignKey("airdrop_snapshots.id"), nullable=False),
        sa.Column("fid", sa.Integer(), nullable=False),
        sa.Column("base_amount", sa.String(), nullable=False),
        sa.Column("leaf_hash", sa.String(length=66), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("final_score", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("snapshot_id", "fid", name="uq_airdrop_leaves_snapshot_fid"),
    )
    op.create_index("ix_airdrop_leaves_snapshot_id", "airdrop_leaves", ["snapshot_id"])
    op.create_index("ix_airdrop_leaves_fid", "airdrop_leaves", ["fid"])


def downgrade() -> None:
    op.drop_table("airdrop_leaves")
    op.drop_table("airdrop_snapshots")
    op.drop_table("airdrop_scores")
