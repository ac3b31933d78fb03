from airdrop_node.db.tables.activity import UserBrandVoteRow, UserRow
from airdrop_node.db.tables.airdrop import AirdropLeafRow, AirdropScoreRow, AirdropSnapshotRow

__all__ = [
    "AirdropScoreRow", "AirdropSnapshotRow", "AirdropLeafRow",
    "UserRow", "UserBrandVoteRow",
]
