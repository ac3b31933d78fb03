from airdrop_node.entities.airdrop import (
    MULTIPLIER_NAMES,
    NEUTRAL_MULTIPLIER,
    AirdropScoreRecord,
    ChannelEngagement,
    LeafRecord,
    Participant,
    SnapshotRecord,
    SnapshotStatus,
    SocialProfile,
)

__all__ = [
    "MULTIPLIER_NAMES",
    "NEUTRAL_MULTIPLIER",
    "AirdropScoreRecord",
    "ChannelEngagement",
    "LeafRecord",
    "Participant",
    "SnapshotRecord",
    "SnapshotStatus",
    "SocialProfile",
]
