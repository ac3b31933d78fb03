from __future__ import annotations

from airdrop_node.multipliers.tiers import TierTable

FOLLOW_ACCOUNTS = TierTable.of(
    "follow_accounts", "Follow Accounts", "Follow the project accounts", "following",
    [(1, "1.2"), (2, "1.4")],
)

# level 1: follows the channel, level 2: follows and published a podium cast
CHANNEL_INTERACTION = TierTable.of(
    "channel_interaction", "Channel Interaction", "Follow the channel and publish podiums", "level",
    [(1, "1.2"), (2, "1.4")],
)

TOKEN_HOLDINGS = TierTable.of(
    "token_holdings", "Token Holdings", "Hold tokens in wallet or staking vault", "tokens",
    [(100_000_000, "1.2"), (200_000_000, "1.4"), (400_000_000, "1.6"), (800_000_000, "1.8")],
)

COLLECTIBLES = TierTable.of(
    "collectibles", "Collectibles", "Collect bot casts", "collectibles",
    [(1, "1.2"), (2, "1.4"), (3, "1.8")],
)

VOTED_BRANDS = TierTable.of(
    "voted_brands", "Brands Voted", "Vote for different brands", "brands",
    [(9, "1.2"), (18, "1.4"), (36, "1.6"), (72, "1.8")],
)

SHARED_PODIUMS = TierTable.of(
    "shared_podiums", "Podiums Shared", "Share your podiums", "podiums",
    [(10, "1.2"), (20, "1.4"), (40, "1.6"), (80, "1.8")],
)

REPUTATION = TierTable.of(
    "reputation", "Reputation Score", "Social graph reputation score", "score",
    [("0.85", "1.2"), ("0.9", "1.5"), ("1.0", "1.8")],
)

# level 1: active subscription, level 2: subscription plus token tag in bio
PRO_USER = TierTable.of(
    "pro_user", "Pro User", "Hold an active pro subscription", "level",
    [(1, "1.2"), (2, "1.4")],
)

TIER_TABLES: dict[str, TierTable] = {
    table.name: table
    for table in (
        FOLLOW_ACCOUNTS,
        CHANNEL_INTERACTION,
        TOKEN_HOLDINGS,
        COLLECTIBLES,
        VOTED_BRANDS,
        SHARED_PODIUMS,
        REPUTATION,
        PRO_USER,
    )
}
