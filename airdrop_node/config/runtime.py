from __future__ import annotations

from dataclasses import dataclass
import os


def _int_list(raw: str) -> tuple[int, ...]:
    return tuple(int(part) for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class RuntimeSettings:
    total_pool: int
    top_participants: int
    batch_size: int
    batch_cooldown_seconds: float
    excluded_fids: tuple[int, ...]
    token_decimals: int
    signal_timeout_seconds: float
    signal_concurrency: int
    leaderboard_ttl_seconds: float
    token_usd_price: float | None

    neynar_api_key: str
    neynar_base_url: str
    neynar_max_ids_per_call: int
    neynar_timeout_seconds: float
    follow_target_fids: tuple[int, ...]
    channel_id: str
    podium_url_marker: str
    profile_token_tag: str

    rpc_url: str
    rpc_timeout_seconds: float
    token_address: str
    staking_vault_address: str
    airdrop_contract_address: str
    ledger_token_decimals: int

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        usd_price = os.getenv("TOKEN_USD_PRICE", "").strip()
        return cls(
            total_pool=int(os.getenv("AIRDROP_TOTAL_POOL", "1500000000")),
            top_participants=int(os.getenv("AIRDROP_TOP_PARTICIPANTS", "1111")),
            batch_size=int(os.getenv("AIRDROP_BATCH_SIZE", "50")),
            batch_cooldown_seconds=float(os.getenv("AIRDROP_BATCH_COOLDOWN_SECONDS", "2")),
            excluded_fids=_int_list(os.getenv("AIRDROP_EXCLUDED_FIDS", "")),
            token_decimals=int(os.getenv("AIRDROP_TOKEN_DECIMALS", "0")),
            signal_timeout_seconds=float(os.getenv("AIRDROP_SIGNAL_TIMEOUT_SECONDS", "10")),
            signal_concurrency=int(os.getenv("AIRDROP_SIGNAL_CONCURRENCY", "32")),
            leaderboard_ttl_seconds=float(os.getenv("AIRDROP_LEADERBOARD_TTL_SECONDS", "300")),
            token_usd_price=float(usd_price) if usd_price else None,
            neynar_api_key=os.getenv("NEYNAR_API_KEY", "").rstrip("&"),
            neynar_base_url=os.getenv("NEYNAR_BASE_URL", "https://api.neynar.com/v2/farcaster"),
            neynar_max_ids_per_call=int(os.getenv("NEYNAR_MAX_IDS_PER_CALL", "100")),
            neynar_timeout_seconds=float(os.getenv("NEYNAR_TIMEOUT_SECONDS", "8")),
            follow_target_fids=_int_list(os.getenv("AIRDROP_FOLLOW_TARGET_FIDS", "1108951,6946")),
            channel_id=os.getenv("AIRDROP_CHANNEL_ID", "brnd"),
            podium_url_marker=os.getenv("AIRDROP_PODIUM_URL_MARKER", "https://brnd.land?voteId="),
            profile_token_tag=os.getenv("AIRDROP_PROFILE_TOKEN_TAG", "$BRND"),
            rpc_url=os.getenv("BASE_RPC_URL", "https://mainnet.base.org"),
            rpc_timeout_seconds=float(os.getenv("BASE_RPC_TIMEOUT_SECONDS", "8")),
            token_address=os.getenv("TOKEN_CONTRACT_ADDRESS", "0x41Ed0311640A5e489A90940b1c33433501a21B07"),
            staking_vault_address=os.getenv(
                "STAKING_VAULT_ADDRESS", "0x19d1872d8328b23a219e11d3d6eeee1954a88f88",
            ),
            airdrop_contract_address=os.getenv("AIRDROP_CONTRACT_ADDRESS", ""),
            ledger_token_decimals=int(os.getenv("LEDGER_TOKEN_DECIMALS", "18")),
        )
