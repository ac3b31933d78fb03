from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from airdrop_node.entities.airdrop import ChannelEngagement, Participant, SocialProfile


class ActivityStore(Protocol):
    """Voting activity owned by the backend: points, votes, shares."""

    def get_base_points(self, fid: int) -> int: ...

    def get_distinct_vote_targets(self, fid: int) -> int: ...

    def get_share_count(self, fid: int) -> int: ...

    def bulk_distinct_vote_targets(self, fids: Iterable[int]) -> dict[int, int]: ...

    def bulk_share_counts(self, fids: Iterable[int]) -> dict[int, int]: ...

    def top_participants(self, limit: int, exclude: Iterable[int] = ()) -> list[Participant]: ...


class SocialGraphProvider(Protocol):
    """Social graph lookups. Calls are blocking and may raise on transport errors."""

    def fetch_profiles(self, fids: Sequence[int]) -> dict[int, SocialProfile]: ...

    def fetch_followed_targets(self, fid: int) -> int: ...

    def fetch_channel_engagement(self, fid: int) -> ChannelEngagement: ...


class LedgerReader(Protocol):
    """Token balances in base units; divide by 10 ** token_decimals for whole tokens."""

    token_decimals: int

    def get_token_balance(self, address: str) -> int: ...

    def get_staked_balance(self, address: str) -> int: ...
