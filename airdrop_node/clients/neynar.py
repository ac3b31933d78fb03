from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

import requests

from airdrop_node.entities.airdrop import ChannelEngagement, SocialProfile
from airdrop_node.errors import SignalError

logger = logging.getLogger(__name__)

_NEYNAR_API = "https://api.neynar.com/v2/farcaster"


def _parse_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    # timestamps without an offset are UTC
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_profile(payload: dict[str, Any]) -> SocialProfile:
    """Map a Neynar v2 user object onto a SocialProfile."""
    if not isinstance(payload, dict) or "fid" not in payload:
        raise SignalError("user payload without fid")

    verified = payload.get("verified_addresses") or {}
    addresses = tuple(
        address for address in (verified.get("eth_addresses") or []) if isinstance(address, str)
    )

    score = payload.get("score")
    if score is None:
        score = (payload.get("experimental") or {}).get("neynar_user_score")

    pro = payload.get("pro") or {}
    bio = ((payload.get("profile") or {}).get("bio") or {}).get("text") or ""

    return SocialProfile(
        fid=int(payload["fid"]),
        username=payload.get("username"),
        verified_addresses=addresses,
        reputation_score=float(score) if score is not None else None,
        power_badge=bool(payload.get("power_badge", False)),
        subscription_status=pro.get("status"),
        subscription_expires_at=_parse_timestamp(pro.get("expires_at")),
        bio=bio,
    )


@dataclass
class NeynarClient:
    api_key: str
    base_url: str = _NEYNAR_API
    timeout_seconds: float = 8.0
    max_ids_per_call: int = 100
    follow_target_fids: tuple[int, ...] = (1108951, 6946)
    channel_id: str = "brnd"
    podium_url_marker: str = "https://brnd.land?voteId="
    session: requests.Session = field(default_factory=requests.Session)

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        response = self.session.get(
            f"{self.base_url}/{path}",
            params=params,
            headers={"accept": "application/json", "api_key": self.api_key},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise SignalError(f"unexpected payload from {path}")
        return payload

    def fetch_profiles(self, fids: Sequence[int]) -> dict[int, SocialProfile]:
        """Bulk profile lookup, chunked to the provider's id cap."""
        unique = list(dict.fromkeys(int(fid) for fid in fids))
        chunk = max(1, int(self.max_ids_per_call))
        profiles: dict[int, SocialProfile] = {}

        for start in range(0, len(unique), chunk):
            batch = unique[start:start + chunk]
            payload = self._get("user/bulk", {"fids": ",".join(str(fid) for fid in batch)})
            for user in payload.get("users") or []:
                try:
                    profile = parse_profile(user)
                except (SignalError, TypeError, ValueError) as exc:
                    logger.warning("Skipping malformed profile in bulk response: %s", exc)
                    continue
                profiles[profile.fid] = profile

        return profiles

    def fetch_followed_targets(self, fid: int) -> int:
        """How many of the configured target accounts ``fid`` follows."""
        if not self.follow_target_fids:
            return 0
        payload = self._get(
            "user/bulk",
            {
                "fids": ",".join(str(target) for target in self.follow_target_fids),
                "viewer_fid": int(fid),
            },
        )
        following = {
            int(user["fid"])
            for user in payload.get("users") or []
            if isinstance(user, dict) and (user.get("viewer_context") or {}).get("following")
        }
        return sum(1 for target in self.follow_target_fids if target in following)

    def fetch_channel_engagement(self, fid: int) -> ChannelEngagement:
        channels = self._get("channel/search", {"q": self.channel_id, "viewer_fid": int(fid)}).get("channels") or []
        channel = next(
            (item for item in channels if isinstance(item, dict) and item.get("id") == self.channel_id),
            channels[0] if channels else {},
        )
        following = bool((channel.get("viewer_context") or {}).get("following", False))

        casts = self._get(
            "feed/user/casts",
            {"fid": int(fid), "channel_id": self.channel_id, "include_replies": "false"},
        ).get("casts") or []
        published = sum(1 for cast in casts if self._is_podium_cast(cast))

        return ChannelEngagement(following=following, published_count=published)

    def _is_podium_cast(self, cast: Any) -> bool:
        if not isinstance(cast, dict):
            return False
        embeds = cast.get("embeds")
        if not isinstance(embeds, list):
            return False
        return any(
            isinstance(embed, dict)
            and isinstance(embed.get("url"), str)
            and self.podium_url_marker in embed["url"]
            for embed in embeds
        )
