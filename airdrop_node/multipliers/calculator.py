from __future__ import annotations

import asyncio
import contextlib
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Awaitable, Callable

from airdrop_node.entities.airdrop import MULTIPLIER_NAMES, NEUTRAL_MULTIPLIER, SocialProfile
from airdrop_node.errors import SignalError
from airdrop_node.interfaces import ActivityStore, LedgerReader, SocialGraphProvider
from airdrop_node.multipliers.dimensions import TIER_TABLES
from airdrop_node.schemas import ChallengeBreakdown

logger = logging.getLogger(__name__)


@dataclass
class DimensionResult:
    name: str
    value: float
    multiplier: Decimal
    degraded: bool = False
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class BatchContext:
    """Signals fetched in bulk once per batch and shared by every participant in it."""
    profiles: dict[int, SocialProfile] = field(default_factory=dict)
    # set once a bulk profile lookup was attempted; missing fids then degrade
    profiles_loaded: bool = False
    vote_targets: dict[int, int] = field(default_factory=dict)
    share_counts: dict[int, int] = field(default_factory=dict)
    # dimensions whose bulk lookup failed; they degrade without a per-fid retry
    unavailable: set[str] = field(default_factory=set)


@dataclass
class MultiplierSet:
    fid: int
    dimensions: dict[str, DimensionResult]

    @property
    def multipliers(self) -> dict[str, Decimal]:
        return {name: self.dimensions[name].multiplier for name in MULTIPLIER_NAMES}

    @property
    def degraded(self) -> list[str]:
        return [name for name in MULTIPLIER_NAMES if self.dimensions[name].degraded]

    def breakdown(self) -> list[ChallengeBreakdown]:
        return [
            TIER_TABLES[name].breakdown(self.dimensions[name].value, degraded=self.dimensions[name].degraded)
            for name in MULTIPLIER_NAMES
        ]


class MultiplierCalculator:
    """Computes the eight multipliers of a participant concurrently.

    Collaborators are blocking; calls run on a dedicated pool of
    ``max_concurrency`` threads. A call is only submitted once a thread is
    free for it, so ``timeout_seconds`` measures the call itself and not the
    wait for a slot. A dimension whose signal fails or times out degrades to
    1.0 and is flagged, the others are unaffected.
    """

    def __init__(
        self,
        activity: ActivityStore,
        social: SocialGraphProvider,
        ledger: LedgerReader,
        *,
        timeout_seconds: float = 10.0,
        profile_token_tag: str = "$BRND",
        max_concurrency: int = 32,
    ):
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self.activity = activity
        self.social = social
        self.ledger = ledger
        self.timeout_seconds = timeout_seconds
        self.profile_token_tag = profile_token_tag
        self.max_concurrency = max_concurrency
        self._executor = ThreadPoolExecutor(max_workers=max_concurrency, thread_name_prefix="airdrop-signal")
        self._slots: asyncio.Semaphore | None = None
        self._slots_loop: asyncio.AbstractEventLoop | None = None

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def calculate(self, fid: int, context: BatchContext | None = None) -> MultiplierSet:
        context = context or BatchContext()
        profile = context.profiles.get(fid)
        if profile is None and not context.profiles_loaded:
            profile = await self._load_profile(fid)

        signals: dict[str, Callable[[], Awaitable[float]]] = {
            "follow_accounts": lambda: self._follow_accounts(fid),
            "channel_interaction": lambda: self._channel_interaction(fid),
            "token_holdings": lambda: self._token_holdings(fid, profile),
            "collectibles": lambda: self._collectibles(fid, profile),
            "voted_brands": lambda: self._voted_brands(fid, context),
            "shared_podiums": lambda: self._shared_podiums(fid, context),
            "reputation": lambda: self._reputation(fid, profile),
            "pro_user": lambda: self._pro_user(fid, profile),
        }

        results = await asyncio.gather(
            *(self._evaluate(fid, name, signals[name]) for name in MULTIPLIER_NAMES)
        )
        return MultiplierSet(fid=fid, dimensions={result.name: result for result in results})

    async def _evaluate(self, fid: int, name: str, signal: Callable[[], Awaitable[float]]) -> DimensionResult:
        table = TIER_TABLES[name]
        try:
            value = await signal()
            return DimensionResult(name=name, value=value, multiplier=table.multiplier_for(value))
        except Exception as exc:
            logger.warning("Multiplier %s degraded to 1.0 for fid=%s: %s", name, fid, str(exc) or type(exc).__name__)
            return DimensionResult(
                name=name,
                value=0,
                multiplier=NEUTRAL_MULTIPLIER,
                degraded=True,
                details={"error": str(exc) or type(exc).__name__},
            )

    def _slots_for(self, loop: asyncio.AbstractEventLoop) -> asyncio.Semaphore:
        # a semaphore belongs to one event loop
        if self._slots is None or self._slots_loop is not loop:
            self._slots = asyncio.Semaphore(self.max_concurrency)
            self._slots_loop = loop
        return self._slots

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        slots = self._slots_for(loop)
        await slots.acquire()
        try:
            future = self._executor.submit(fn, *args)
        except BaseException:
            slots.release()
            raise
        # the slot is held until the thread finishes, even after a timeout
        future.add_done_callback(lambda _: self._release(loop, slots))
        return await asyncio.wait_for(asyncio.wrap_future(future), timeout=self.timeout_seconds)

    @staticmethod
    def _release(loop: asyncio.AbstractEventLoop, slots: asyncio.Semaphore) -> None:
        # nothing to release once the loop is closed
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(slots.release)

    async def _load_profile(self, fid: int) -> SocialProfile | None:
        try:
            profiles = await self._call(self.social.fetch_profiles, [fid])
        except Exception as exc:
            logger.warning("Profile lookup failed for fid=%s: %s", fid, str(exc) or type(exc).__name__)
            return None
        return profiles.get(fid)

    @staticmethod
    def _require_profile(fid: int, profile: SocialProfile | None) -> SocialProfile:
        if profile is None:
            raise SignalError(f"no social profile available for fid {fid}")
        return profile

    async def _follow_accounts(self, fid: int) -> float:
        return int(await self._call(self.social.fetch_followed_targets, fid))

    async def _channel_interaction(self, fid: int) -> float:
        engagement = await self._call(self.social.fetch_channel_engagement, fid)
        if not engagement.following:
            return 0
        return 2 if engagement.published_count >= 1 else 1

    async def _token_holdings(self, fid: int, profile: SocialProfile | None) -> float:
        profile = self._require_profile(fid, profile)
        if not profile.verified_addresses:
            return 0

        calls = []
        for address in profile.verified_addresses:
            calls.append(self._call(self.ledger.get_token_balance, address))
            calls.append(self._call(self.ledger.get_staked_balance, address))
        balances = await asyncio.gather(*calls)
        # base units are summed before the single conversion to whole tokens
        return sum(int(balance) for balance in balances) // 10 ** int(self.ledger.token_decimals)

    async def _collectibles(self, fid: int, profile: SocialProfile | None) -> float:
        return int(self._require_profile(fid, profile).collectible_count)

    async def _voted_brands(self, fid: int, context: BatchContext) -> float:
        if "voted_brands" in context.unavailable:
            raise SignalError(f"vote targets unavailable for fid {fid}")
        if fid in context.vote_targets:
            return context.vote_targets[fid]
        return int(await self._call(self.activity.get_distinct_vote_targets, fid))

    async def _shared_podiums(self, fid: int, context: BatchContext) -> float:
        if "shared_podiums" in context.unavailable:
            raise SignalError(f"share count unavailable for fid {fid}")
        if fid in context.share_counts:
            return context.share_counts[fid]
        return int(await self._call(self.activity.get_share_count, fid))

    async def _reputation(self, fid: int, profile: SocialProfile | None) -> float:
        profile = self._require_profile(fid, profile)
        if profile.reputation_score is not None:
            return float(profile.reputation_score)
        return 1.0 if profile.power_badge else 0.8

    async def _pro_user(self, fid: int, profile: SocialProfile | None) -> float:
        profile = self._require_profile(fid, profile)
        if not profile.is_subscribed():
            return 0
        tag = self.profile_token_tag.lower()
        return 2 if tag and tag in (profile.bio or "").lower() else 1
