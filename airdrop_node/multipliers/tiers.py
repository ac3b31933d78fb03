"""Ordered tier tables shared by scoring and the challenge breakdown."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from airdrop_node.entities.airdrop import NEUTRAL_MULTIPLIER
from airdrop_node.schemas import ChallengeBreakdown, Progress, TierStatus


def as_decimal(value: int | float | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class Tier:
    threshold: Decimal
    multiplier: Decimal


@dataclass(frozen=True)
class TierTable:
    """Step function from a raw signal to a multiplier.

    Tiers are strictly ascending in both threshold and multiplier, so the
    multiplier is monotone non-decreasing in the signal and never below 1.0.
    """
    name: str
    title: str
    description: str
    unit: str
    tiers: tuple[Tier, ...]

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError(f"tier table {self.name!r} has no tiers")
        previous: Tier | None = None
        for tier in self.tiers:
            if tier.multiplier < NEUTRAL_MULTIPLIER:
                raise ValueError(f"tier table {self.name!r} has a multiplier below 1.0")
            if previous is not None and (
                tier.threshold <= previous.threshold or tier.multiplier <= previous.multiplier
            ):
                raise ValueError(f"tier table {self.name!r} must be strictly ascending")
            previous = tier

    @classmethod
    def of(cls, name: str, title: str, description: str, unit: str,
           pairs: list[tuple[int | str, str]]) -> "TierTable":
        return cls(
            name=name,
            title=title,
            description=description,
            unit=unit,
            tiers=tuple(Tier(Decimal(str(t)), Decimal(m)) for t, m in pairs),
        )

    @property
    def max_multiplier(self) -> Decimal:
        return self.tiers[-1].multiplier

    def current_tier(self, value: int | float | Decimal) -> Tier | None:
        raw = as_decimal(value)
        achieved = None
        for tier in self.tiers:
            if raw >= tier.threshold:
                achieved = tier
        return achieved

    def multiplier_for(self, value: int | float | Decimal) -> Decimal:
        tier = self.current_tier(value)
        return tier.multiplier if tier else NEUTRAL_MULTIPLIER

    def next_tier(self, value: int | float | Decimal) -> Tier | None:
        raw = as_decimal(value)
        for tier in self.tiers:
            if raw < tier.threshold:
                return tier
        return None

    def breakdown(self, value: int | float | Decimal, *, degraded: bool = False) -> ChallengeBreakdown:
        raw = as_decimal(value)
        multiplier = NEUTRAL_MULTIPLIER if degraded else self.multiplier_for(raw)
        upcoming = self.next_tier(raw)
        statuses = [
            TierStatus(
                threshold=float(tier.threshold),
                multiplier=float(tier.multiplier),
                achieved=not degraded and raw >= tier.threshold,
            )
            for tier in self.tiers
        ]
        return ChallengeBreakdown(
            name=self.title,
            description=self.description,
            current_value=float(raw),
            current_multiplier=float(multiplier),
            max_multiplier=float(self.max_multiplier),
            completed=not degraded and upcoming is None,
            progress=Progress(
                current=float(raw),
                required=float(upcoming.threshold if upcoming else self.tiers[-1].threshold),
                unit=self.unit,
            ),
            tiers=statuses,
            next_tier=(
                TierStatus(threshold=float(upcoming.threshold), multiplier=float(upcoming.multiplier))
                if upcoming else None
            ),
            degraded=degraded,
        )
